"""Tests for tradeledger.core.logging_setup."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

import pytest

from tradeledger.core.logging_setup import reset_logger, resolve_level, setup_logger

_NAMES = ("test_ledger", "test_ledger_console", "test_ledger_idempotent", "test_ledger_level")


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        (logging.WARNING, logging.WARNING),
        ("debug", logging.DEBUG),
        (" Error ", logging.ERROR),
        ("loud", logging.INFO),
    ],
)
def test_resolve_level(level: int | str, expected: int) -> None:
    assert resolve_level(level) == expected


class TestSetupLogger:
    def teardown_method(self) -> None:
        for name in _NAMES:
            reset_logger(name)

    def test_creates_log_file(self, tmp_path: Path) -> None:
        lg = setup_logger("test_ledger", log_dir=tmp_path)
        lg.info("ledger pass committed")
        content = (tmp_path / "test_ledger.log").read_text(encoding="utf-8")
        assert "ledger pass committed" in content
        assert "[INFO] MainThread test_ledger" in content

    def test_console_handler_present(self, tmp_path: Path) -> None:
        lg = setup_logger("test_ledger_console", log_dir=tmp_path)
        assert any(type(h) is logging.StreamHandler for h in lg.handlers)

    def test_console_optional(self, tmp_path: Path) -> None:
        lg = setup_logger("test_ledger_console", log_dir=tmp_path, console=False)
        assert [type(h) for h in lg.handlers] == [logging.handlers.RotatingFileHandler]

    def test_idempotent(self, tmp_path: Path) -> None:
        lg1 = setup_logger("test_ledger_idempotent", log_dir=tmp_path)
        n = len(lg1.handlers)
        lg2 = setup_logger("test_ledger_idempotent", log_dir=tmp_path)
        assert lg1 is lg2
        assert len(lg2.handlers) == n

    def test_reset_allows_reconfiguring(self, tmp_path: Path) -> None:
        setup_logger("test_ledger_idempotent", log_dir=tmp_path)
        reset_logger("test_ledger_idempotent")
        assert logging.getLogger("test_ledger_idempotent").handlers == []
        lg = setup_logger("test_ledger_idempotent", log_dir=tmp_path, console=False)
        assert len(lg.handlers) == 1

    def test_level_by_name(self, tmp_path: Path) -> None:
        lg = setup_logger("test_ledger_level", log_dir=tmp_path, level="debug")
        assert lg.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in lg.handlers)

    def test_unwritable_dir_falls_back_to_console(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        lg = setup_logger("test_ledger", log_dir=blocker / "logs")
        assert [type(h) for h in lg.handlers] == [logging.StreamHandler]
