"""Tests for the tradeledger exception hierarchy."""

from __future__ import annotations

import pytest

from tradeledger.core.exceptions import (
    ConfigError,
    DataCorruptionError,
    DoubleConsumptionError,
    LegValidationError,
    PersistenceError,
    PriceLookupError,
    TradeLedgerError,
)


class TestExceptionHierarchy:
    """Verify inheritance chain so callers can catch at the right level."""

    def test_base_is_exception(self) -> None:
        assert issubclass(TradeLedgerError, Exception)

    @pytest.mark.parametrize(
        "exc_cls",
        [
            ConfigError,
            LegValidationError,
            PriceLookupError,
            PersistenceError,
            DataCorruptionError,
            DoubleConsumptionError,
        ],
    )
    def test_children_of_base(self, exc_cls: type) -> None:
        assert issubclass(exc_cls, TradeLedgerError)

    def test_catch_at_base_level(self) -> None:
        with pytest.raises(TradeLedgerError):
            raise LegValidationError("side='hold' must be one of ...")

    def test_message_preserved(self) -> None:
        exc = PersistenceError("could not persist ledger documents")
        assert str(exc) == "could not persist ledger documents"
