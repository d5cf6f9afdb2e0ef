"""Ledger store: the three persisted documents.

Abstracts access to active legs, completed trades and the rolling summary
behind one interface so the backend can change without touching the
engine.  The file implementation keeps one JSON document per set and
commits all documents of a pass as a single batch.

Usage::

    store = FileLedgerStore(Path("data/trades"))
    legs = store.load_active()
    store.commit(active=legs, completed=trades, summary=summary)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from tradeledger.core.constants import (
    ACTIVE_LEGS_FILENAME,
    COMPLETED_TRADES_FILENAME,
    SUMMARY_FILENAME,
)
from tradeledger.core.exceptions import DataCorruptionError
from tradeledger.core.storage import FileStore
from tradeledger.ledger.migrations import migrate_completed, migrate_leg, summary_needs_rebuild
from tradeledger.models.completed import CompletedTrade
from tradeledger.models.leg import TradeLeg
from tradeledger.models.summary import TradeSummary

logger = logging.getLogger(__name__)


class LedgerStore(ABC):
    """Abstract interface for ledger persistence."""

    @abstractmethod
    def load_active(self) -> list[TradeLeg]:
        """Active legs, most recent signal first."""

    @abstractmethod
    def load_completed(self) -> list[CompletedTrade]:
        """Completed trades in append order."""

    @abstractmethod
    def load_summary(self) -> TradeSummary | None:
        """The stored summary, or ``None`` if it must be rebuilt."""

    @abstractmethod
    def commit(
        self,
        *,
        active: Sequence[TradeLeg] | None = None,
        completed: Sequence[CompletedTrade] | None = None,
        summary: TradeSummary | None = None,
    ) -> None:
        """Persist the given documents together.  ``None`` leaves one as-is."""

    @abstractmethod
    def backup_active(self, suffix: str) -> str | None:
        """Copy the active document aside; return where, or ``None``."""


class FileLedgerStore(LedgerStore):
    """JSON file-backed ledger under *data_dir*.

    Reads are strict: a document that exists but cannot be parsed raises
    :class:`DataCorruptionError` rather than reading as empty, so a pass
    never overwrites records it failed to load.
    """

    def __init__(self, data_dir: Path) -> None:
        self._dir = Path(data_dir)
        self.active_path = self._dir / ACTIVE_LEGS_FILENAME
        self.completed_path = self._dir / COMPLETED_TRADES_FILENAME
        self.summary_path = self._dir / SUMMARY_FILENAME

    # -- reads ----------------------------------------------------------------

    def load_active(self) -> list[TradeLeg]:
        records = self._load_list(self.active_path)
        legs = [TradeLeg.from_dict(migrate_leg(r)) for r in records]
        return sort_most_recent_first(legs)

    def load_completed(self) -> list[CompletedTrade]:
        records = self._load_list(self.completed_path)
        return [CompletedTrade.from_dict(migrate_completed(r)) for r in records]

    def load_summary(self) -> TradeSummary | None:
        data = FileStore.load_json(self.summary_path, default=None)
        if summary_needs_rebuild(data):
            logger.info("Summary at %s is missing or outdated, will rebuild", self.summary_path)
            return None
        return TradeSummary.from_dict(data)

    # -- writes ---------------------------------------------------------------

    def commit(
        self,
        *,
        active: Sequence[TradeLeg] | None = None,
        completed: Sequence[CompletedTrade] | None = None,
        summary: TradeSummary | None = None,
    ) -> None:
        documents: dict[Path, Any] = {}
        if active is not None:
            documents[self.active_path] = [
                leg.to_dict() for leg in sort_most_recent_first(active)
            ]
        if completed is not None:
            documents[self.completed_path] = [trade.to_dict() for trade in completed]
        if summary is not None:
            documents[self.summary_path] = summary.to_dict()
        if not documents:
            return
        FileStore.write_json_batch(documents)
        logger.debug("Committed %s", ", ".join(p.name for p in documents))

    def backup_active(self, suffix: str) -> str | None:
        backup = FileStore.backup_json(self.active_path, suffix)
        return str(backup) if backup is not None else None

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _load_list(path: Path) -> list[dict[str, Any]]:
        data = FileStore.load_json(path, default=[])
        if not isinstance(data, list):
            raise DataCorruptionError(f"{path} must contain a JSON list")
        records = [r for r in data if isinstance(r, dict)]
        if len(records) != len(data):
            logger.warning("Skipped %d non-object record(s) in %s", len(data) - len(records), path)
        return records


def sort_most_recent_first(legs: Sequence[TradeLeg]) -> list[TradeLeg]:
    """Active-set order: newest signal first, ties by leg id for stability."""
    return sorted(legs, key=lambda leg: (-leg.signal_timestamp, leg.leg_id))
