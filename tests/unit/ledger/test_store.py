"""Tests for tradeledger.ledger.store."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from tradeledger.core.exceptions import DataCorruptionError
from tradeledger.engine.pnl import PnLCalculator
from tradeledger.ledger.store import FileLedgerStore, sort_most_recent_first
from tradeledger.models.leg import TradeLeg
from tradeledger.models.summary import TradeSummary

BASE_TS = 1_700_000_000.0


@pytest.fixture
def store(data_dir: Path) -> FileLedgerStore:
    return FileLedgerStore(data_dir)


class TestEmptyLedger:
    def test_missing_documents_read_empty(self, store: FileLedgerStore) -> None:
        assert store.load_active() == []
        assert store.load_completed() == []
        assert store.load_summary() is None


class TestCommit:
    def test_round_trip(
        self, store: FileLedgerStore, make_leg: Callable[..., TradeLeg]
    ) -> None:
        entry = make_leg("buy", 100.0, signal=BASE_TS)
        exit_leg = make_leg("sell", 101.0, signal=BASE_TS + 60)
        pending = make_leg("buy", 40.0, signal=BASE_TS + 120)
        trade = PnLCalculator().build(entry, exit_leg, completed_at=BASE_TS + 61)
        summary = TradeSummary(total_trades=1, last_updated=BASE_TS + 61)

        store.commit(active=[pending], completed=[trade], summary=summary)

        assert store.load_active() == [pending]
        assert store.load_completed() == [trade]
        assert store.load_summary() == summary

    def test_active_written_most_recent_first(
        self, store: FileLedgerStore, make_leg: Callable[..., TradeLeg]
    ) -> None:
        old = make_leg(signal=BASE_TS)
        new = make_leg(signal=BASE_TS + 10)
        store.commit(active=[old, new])
        ids = [r["leg_id"] for r in json.loads(store.active_path.read_text(encoding="utf-8"))]
        assert ids == [new.leg_id, old.leg_id]

    def test_none_leaves_document_untouched(
        self, store: FileLedgerStore, make_leg: Callable[..., TradeLeg]
    ) -> None:
        leg = make_leg()
        store.commit(active=[leg])
        store.commit(summary=TradeSummary())
        assert store.load_active() == [leg]
        assert not store.completed_path.exists()

    def test_empty_commit_writes_nothing(self, store: FileLedgerStore) -> None:
        store.commit()
        assert not store.active_path.exists()


class TestStrictReads:
    def test_corrupt_active_raises(self, store: FileLedgerStore) -> None:
        store.active_path.parent.mkdir(parents=True)
        store.active_path.write_text("[{", encoding="utf-8")
        with pytest.raises(DataCorruptionError):
            store.load_active()

    def test_non_list_raises(self, store: FileLedgerStore) -> None:
        store.completed_path.parent.mkdir(parents=True)
        store.completed_path.write_text('{"a": 1}', encoding="utf-8")
        with pytest.raises(DataCorruptionError, match="JSON list"):
            store.load_completed()

    def test_non_object_records_skipped(
        self, store: FileLedgerStore, make_leg: Callable[..., TradeLeg]
    ) -> None:
        leg = make_leg()
        store.active_path.parent.mkdir(parents=True)
        store.active_path.write_text(
            json.dumps([leg.to_dict(), "junk", 3]), encoding="utf-8"
        )
        assert store.load_active() == [leg]


class TestLegacyDocuments:
    def test_legacy_active_leg_migrated(self, store: FileLedgerStore) -> None:
        store.active_path.parent.mkdir(parents=True)
        store.active_path.write_text(
            json.dumps(
                [
                    {
                        "tradeId": "trade_1",
                        "entrySignal": "buy",
                        "product": "ETH/USDC",
                        "network": "arbitrum",
                        "signalTimestamp": BASE_TS,
                        "amountUSDC": 75.0,
                    }
                ]
            ),
            encoding="utf-8",
        )
        (leg,) = store.load_active()
        assert leg.leg_id == "trade_1"
        assert leg.token_pair == "WETH-USDC"
        assert leg.network == "ARBITRUM"
        assert leg.amount_usdc == 75.0

    def test_legacy_summary_needs_rebuild(self, store: FileLedgerStore) -> None:
        store.summary_path.parent.mkdir(parents=True)
        store.summary_path.write_text('{"totalTrades": 9}', encoding="utf-8")
        assert store.load_summary() is None


class TestBackup:
    def test_backup_active(
        self, store: FileLedgerStore, make_leg: Callable[..., TradeLeg]
    ) -> None:
        store.commit(active=[make_leg()])
        path = store.backup_active("1700000000000")
        assert path is not None
        assert Path(path).name == "trades_active_backup_1700000000000.json"

    def test_backup_without_document(self, store: FileLedgerStore) -> None:
        assert store.backup_active("1") is None


def test_sort_most_recent_first_ties_by_id(make_leg: Callable[..., TradeLeg]) -> None:
    a = make_leg(signal=BASE_TS, leg_id="leg_b")
    b = make_leg(signal=BASE_TS, leg_id="leg_a")
    c = make_leg(signal=BASE_TS + 1, leg_id="leg_c")
    assert [x.leg_id for x in sort_most_recent_first([a, b, c])] == ["leg_c", "leg_a", "leg_b"]
