"""Tests for tradeledger.ledger.migrations."""

from __future__ import annotations

import pytest

from tradeledger.ledger.migrations import (
    migrate_completed,
    migrate_leg,
    schema_version,
    summary_needs_rebuild,
)
from tradeledger.models.completed import CompletedTrade
from tradeledger.models.leg import TradeLeg

LEGACY_ENTRY = {
    "tradeId": "trade_1700000000000_abc123",
    "entrySignal": "buy",
    "signalType": "Regular Buy",
    "product": "AVAX/USDC",
    "network": "avax",
    "chainId": 43114,
    "signalTimestamp": 1_700_000_000,
    "executionTimestamp": 1_700_000_000,
    "amountUSDC": 100.0,
    "gasUsed": 160_000,
    "entryEffectiveGasPrice": 26_000_000_000,
    "gasCostNative": 0.00416,
    "gasCostUSDC": 0.1165,
    "nativePriceUSDC": 28.0,
    "status": "completed",
    "tradeDirection": "usdc_to_wavax",
    "entryAmount": 100.0,
    "actualOutput": 3.56,
    "expectedOutput": 3.57,
    "slippageActualPercent": 0.28,
    "tokenAddresses": {"inputToken": {"symbol": "USDC", "address": "0xusdc", "decimals": 6}},
    "protocolAddresses": {"routerAddress": "0xrouter", "poolAddress": "0xpool"},
    "entryTxHash": "0xentry",
}

LEGACY_EXIT = {
    "tradeId": "trade_1700003600000_def456",
    "signalType": "Take Profit",
    "product": "AVAX/USDC",
    "network": "AVALANCHE",
    "entryTimestamp": 1_700_003_600,
    "amountUSDC": 104.0,
    "tradeDirection": "WAVAX_TO_USDC",
    "expectedOutput": 104.5,
    "executionDetails": {"effectiveGasPrice": 25_000_000_000, "router": "0xrouter2"},
}


class TestSchemaVersion:
    def test_missing_is_one(self) -> None:
        assert schema_version({}) == 1

    def test_explicit(self) -> None:
        assert schema_version({"schema_version": 2}) == 2


class TestMigrateLeg:
    def test_legacy_entry(self) -> None:
        leg = TradeLeg.from_dict(migrate_leg(LEGACY_ENTRY))
        assert leg.leg_id == "trade_1700000000000_abc123"
        assert leg.side == "buy"
        assert leg.token_pair == "WAVAX-USDC"
        assert leg.network == "AVALANCHE"
        assert leg.effective_gas_price == 26_000_000_000
        assert leg.trade_direction == "USDC_TO_WAVAX"
        assert leg.slippage_actual_pct == pytest.approx(0.28)
        assert leg.input_token is not None and leg.input_token.address == "0xusdc"
        assert leg.router_address == "0xrouter"
        assert leg.pool_address == "0xpool"
        assert leg.tx_hash == "0xentry"

    def test_equal_timestamps_are_nudged(self) -> None:
        leg = TradeLeg.from_dict(migrate_leg(LEGACY_ENTRY))
        assert leg.execution_timestamp > leg.signal_timestamp

    def test_side_from_signal_type(self) -> None:
        leg = TradeLeg.from_dict(migrate_leg(LEGACY_EXIT))
        assert leg.side == "selltp"
        assert leg.signal_timestamp == 1_700_003_600.0
        assert leg.effective_gas_price == 25_000_000_000
        assert leg.router_address == "0xrouter2"

    def test_side_from_is_entry_flag(self) -> None:
        assert migrate_leg({"isEntry": True, "product": "AVAX/USDC"})["side"] == "buy"
        assert migrate_leg({"isEntry": False, "product": "AVAX/USDC"})["side"] == "sell"

    def test_current_schema_untouched(self) -> None:
        record = {"schema_version": 2, "leg_id": "leg_1", "side": "buy"}
        assert migrate_leg(record) == record

    def test_unknown_network_resolves_to_default(self) -> None:
        assert migrate_leg({"network": "fantom", "product": "FTM/USDC"})["network"] == "AVALANCHE"


class TestMigrateCompleted:
    def test_legacy_completed(self) -> None:
        record = {
            "tradePairId": "pair_trade_1_trade_2",
            "entryLeg": LEGACY_ENTRY,
            "exitLeg": LEGACY_EXIT,
            "grossProfitUSDC": 4.0,
            "gasCostUSDC": 0.22,
            "netProfitUSDC": 3.78,
            "profitPercentage": 3.78,
            "expectedGrossProfitUSDC": 4.5,
            "tradeDurationMs": -10,
            "avgSignalToExecutionDelay": 1.5,
            "tradeCategory": "profitable",
            "exitReason": "Take Profit Achieved",
            "completedTimestamp": 1_700_003_601,
            "summary": "WAVAX-USDC ...",
        }
        trade = CompletedTrade.from_dict(migrate_completed(record))
        assert trade.trade_pair_id == "pair_trade_1_trade_2"
        assert trade.network == "AVALANCHE"
        assert not trade.is_cross_network
        assert trade.networks_used == ("AVALANCHE",)
        assert trade.net_profit_usdc == pytest.approx(3.78)
        assert trade.expected_profit_known
        assert trade.signal_duration_ms == 0.0
        assert trade.avg_signal_to_execution_delay_ms == pytest.approx(1500.0)
        assert trade.headline == "WAVAX-USDC ..."
        assert trade.validate() == []

    def test_legacy_without_quote_exit_flags_unknown(self) -> None:
        exit_leg = dict(LEGACY_EXIT, tradeDirection="WAVAX_TO_JOE")
        record = {"entryLeg": LEGACY_ENTRY, "exitLeg": exit_leg}
        migrated = migrate_completed(record)
        assert migrated["expected_profit_known"] is False
        assert migrated["trade_pair_id"] == (
            "pair_trade_1700000000000_abc123_trade_1700003600000_def456"
        )


class TestSummaryNeedsRebuild:
    @pytest.mark.parametrize("record", [None, {}, [], {"totalTrades": 4}, {"schema_version": 1}])
    def test_rebuild(self, record: object) -> None:
        assert summary_needs_rebuild(record)

    def test_current_kept(self) -> None:
        assert not summary_needs_rebuild({"schema_version": 2, "total_trades": 0})
