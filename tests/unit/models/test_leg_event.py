"""Tests for tradeledger.models.leg_event."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from tradeledger.core.exceptions import LegValidationError
from tradeledger.models.leg_event import LegEvent


class TestFromDict:
    def test_camel_case_payload(self, make_event: Callable[..., dict[str, Any]]) -> None:
        event = LegEvent.from_dict(make_event("buy", 100.0))
        assert event.side == "buy"
        assert event.product == "AVAX/USDC"
        assert event.network == "avalanche"
        assert event.trade_direction == "USDC_TO_WAVAX"
        assert event.amount_in == 100.0
        assert event.gas_used == 150_000
        assert event.gas_price_wei == 25_000_000_000
        assert event.status == "completed"

    def test_snake_case_payload(self) -> None:
        event = LegEvent.from_dict(
            {"side": "SELL", "product": "ETH/USDC", "gas_used": "21000", "tx_hash": "0x1"}
        )
        assert event.side == "sell"
        assert event.gas_used == 21_000.0
        assert event.tx_hash == "0x1"

    def test_nested_sections_are_flattened(self) -> None:
        event = LegEvent.from_dict(
            {
                "webhookData": {"signal": "buy", "symbol": "AVAX/USDC", "network": "arb"},
                "tradeResult": {"amountIn": 50, "gasUsed": 180_000, "executionState": "Failed"},
                "executionDetails": {"router": "0xrouter", "poolFee": 500},
            }
        )
        assert event.side == "buy"
        assert event.network == "arb"
        assert event.amount_in == 50.0
        assert event.router_address == "0xrouter"
        assert event.pool_fee == 500
        assert event.status == "failed"

    def test_top_level_wins_over_nested(self) -> None:
        event = LegEvent.from_dict(
            {"side": "sell", "product": "AVAX/USDC", "tradeResult": {"side": "buy", "gasUsed": 1}}
        )
        assert event.side == "sell"
        assert event.gas_used == 1.0

    def test_unparseable_numbers_become_none(self) -> None:
        event = LegEvent.from_dict(
            {"side": "buy", "product": "AVAX/USDC", "amountIn": "lots", "gasUsed": "NaN"}
        )
        assert event.amount_in is None
        assert event.gas_used is None

    def test_millisecond_timestamps_converted(self) -> None:
        event = LegEvent.from_dict(
            {"side": "buy", "product": "AVAX/USDC", "signalTimestamp": 1_700_000_000_500}
        )
        assert event.signal_timestamp == pytest.approx(1_700_000_000.5)

    def test_token_refs(self) -> None:
        event = LegEvent.from_dict(
            {
                "side": "buy",
                "product": "AVAX/USDC",
                "inputToken": {"symbol": "USDC", "address": "0xusdc", "decimals": 6},
                "outputToken": "not-a-mapping",
            }
        )
        assert event.input_token is not None
        assert event.input_token.decimals == 6
        assert event.output_token is None

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            "buy",
            {"product": "AVAX/USDC"},
            {"side": "hold", "product": "AVAX/USDC"},
            {"side": "buy"},
            {"side": "buy", "product": "   "},
        ],
    )
    def test_structural_defects_raise(self, payload: object) -> None:
        with pytest.raises(LegValidationError):
            LegEvent.from_dict(payload)


class TestStatus:
    @pytest.mark.parametrize(
        ("state", "status"),
        [("Confirmed", "completed"), ("FAILED", "failed"), ("Pending", "pending"), (None, "pending")],
    )
    def test_mapping(self, state: str | None, status: str) -> None:
        assert LegEvent(side="buy", product="AVAX/USDC", execution_state=state).status == status


class TestUsdcAmount:
    def test_quote_in_uses_amount_in(self) -> None:
        event = LegEvent(side="buy", product="p", trade_direction="USDC_TO_WAVAX", amount_in=80.0)
        assert event.usdc_amount() == 80.0

    def test_quote_out_uses_actual_output(self) -> None:
        event = LegEvent(
            side="sell", product="p", trade_direction="WAVAX_TO_USDC",
            actual_amount_out=91.0, expected_amount_out=92.0,
        )
        assert event.usdc_amount() == 91.0

    def test_quote_out_falls_back_to_expected(self) -> None:
        event = LegEvent(
            side="sell", product="p", trade_direction="WAVAX_TO_USDC",
            actual_amount_out=0.0, expected_amount_out=92.0,
        )
        assert event.usdc_amount() == 92.0

    def test_no_direction_entry_uses_input(self) -> None:
        assert LegEvent(side="buy", product="p", amount_in=10.0).usdc_amount() == 10.0

    def test_no_direction_exit_uses_output(self) -> None:
        assert LegEvent(side="sellsl", product="p", amount_out=12.0).usdc_amount() == 12.0

    @pytest.mark.parametrize("amount", [None, -5.0])
    def test_undeterminable_is_zero(self, amount: float | None) -> None:
        event = LegEvent(side="buy", product="p", trade_direction="USDC_TO_WAVAX", amount_in=amount)
        assert event.usdc_amount() == 0.0


class TestSlippage:
    def test_positive_slippage(self) -> None:
        event = LegEvent(side="sell", product="p", expected_amount_out=100.0, actual_amount_out=99.0)
        assert event.slippage_pct() == pytest.approx(1.0)

    def test_better_than_expected_is_zero(self) -> None:
        event = LegEvent(side="sell", product="p", expected_amount_out=100.0, actual_amount_out=101.0)
        assert event.slippage_pct() == 0.0

    def test_unknown_is_zero(self) -> None:
        assert LegEvent(side="sell", product="p").slippage_pct() == 0.0
