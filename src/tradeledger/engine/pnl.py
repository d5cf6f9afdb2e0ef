"""Profit and cost figures for a matched leg pair.

Every number on a :class:`CompletedTrade` is derived here, from the two
legs alone (gas costs and native prices were captured on the legs at
creation), so building the same pair twice yields the same figures.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from tradeledger.core.constants import (
    DEFAULT_BREAKEVEN_BAND_USDC,
    EFFICIENCY_SCORE_MAX,
    GAS_RATIO_SCALE,
    QUOTE_CURRENCY,
)
from tradeledger.core.gas import gas_price_gwei
from tradeledger.core.networks import resolve_network
from tradeledger.core.timeutils import format_duration
from tradeledger.models.completed import (
    AddressSummary,
    CompletedTrade,
    GasAnalysis,
    LegGasCost,
    NetworkCostAnalysis,
)
from tradeledger.models.leg import TradeLeg
from tradeledger.models.types import TradeCategory, TradePairId

logger = logging.getLogger(__name__)

_EXIT_REASONS = {
    "sellsl": "Stop Loss Triggered",
    "selltp": "Take Profit Achieved",
}
_DEFAULT_EXIT_REASON = "Regular Exit Signal"


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------


def classify_trade(
    net_profit_usdc: float, band: float = DEFAULT_BREAKEVEN_BAND_USDC
) -> TradeCategory:
    """``profitable`` at or above *band*, ``loss`` at or below ``-band``.

    >>> classify_trade(0.01), classify_trade(-0.01), classify_trade(0.0)
    ('profitable', 'loss', 'breakeven')
    """
    if net_profit_usdc >= band:
        return "profitable"
    if net_profit_usdc <= -band:
        return "loss"
    return "breakeven"


def exit_reason_for(side: str) -> str:
    return _EXIT_REASONS.get(side, _DEFAULT_EXIT_REASON)


def trade_pair_id(entry: TradeLeg, exit_leg: TradeLeg) -> TradePairId:
    return f"pair_{entry.leg_id}_{exit_leg.leg_id}"


def gas_ratio(leg: TradeLeg) -> float:
    """Gas cost as a fraction of leg size (size 0 counts as 1)."""
    return leg.gas_cost_usdc / (leg.amount_usdc or 1.0)


def leg_gas_efficiency(leg: TradeLeg) -> float:
    return max(0.0, EFFICIENCY_SCORE_MAX - gas_ratio(leg) * GAS_RATIO_SCALE)


def network_efficiency_score(entry: TradeLeg, exit_leg: TradeLeg) -> float:
    """Blend of execution speed and gas efficiency, 0-100.

    Speed scores 100 minus the mean signal-to-execution delay in seconds;
    gas scores 100 minus the mean gas ratio scaled by 1000.  Both floor at
    zero and the score is their mean.
    """
    avg_delay_ms = (entry.signal_to_execution_delay_ms + exit_leg.signal_to_execution_delay_ms) / 2
    speed_score = max(0.0, EFFICIENCY_SCORE_MAX - avg_delay_ms / 1000.0)
    avg_ratio = (gas_ratio(entry) + gas_ratio(exit_leg)) / 2
    gas_score = max(0.0, EFFICIENCY_SCORE_MAX - avg_ratio * GAS_RATIO_SCALE)
    return (speed_score + gas_score) / 2


def execution_efficiency(entry: TradeLeg, exit_leg: TradeLeg) -> float:
    """Mean actual/expected output ratio of both legs.

    ``1.0`` when either leg's expected output is unknown or zero.
    """
    entry_expected = entry.expected_output or 0.0
    exit_expected = exit_leg.expected_output or 0.0
    if entry_expected == 0 or exit_expected == 0:
        return 1.0

    def ratio(actual: float | None, expected: float) -> float:
        return (actual or 0.0) / expected if expected > 0 else 1.0

    return (ratio(entry.amount_out, entry_expected) + ratio(exit_leg.amount_out, exit_expected)) / 2


def _unique(values: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(v for v in values if v))


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


class PnLCalculator:
    """Builds :class:`CompletedTrade` records from matched legs.

    Parameters
    ----------
    quote_currency:
        Unit of every financial figure; an exit whose trade direction ends
        in ``_TO_<quote>`` carries a usable expected output.
    breakeven_band:
        Absolute net-profit band around zero classified as breakeven.
    clock:
        Wall-clock source for ``completed_timestamp``.
    """

    def __init__(
        self,
        quote_currency: str = QUOTE_CURRENCY,
        breakeven_band: float = DEFAULT_BREAKEVEN_BAND_USDC,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.quote_currency = quote_currency.upper()
        self.breakeven_band = breakeven_band
        self._clock = clock

    def expected_gross_profit(self, entry: TradeLeg, exit_leg: TradeLeg) -> tuple[float, bool]:
        """``(expected_profit, known)``.

        Only an exit that sold into the quote currency says what it expected
        to receive.  For any other shape the expected profit is unknown and
        reported as ``0.0`` with ``known=False``.
        """
        sells_to_quote = f"_TO_{self.quote_currency}" in exit_leg.trade_direction.upper()
        if sells_to_quote and exit_leg.expected_output is not None:
            return exit_leg.expected_output - entry.amount_usdc, True
        logger.debug(
            "Expected profit unknown for %s/%s (exit direction %r)",
            entry.leg_id,
            exit_leg.leg_id,
            exit_leg.trade_direction,
        )
        return 0.0, False

    def build(
        self,
        entry: TradeLeg,
        exit_leg: TradeLeg,
        completed_at: float | None = None,
    ) -> CompletedTrade:
        """Derive the completed trade for a matched pair."""
        first, second = (
            (entry, exit_leg)
            if entry.signal_timestamp <= exit_leg.signal_timestamp
            else (exit_leg, entry)
        )
        network = resolve_network(entry.network)
        is_cross = entry.network != exit_leg.network
        networks_used = _unique((entry.network, exit_leg.network))

        # -- financials ---------------------------------------------------------
        gross = exit_leg.amount_usdc - entry.amount_usdc
        gas_usdc = entry.gas_cost_usdc + exit_leg.gas_cost_usdc
        gas_native = entry.gas_cost_native + exit_leg.gas_cost_native
        net = gross - gas_usdc
        profit_pct = net / entry.amount_usdc * 100.0 if entry.amount_usdc > 0 else 0.0

        expected, expected_known = self.expected_gross_profit(entry, exit_leg)
        diff = gross - expected
        diff_pct = diff / abs(expected) * 100.0 if expected != 0 else 0.0

        # -- timing -------------------------------------------------------------
        signal_ms = max(0.0, (second.signal_timestamp - first.signal_timestamp) * 1000.0)
        execution_ms = max(0.0, (second.execution_timestamp - first.execution_timestamp) * 1000.0)
        avg_delay_ms = (
            entry.signal_to_execution_delay_ms + exit_leg.signal_to_execution_delay_ms
        ) / 2

        # -- cost analysis ------------------------------------------------------
        avg_native_price = (entry.native_price_usdc + exit_leg.native_price_usdc) / 2
        comparison: dict[str, LegGasCost] = {}
        if is_cross:
            for leg in (entry, exit_leg):
                comparison[leg.network] = LegGasCost(
                    gas_cost_usdc=leg.gas_cost_usdc,
                    gas_cost_native=leg.gas_cost_native,
                    efficiency=leg_gas_efficiency(leg),
                )
        cost_analysis = NetworkCostAnalysis(
            average_native_price=avg_native_price,
            network_efficiency_score=network_efficiency_score(entry, exit_leg),
            gas_cost_comparison=comparison,
        )
        gas_analysis = GasAnalysis(
            entry_gas_cost_usdc=entry.gas_cost_usdc,
            exit_gas_cost_usdc=exit_leg.gas_cost_usdc,
            total_gas_cost_usdc=gas_usdc,
            entry_gas_cost_native=entry.gas_cost_native,
            exit_gas_cost_native=exit_leg.gas_cost_native,
            total_gas_cost_native=gas_native,
            gas_efficiency=gas_usdc / entry.amount_usdc * 100.0 if entry.amount_usdc > 0 else 0.0,
            avg_gas_price_gwei=(
                gas_price_gwei(entry.effective_gas_price)
                + gas_price_gwei(exit_leg.effective_gas_price)
            )
            / 2,
            average_native_price=avg_native_price,
            network=network.key,
            native_currency=network.native_currency,
            gas_strategy=network.gas_strategy,
        )
        addresses = AddressSummary(
            token_pair=entry.token_pair,
            entry_input_token=entry.input_token.address if entry.input_token else "",
            entry_output_token=entry.output_token.address if entry.output_token else "",
            exit_input_token=exit_leg.input_token.address if exit_leg.input_token else "",
            exit_output_token=exit_leg.output_token.address if exit_leg.output_token else "",
            routers=_unique((entry.router_address, exit_leg.router_address)),
            pools=_unique((entry.pool_address, exit_leg.pool_address)),
        )

        category = classify_trade(net, self.breakeven_band)
        headline = (
            f"{entry.token_pair} on {network.name}: "
            f"{'+' if net > 0 else ''}{net:.4f} {self.quote_currency} "
            f"({profit_pct:.2f}%) in {format_duration(signal_ms)}"
            f"{' [Cross-Network]' if is_cross else ''}"
        )

        trade = CompletedTrade(
            trade_pair_id=trade_pair_id(entry, exit_leg),
            entry_leg=entry,
            exit_leg=exit_leg,
            network=network.key,
            network_name=network.name,
            chain_id=network.chain_id,
            native_currency=network.native_currency,
            is_cross_network=is_cross,
            networks_used=networks_used,
            gross_profit_usdc=gross,
            gas_cost_usdc=gas_usdc,
            gas_cost_native=gas_native,
            net_profit_usdc=net,
            profit_percentage=profit_pct,
            expected_gross_profit_usdc=expected,
            expected_profit_known=expected_known,
            actual_vs_expected_difference=diff,
            actual_vs_expected_percent=diff_pct,
            total_slippage_impact=entry.slippage_actual_pct + exit_leg.slippage_actual_pct,
            price_impact_total=entry.price_impact + exit_leg.price_impact,
            execution_efficiency=execution_efficiency(entry, exit_leg),
            signal_duration_ms=signal_ms,
            execution_duration_ms=execution_ms,
            avg_signal_to_execution_delay_ms=avg_delay_ms,
            network_cost_analysis=cost_analysis,
            gas_analysis=gas_analysis,
            address_summary=addresses,
            trade_category=category,
            exit_reason=exit_reason_for(exit_leg.side),
            completed_timestamp=self._clock() if completed_at is None else completed_at,
            headline=headline,
        )
        logger.info("Trade completed: %s [%s]", headline, trade.trade_pair_id)
        return trade
