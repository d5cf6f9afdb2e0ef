"""Rolling summary aggregation.

``fold`` applies one completed trade to a summary; ``recompute`` rebuilds a
summary from scratch by replaying the same per-trade update over the
completed set in order.  Because both run the identical floating-point
operations in the identical order, their results compare equal.

Protocol analytics are not incremental: they are rebuilt by scanning the
full completed set each time.
"""

from __future__ import annotations

import copy
import logging
from collections import Counter
from collections.abc import Sequence

from tradeledger.core.constants import GAS_TREND_WINDOW, SUPPORTED_NETWORKS
from tradeledger.core.timeutils import day_key, month_key, week_key
from tradeledger.models.completed import CompletedTrade
from tradeledger.models.summary import (
    NOT_AVAILABLE,
    EfficiencyRank,
    NetworkGasStats,
    NetworkProtocolStats,
    NetworkStats,
    TokenNetworkStats,
    TokenStats,
    TradeSummary,
)

logger = logging.getLogger(__name__)


def running_mean(old_mean: float, value: float, count: int) -> float:
    """``(old_mean * (count - 1) + value) / count``, *count* including *value*."""
    return (old_mean * (count - 1) + value) / count


def summary_covers(summary: TradeSummary, trades: Sequence[CompletedTrade]) -> bool:
    """``True`` if *summary* has folded exactly the trades in *trades*.

    Compares the trade count and the timestamp of the last trade folded in.
    """
    last = trades[-1].completed_timestamp if trades else 0.0
    return summary.total_trades == len(trades) and summary.last_updated == last


class SummaryAggregator:
    """Folds completed trades into a :class:`TradeSummary`."""

    # -- public API -----------------------------------------------------------

    def fold(
        self,
        summary: TradeSummary,
        trade: CompletedTrade,
        history: Sequence[CompletedTrade],
    ) -> TradeSummary:
        """Return a copy of *summary* with *trade* applied.

        *history* is the completed set in append order, ending with *trade*;
        it feeds the protocol analytics scan.
        """
        result = copy.deepcopy(summary)
        self._apply(result, trade)
        self._rebuild_protocol(result, history)
        return result

    def recompute(self, trades: Sequence[CompletedTrade]) -> TradeSummary:
        """Rebuild the summary from the full completed set."""
        summary = TradeSummary()
        for trade in trades:
            self._apply(summary, trade)
        self._rebuild_protocol(summary, trades)
        logger.info(
            "Summary recomputed: %d trades, net %.4f, win rate %.2f%%",
            summary.total_trades,
            summary.total_net_profit,
            summary.win_rate,
        )
        return summary

    # -- per-trade update -----------------------------------------------------

    def _apply(self, s: TradeSummary, trade: CompletedTrade) -> None:
        profitable = trade.trade_category == "profitable"
        loss = trade.trade_category == "loss"
        minutes = trade.duration_minutes

        # global
        s.total_trades += 1
        n = s.total_trades
        s.total_gross_profit += trade.gross_profit_usdc
        s.total_gas_costs += trade.gas_cost_usdc
        s.total_net_profit += trade.net_profit_usdc
        if profitable:
            s.profitable_trades += 1
        elif loss:
            s.losing_trades += 1
        else:
            s.breakeven_trades += 1
        s.win_rate = s.profitable_trades / n * 100.0
        s.average_profit = s.total_net_profit / n
        s.average_gas_cost = s.total_gas_costs / n
        s.total_expected_profit += trade.expected_gross_profit_usdc
        s.total_actual_vs_expected_diff += trade.actual_vs_expected_difference
        s.average_slippage_impact = running_mean(
            s.average_slippage_impact, trade.total_slippage_impact, n
        )
        s.execution_efficiency_avg = running_mean(
            s.execution_efficiency_avg, trade.execution_efficiency, n
        )
        if n == 1:
            s.average_trade_duration = s.longest_trade = s.shortest_trade = minutes
        else:
            s.average_trade_duration = running_mean(s.average_trade_duration, minutes, n)
            s.longest_trade = max(s.longest_trade, minutes)
            s.shortest_trade = min(s.shortest_trade, minutes)

        self._apply_network(s, trade, profitable, loss, minutes)
        self._apply_cross_network(s, trade)
        self._apply_token(s, trade, profitable)
        self._apply_buckets(s, trade)
        s.last_updated = trade.completed_timestamp

    @staticmethod
    def _apply_network(
        s: TradeSummary, trade: CompletedTrade, profitable: bool, loss: bool, minutes: float
    ) -> None:
        stats = s.network_summary.setdefault(
            trade.network, NetworkStats(native_currency=trade.native_currency)
        )
        stats.total_trades += 1
        n = stats.total_trades
        stats.total_gross_profit += trade.gross_profit_usdc
        stats.total_net_profit += trade.net_profit_usdc
        stats.total_gas_costs += trade.gas_cost_usdc
        if profitable:
            stats.profitable_trades += 1
        elif loss:
            stats.losing_trades += 1
        else:
            stats.breakeven_trades += 1
        stats.win_rate = stats.profitable_trades / n * 100.0
        stats.average_profit = stats.total_net_profit / n
        stats.average_gas_cost = stats.total_gas_costs / n
        stats.average_trade_duration = running_mean(stats.average_trade_duration, minutes, n)

    @staticmethod
    def _apply_cross_network(s: TradeSummary, trade: CompletedTrade) -> None:
        cross = s.cross_network
        cross.network_distribution[trade.network] = (
            cross.network_distribution.get(trade.network, 0) + 1
        )
        if trade.is_cross_network:
            cross.total_cross_network_trades += 1

        gas = cross.gas_cost_comparison.setdefault(trade.network, NetworkGasStats())
        gas.total_trades += 1
        n = gas.total_trades
        cost = trade.network_cost_analysis
        gas.average_gas_cost_usdc = running_mean(gas.average_gas_cost_usdc, trade.gas_cost_usdc, n)
        gas.average_gas_cost_native = running_mean(
            gas.average_gas_cost_native, trade.gas_cost_native, n
        )
        gas.average_native_price = running_mean(
            gas.average_native_price, cost.average_native_price, n
        )
        gas.average_efficiency_score = running_mean(
            gas.average_efficiency_score, cost.network_efficiency_score, n
        )
        gas.average_execution_time_ms = running_mean(
            gas.average_execution_time_ms, trade.execution_duration_ms, n
        )
        cross.efficiency_ranking = rank_networks(cross.gas_cost_comparison)

    @staticmethod
    def _apply_token(s: TradeSummary, trade: CompletedTrade, profitable: bool) -> None:
        entry = trade.entry_leg
        token = s.token_performance.get(trade.base_token)
        if token is None:
            address = entry.input_token.address if entry.input_token else ""
            token = TokenStats(token_address=address or "Unknown")
            s.token_performance[trade.base_token] = token
        token.trades += 1
        if profitable:
            token.profitable_trades += 1
        token.net_profit += trade.net_profit_usdc
        token.gas_usage += trade.gas_cost_usdc
        token.average_trade_size = running_mean(
            token.average_trade_size, entry.amount_usdc, token.trades
        )
        token.win_rate = token.profitable_trades / token.trades * 100.0

        breakdown = token.network_breakdown.setdefault(trade.network, TokenNetworkStats())
        breakdown.trades += 1
        breakdown.net_profit += trade.net_profit_usdc
        breakdown.gas_usage += trade.gas_cost_usdc

    @staticmethod
    def _apply_buckets(s: TradeSummary, trade: CompletedTrade) -> None:
        ts = trade.completed_timestamp
        net = trade.net_profit_usdc
        day = day_key(ts)
        week = week_key(ts)
        month = month_key(ts)
        s.daily[day] = s.daily.get(day, 0.0) + net
        s.weekly[week] = s.weekly.get(week, 0.0) + net
        s.monthly[month] = s.monthly.get(month, 0.0) + net
        by_day = s.daily_by_network.setdefault(trade.network, {})
        by_day[day] = by_day.get(day, 0.0) + net

    # -- protocol analytics ---------------------------------------------------

    @staticmethod
    def _rebuild_protocol(s: TradeSummary, history: Sequence[CompletedTrade]) -> None:
        tokens: set[str] = set()
        pools: set[str] = set()
        routers: Counter[str] = Counter()
        pairs: Counter[str] = Counter()
        per_network: dict[str, dict[str, object]] = {}

        for key in (*SUPPORTED_NETWORKS, *(t.network for t in history)):
            per_network.setdefault(
                key, {"tokens": set(), "pools": set(), "routers": Counter(), "pairs": Counter()}
            )

        for trade in history:
            net = per_network[trade.network]
            net_tokens: set[str] = net["tokens"]  # type: ignore[assignment]
            net_pools: set[str] = net["pools"]  # type: ignore[assignment]
            net_routers: Counter[str] = net["routers"]  # type: ignore[assignment]
            net_pairs: Counter[str] = net["pairs"]  # type: ignore[assignment]
            for leg in (trade.entry_leg, trade.exit_leg):
                for ref in (leg.input_token, leg.output_token):
                    if ref is not None and ref.address:
                        tokens.add(ref.address)
                        net_tokens.add(ref.address)
                if leg.pool_address:
                    pools.add(leg.pool_address)
                    net_pools.add(leg.pool_address)
                if leg.router_address:
                    routers[leg.router_address] += 1
                    net_routers[leg.router_address] += 1
            pairs[trade.token_pair] += 1
            net_pairs[trade.token_pair] += 1

        protocol = s.protocol
        protocol.total_unique_tokens = len(tokens)
        protocol.total_unique_pools = len(pools)
        protocol.total_unique_routers = len(routers)
        protocol.most_used_router = _most_common(routers)
        protocol.most_traded_token_pair = _most_common(pairs)
        protocol.average_gas_per_trade = s.average_gas_cost
        protocol.gas_efficiency_trend = gas_efficiency_trend(history)
        protocol.network_stats = {
            key: NetworkProtocolStats(
                unique_tokens=len(data["tokens"]),  # type: ignore[arg-type]
                unique_pools=len(data["pools"]),  # type: ignore[arg-type]
                unique_routers=len(data["routers"]),  # type: ignore[arg-type]
                most_used_router=_most_common(data["routers"]),  # type: ignore[arg-type]
                most_traded_pair=_most_common(data["pairs"]),  # type: ignore[arg-type]
                average_gas_per_trade=(
                    s.network_summary[key].average_gas_cost if key in s.network_summary else 0.0
                ),
            )
            for key, data in per_network.items()
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def gas_efficiency_trend(history: Sequence[CompletedTrade]) -> float:
    """Percent drop in mean gas cost, earliest trades vs most recent.

    Compares the first and last three trades; needs at least six, else 0.
    Positive means gas got cheaper.
    """
    if len(history) < 2 * GAS_TREND_WINDOW:
        return 0.0
    older = sum(t.gas_cost_usdc for t in history[:GAS_TREND_WINDOW]) / GAS_TREND_WINDOW
    recent = sum(t.gas_cost_usdc for t in history[-GAS_TREND_WINDOW:]) / GAS_TREND_WINDOW
    if older <= 0:
        return 0.0
    return (older - recent) / older * 100.0


def rank_networks(gas_stats: dict[str, NetworkGasStats]) -> list[EfficiencyRank]:
    """Networks by mean efficiency score, best first.

    ``gas_cost_rank`` is 1 for the network with the cheapest mean gas cost.
    """
    by_cost = sorted(gas_stats, key=lambda k: (gas_stats[k].average_gas_cost_usdc, k))
    cost_rank = {key: i for i, key in enumerate(by_cost, start=1)}
    ordered = sorted(gas_stats, key=lambda k: (-gas_stats[k].average_efficiency_score, k))
    return [
        EfficiencyRank(
            network=key,
            efficiency_score=gas_stats[key].average_efficiency_score,
            average_execution_time_ms=gas_stats[key].average_execution_time_ms,
            gas_cost_rank=cost_rank[key],
        )
        for key in ordered
    ]


def _most_common(counter: Counter[str]) -> str:
    """Most frequent key; ties go to the key seen first."""
    if not counter:
        return NOT_AVAILABLE
    return counter.most_common(1)[0][0]
