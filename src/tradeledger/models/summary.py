"""Rolling trade summary data model.

Unlike the other models the summary is *mutable*: the aggregator folds each
completed trade into it in place.  It is persisted as
``trades_summary.json`` after every pass and can always be rebuilt from the
completed-trade set.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field
from typing import TypeVar

from tradeledger.core.constants import SCHEMA_VERSION
from tradeledger.models._fields import get_float, get_int, get_mapping, get_str

NOT_AVAILABLE = "N/A"

T = TypeVar("T")


@dataclass(slots=True)
class NetworkStats:
    """Counters for the trades whose primary network is one network."""

    native_currency: str = ""
    total_trades: int = 0
    profitable_trades: int = 0
    losing_trades: int = 0
    breakeven_trades: int = 0
    total_gross_profit: float = 0.0
    total_net_profit: float = 0.0
    total_gas_costs: float = 0.0
    average_profit: float = 0.0
    average_gas_cost: float = 0.0
    win_rate: float = 0.0
    average_trade_duration: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> NetworkStats:
        return cls(
            native_currency=get_str(data, "native_currency"),
            total_trades=get_int(data, "total_trades"),
            profitable_trades=get_int(data, "profitable_trades"),
            losing_trades=get_int(data, "losing_trades"),
            breakeven_trades=get_int(data, "breakeven_trades"),
            total_gross_profit=get_float(data, "total_gross_profit"),
            total_net_profit=get_float(data, "total_net_profit"),
            total_gas_costs=get_float(data, "total_gas_costs"),
            average_profit=get_float(data, "average_profit"),
            average_gas_cost=get_float(data, "average_gas_cost"),
            win_rate=get_float(data, "win_rate"),
            average_trade_duration=get_float(data, "average_trade_duration"),
        )


@dataclass(slots=True)
class TokenNetworkStats:
    trades: int = 0
    net_profit: float = 0.0
    gas_usage: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TokenNetworkStats:
        return cls(
            trades=get_int(data, "trades"),
            net_profit=get_float(data, "net_profit"),
            gas_usage=get_float(data, "gas_usage"),
        )


@dataclass(slots=True)
class TokenStats:
    """Performance of one base token across every network."""

    trades: int = 0
    profitable_trades: int = 0
    net_profit: float = 0.0
    gas_usage: float = 0.0
    average_trade_size: float = 0.0
    win_rate: float = 0.0
    token_address: str = "Unknown"
    network_breakdown: dict[str, TokenNetworkStats] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TokenStats:
        return cls(
            trades=get_int(data, "trades"),
            profitable_trades=get_int(data, "profitable_trades"),
            net_profit=get_float(data, "net_profit"),
            gas_usage=get_float(data, "gas_usage"),
            average_trade_size=get_float(data, "average_trade_size"),
            win_rate=get_float(data, "win_rate"),
            token_address=get_str(data, "token_address", "Unknown"),
            network_breakdown=_sub(data, "network_breakdown", TokenNetworkStats.from_dict),
        )


@dataclass(slots=True)
class NetworkGasStats:
    """Running means of per-trade gas cost and efficiency on one network."""

    total_trades: int = 0
    average_gas_cost_usdc: float = 0.0
    average_gas_cost_native: float = 0.0
    average_native_price: float = 0.0
    average_efficiency_score: float = 0.0
    average_execution_time_ms: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> NetworkGasStats:
        return cls(
            total_trades=get_int(data, "total_trades"),
            average_gas_cost_usdc=get_float(data, "average_gas_cost_usdc"),
            average_gas_cost_native=get_float(data, "average_gas_cost_native"),
            average_native_price=get_float(data, "average_native_price"),
            average_efficiency_score=get_float(data, "average_efficiency_score"),
            average_execution_time_ms=get_float(data, "average_execution_time_ms"),
        )


@dataclass(frozen=True, slots=True)
class EfficiencyRank:
    """One row of the network efficiency ranking (best first)."""

    network: str
    efficiency_score: float
    average_execution_time_ms: float
    gas_cost_rank: int

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> EfficiencyRank:
        return cls(
            network=get_str(data, "network"),
            efficiency_score=get_float(data, "efficiency_score"),
            average_execution_time_ms=get_float(data, "average_execution_time_ms"),
            gas_cost_rank=get_int(data, "gas_cost_rank"),
        )


@dataclass(slots=True)
class CrossNetworkAnalytics:
    total_cross_network_trades: int = 0
    network_distribution: dict[str, int] = field(default_factory=dict)
    gas_cost_comparison: dict[str, NetworkGasStats] = field(default_factory=dict)
    efficiency_ranking: list[EfficiencyRank] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> CrossNetworkAnalytics:
        distribution = get_mapping(data, "network_distribution")
        ranking = data.get("efficiency_ranking")
        return cls(
            total_cross_network_trades=get_int(data, "total_cross_network_trades"),
            network_distribution={str(k): get_int(distribution, k) for k in distribution},
            gas_cost_comparison=_sub(data, "gas_cost_comparison", NetworkGasStats.from_dict),
            efficiency_ranking=[
                EfficiencyRank.from_dict(row)
                for row in (ranking if isinstance(ranking, list) else [])
                if isinstance(row, Mapping)
            ],
        )


@dataclass(frozen=True, slots=True)
class NetworkProtocolStats:
    unique_tokens: int = 0
    unique_pools: int = 0
    unique_routers: int = 0
    most_used_router: str = NOT_AVAILABLE
    most_traded_pair: str = NOT_AVAILABLE
    average_gas_per_trade: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> NetworkProtocolStats:
        return cls(
            unique_tokens=get_int(data, "unique_tokens"),
            unique_pools=get_int(data, "unique_pools"),
            unique_routers=get_int(data, "unique_routers"),
            most_used_router=get_str(data, "most_used_router", NOT_AVAILABLE),
            most_traded_pair=get_str(data, "most_traded_pair", NOT_AVAILABLE),
            average_gas_per_trade=get_float(data, "average_gas_per_trade"),
        )


@dataclass(slots=True)
class ProtocolAnalytics:
    """Protocol usage, rebuilt from the full completed set on every fold."""

    total_unique_tokens: int = 0
    total_unique_pools: int = 0
    total_unique_routers: int = 0
    most_used_router: str = NOT_AVAILABLE
    most_traded_token_pair: str = NOT_AVAILABLE
    average_gas_per_trade: float = 0.0
    gas_efficiency_trend: float = 0.0
    network_stats: dict[str, NetworkProtocolStats] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ProtocolAnalytics:
        return cls(
            total_unique_tokens=get_int(data, "total_unique_tokens"),
            total_unique_pools=get_int(data, "total_unique_pools"),
            total_unique_routers=get_int(data, "total_unique_routers"),
            most_used_router=get_str(data, "most_used_router", NOT_AVAILABLE),
            most_traded_token_pair=get_str(data, "most_traded_token_pair", NOT_AVAILABLE),
            average_gas_per_trade=get_float(data, "average_gas_per_trade"),
            gas_efficiency_trend=get_float(data, "gas_efficiency_trend"),
            network_stats=_sub(data, "network_stats", NetworkProtocolStats.from_dict),
        )


@dataclass(slots=True)
class TradeSummary:
    """Rolling aggregate over every completed trade.

    ``win_rate`` fields are percentages (0-100).  Durations are minutes.
    ``last_updated`` is the completed timestamp of the last trade folded in,
    so an incremental fold and a full recomputation agree on it.
    """

    schema_version: int = SCHEMA_VERSION
    last_updated: float = 0.0
    total_trades: int = 0
    profitable_trades: int = 0
    losing_trades: int = 0
    breakeven_trades: int = 0
    total_gross_profit: float = 0.0
    total_gas_costs: float = 0.0
    total_net_profit: float = 0.0
    average_profit: float = 0.0
    average_gas_cost: float = 0.0
    win_rate: float = 0.0
    total_expected_profit: float = 0.0
    total_actual_vs_expected_diff: float = 0.0
    average_slippage_impact: float = 0.0
    execution_efficiency_avg: float = 0.0
    average_trade_duration: float = 0.0
    longest_trade: float = 0.0
    shortest_trade: float = 0.0
    network_summary: dict[str, NetworkStats] = field(default_factory=dict)
    token_performance: dict[str, TokenStats] = field(default_factory=dict)
    daily: dict[str, float] = field(default_factory=dict)
    weekly: dict[str, float] = field(default_factory=dict)
    monthly: dict[str, float] = field(default_factory=dict)
    daily_by_network: dict[str, dict[str, float]] = field(default_factory=dict)
    cross_network: CrossNetworkAnalytics = field(default_factory=CrossNetworkAnalytics)
    protocol: ProtocolAnalytics = field(default_factory=ProtocolAnalytics)

    # -- serialisation --------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TradeSummary:
        by_network = get_mapping(data, "daily_by_network")
        return cls(
            schema_version=get_int(data, "schema_version", SCHEMA_VERSION),
            last_updated=get_float(data, "last_updated"),
            total_trades=get_int(data, "total_trades"),
            profitable_trades=get_int(data, "profitable_trades"),
            losing_trades=get_int(data, "losing_trades"),
            breakeven_trades=get_int(data, "breakeven_trades"),
            total_gross_profit=get_float(data, "total_gross_profit"),
            total_gas_costs=get_float(data, "total_gas_costs"),
            total_net_profit=get_float(data, "total_net_profit"),
            average_profit=get_float(data, "average_profit"),
            average_gas_cost=get_float(data, "average_gas_cost"),
            win_rate=get_float(data, "win_rate"),
            total_expected_profit=get_float(data, "total_expected_profit"),
            total_actual_vs_expected_diff=get_float(data, "total_actual_vs_expected_diff"),
            average_slippage_impact=get_float(data, "average_slippage_impact"),
            execution_efficiency_avg=get_float(data, "execution_efficiency_avg"),
            average_trade_duration=get_float(data, "average_trade_duration"),
            longest_trade=get_float(data, "longest_trade"),
            shortest_trade=get_float(data, "shortest_trade"),
            network_summary=_sub(data, "network_summary", NetworkStats.from_dict),
            token_performance=_sub(data, "token_performance", TokenStats.from_dict),
            daily=_buckets(get_mapping(data, "daily")),
            weekly=_buckets(get_mapping(data, "weekly")),
            monthly=_buckets(get_mapping(data, "monthly")),
            daily_by_network={
                str(k): _buckets(v) for k, v in by_network.items() if isinstance(v, Mapping)
            },
            cross_network=CrossNetworkAnalytics.from_dict(get_mapping(data, "cross_network")),
            protocol=ProtocolAnalytics.from_dict(get_mapping(data, "protocol")),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sub(
    data: Mapping[str, object], key: str, factory: Callable[[Mapping[str, object]], T]
) -> dict[str, T]:
    raw = get_mapping(data, key)
    return {str(k): factory(v) for k, v in raw.items() if isinstance(v, Mapping)}


def _buckets(raw: Mapping[str, object]) -> dict[str, float]:
    return {str(k): get_float(raw, k) for k in raw}
