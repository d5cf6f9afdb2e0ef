"""Completed trade data model.

A :class:`CompletedTrade` is produced once, when the matcher pairs an entry
leg with an exit leg, and is appended to ``trades_completed.json``.  It
owns copies of both legs and every derived figure, so reports can be
regenerated without re-running any calculation.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from tradeledger.core.constants import SCHEMA_VERSION
from tradeledger.core.timeutils import format_duration
from tradeledger.models._fields import get_float, get_int, get_mapping, get_str
from tradeledger.models.leg import TradeLeg

TRADE_CATEGORIES = frozenset({"profitable", "loss", "breakeven"})


@dataclass(frozen=True, slots=True)
class LegGasCost:
    """Gas figures for the legs a trade executed on one network."""

    gas_cost_usdc: float
    gas_cost_native: float
    efficiency: float

    def to_dict(self) -> dict[str, object]:
        return {
            "gas_cost_usdc": self.gas_cost_usdc,
            "gas_cost_native": self.gas_cost_native,
            "efficiency": self.efficiency,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> LegGasCost:
        return cls(
            gas_cost_usdc=get_float(data, "gas_cost_usdc"),
            gas_cost_native=get_float(data, "gas_cost_native"),
            efficiency=get_float(data, "efficiency"),
        )


@dataclass(frozen=True, slots=True)
class NetworkCostAnalysis:
    """Spot price and efficiency of the networks a trade touched.

    *gas_cost_comparison* is only populated for cross-network trades.
    """

    average_native_price: float
    network_efficiency_score: float
    gas_cost_comparison: dict[str, LegGasCost] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "average_native_price": self.average_native_price,
            "network_efficiency_score": self.network_efficiency_score,
            "gas_cost_comparison": {k: v.to_dict() for k, v in self.gas_cost_comparison.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> NetworkCostAnalysis:
        comparison = get_mapping(data, "gas_cost_comparison")
        return cls(
            average_native_price=get_float(data, "average_native_price"),
            network_efficiency_score=get_float(data, "network_efficiency_score"),
            gas_cost_comparison={
                str(k): LegGasCost.from_dict(v)
                for k, v in comparison.items()
                if isinstance(v, Mapping)
            },
        )


@dataclass(frozen=True, slots=True)
class GasAnalysis:
    """Per-leg and total gas cost on the trade's primary network."""

    entry_gas_cost_usdc: float
    exit_gas_cost_usdc: float
    total_gas_cost_usdc: float
    entry_gas_cost_native: float
    exit_gas_cost_native: float
    total_gas_cost_native: float
    gas_efficiency: float
    avg_gas_price_gwei: float
    average_native_price: float
    network: str
    native_currency: str
    gas_strategy: str

    def to_dict(self) -> dict[str, object]:
        return {
            "entry_gas_cost_usdc": self.entry_gas_cost_usdc,
            "exit_gas_cost_usdc": self.exit_gas_cost_usdc,
            "total_gas_cost_usdc": self.total_gas_cost_usdc,
            "entry_gas_cost_native": self.entry_gas_cost_native,
            "exit_gas_cost_native": self.exit_gas_cost_native,
            "total_gas_cost_native": self.total_gas_cost_native,
            "gas_efficiency": self.gas_efficiency,
            "avg_gas_price_gwei": self.avg_gas_price_gwei,
            "average_native_price": self.average_native_price,
            "network": self.network,
            "native_currency": self.native_currency,
            "gas_strategy": self.gas_strategy,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> GasAnalysis:
        return cls(
            entry_gas_cost_usdc=get_float(data, "entry_gas_cost_usdc"),
            exit_gas_cost_usdc=get_float(data, "exit_gas_cost_usdc"),
            total_gas_cost_usdc=get_float(data, "total_gas_cost_usdc"),
            entry_gas_cost_native=get_float(data, "entry_gas_cost_native"),
            exit_gas_cost_native=get_float(data, "exit_gas_cost_native"),
            total_gas_cost_native=get_float(data, "total_gas_cost_native"),
            gas_efficiency=get_float(data, "gas_efficiency"),
            avg_gas_price_gwei=get_float(data, "avg_gas_price_gwei"),
            average_native_price=get_float(data, "average_native_price"),
            network=get_str(data, "network"),
            native_currency=get_str(data, "native_currency"),
            gas_strategy=get_str(data, "gas_strategy"),
        )


@dataclass(frozen=True, slots=True)
class AddressSummary:
    """On-chain addresses the two legs went through."""

    token_pair: str
    entry_input_token: str = ""
    entry_output_token: str = ""
    exit_input_token: str = ""
    exit_output_token: str = ""
    routers: tuple[str, ...] = ()
    pools: tuple[str, ...] = ()

    @property
    def total_unique_addresses(self) -> int:
        return len(set(self.routers) | set(self.pools))

    def to_dict(self) -> dict[str, object]:
        return {
            "token_pair": self.token_pair,
            "entry_input_token": self.entry_input_token,
            "entry_output_token": self.entry_output_token,
            "exit_input_token": self.exit_input_token,
            "exit_output_token": self.exit_output_token,
            "routers": list(self.routers),
            "pools": list(self.pools),
            "total_unique_addresses": self.total_unique_addresses,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> AddressSummary:
        return cls(
            token_pair=get_str(data, "token_pair"),
            entry_input_token=get_str(data, "entry_input_token"),
            entry_output_token=get_str(data, "entry_output_token"),
            exit_input_token=get_str(data, "exit_input_token"),
            exit_output_token=get_str(data, "exit_output_token"),
            routers=_str_tuple(data.get("routers")),
            pools=_str_tuple(data.get("pools")),
        )


@dataclass(frozen=True, slots=True)
class CompletedTrade:
    """A matched entry/exit pair with realised P&L.

    Parameters
    ----------
    trade_pair_id:
        ``"pair_<entryLegId>_<exitLegId>"``.
    entry_leg, exit_leg:
        Copies of the consumed legs.
    network:
        Primary network, taken from the entry leg.
    gross_profit_usdc:
        ``exit.amount_usdc - entry.amount_usdc``.
    net_profit_usdc:
        Gross profit minus the gas cost of both legs.
    expected_gross_profit_usdc:
        Profit the exit's expected output implied.  Only derivable when the
        exit sold into the quote currency; otherwise ``0.0`` with
        *expected_profit_known* set to ``False``.
    signal_duration_ms, execution_duration_ms:
        Time between the two legs' signals / executions, never negative.
    trade_category:
        ``"profitable"``, ``"loss"`` or ``"breakeven"``.
    completed_timestamp:
        Unix epoch (seconds) the pair was matched; drives the daily,
        weekly and monthly buckets.
    """

    trade_pair_id: str
    entry_leg: TradeLeg
    exit_leg: TradeLeg
    network: str
    network_name: str
    chain_id: int
    native_currency: str
    is_cross_network: bool
    networks_used: tuple[str, ...]
    gross_profit_usdc: float
    gas_cost_usdc: float
    gas_cost_native: float
    net_profit_usdc: float
    profit_percentage: float
    expected_gross_profit_usdc: float
    expected_profit_known: bool
    actual_vs_expected_difference: float
    actual_vs_expected_percent: float
    total_slippage_impact: float
    price_impact_total: float
    execution_efficiency: float
    signal_duration_ms: float
    execution_duration_ms: float
    avg_signal_to_execution_delay_ms: float
    network_cost_analysis: NetworkCostAnalysis
    gas_analysis: GasAnalysis
    address_summary: AddressSummary
    trade_category: str
    exit_reason: str
    completed_timestamp: float
    headline: str = ""

    # -- convenience ----------------------------------------------------------

    @property
    def token_pair(self) -> str:
        return self.entry_leg.token_pair

    @property
    def base_token(self) -> str:
        return self.entry_leg.base_token

    @property
    def leg_ids(self) -> tuple[str, str]:
        return self.entry_leg.leg_id, self.exit_leg.leg_id

    @property
    def duration_minutes(self) -> float:
        return self.signal_duration_ms / 60_000.0

    @property
    def signal_duration_formatted(self) -> str:
        return format_duration(self.signal_duration_ms)

    @property
    def execution_duration_formatted(self) -> str:
        return format_duration(self.execution_duration_ms)

    @property
    def is_profitable(self) -> bool:
        return self.trade_category == "profitable"

    # -- serialisation --------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        return {
            "schema_version": SCHEMA_VERSION,
            "trade_pair_id": self.trade_pair_id,
            "network": self.network,
            "network_name": self.network_name,
            "chain_id": self.chain_id,
            "native_currency": self.native_currency,
            "is_cross_network": self.is_cross_network,
            "networks_used": list(self.networks_used),
            "entry_leg": self.entry_leg.to_dict(),
            "exit_leg": self.exit_leg.to_dict(),
            "gross_profit_usdc": self.gross_profit_usdc,
            "gas_cost_usdc": self.gas_cost_usdc,
            "gas_cost_native": self.gas_cost_native,
            "net_profit_usdc": self.net_profit_usdc,
            "profit_percentage": self.profit_percentage,
            "expected_gross_profit_usdc": self.expected_gross_profit_usdc,
            "expected_profit_known": self.expected_profit_known,
            "actual_vs_expected_difference": self.actual_vs_expected_difference,
            "actual_vs_expected_percent": self.actual_vs_expected_percent,
            "total_slippage_impact": self.total_slippage_impact,
            "price_impact_total": self.price_impact_total,
            "execution_efficiency": self.execution_efficiency,
            "signal_duration_ms": self.signal_duration_ms,
            "signal_duration_formatted": self.signal_duration_formatted,
            "execution_duration_ms": self.execution_duration_ms,
            "execution_duration_formatted": self.execution_duration_formatted,
            "avg_signal_to_execution_delay_ms": self.avg_signal_to_execution_delay_ms,
            "network_cost_analysis": self.network_cost_analysis.to_dict(),
            "gas_analysis": self.gas_analysis.to_dict(),
            "address_summary": self.address_summary.to_dict(),
            "trade_category": self.trade_category,
            "exit_reason": self.exit_reason,
            "completed_timestamp": self.completed_timestamp,
            "headline": self.headline,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> CompletedTrade:
        """Reconstruct from a current-schema record (see ``ledger.migrations``)."""
        networks = data.get("networks_used")
        return cls(
            trade_pair_id=get_str(data, "trade_pair_id"),
            entry_leg=TradeLeg.from_dict(get_mapping(data, "entry_leg")),
            exit_leg=TradeLeg.from_dict(get_mapping(data, "exit_leg")),
            network=get_str(data, "network"),
            network_name=get_str(data, "network_name"),
            chain_id=get_int(data, "chain_id"),
            native_currency=get_str(data, "native_currency"),
            is_cross_network=bool(data.get("is_cross_network", False)),
            networks_used=_str_tuple(networks),
            gross_profit_usdc=get_float(data, "gross_profit_usdc"),
            gas_cost_usdc=get_float(data, "gas_cost_usdc"),
            gas_cost_native=get_float(data, "gas_cost_native"),
            net_profit_usdc=get_float(data, "net_profit_usdc"),
            profit_percentage=get_float(data, "profit_percentage"),
            expected_gross_profit_usdc=get_float(data, "expected_gross_profit_usdc"),
            expected_profit_known=bool(data.get("expected_profit_known", False)),
            actual_vs_expected_difference=get_float(data, "actual_vs_expected_difference"),
            actual_vs_expected_percent=get_float(data, "actual_vs_expected_percent"),
            total_slippage_impact=get_float(data, "total_slippage_impact"),
            price_impact_total=get_float(data, "price_impact_total"),
            execution_efficiency=get_float(data, "execution_efficiency", 1.0),
            signal_duration_ms=get_float(data, "signal_duration_ms"),
            execution_duration_ms=get_float(data, "execution_duration_ms"),
            avg_signal_to_execution_delay_ms=get_float(data, "avg_signal_to_execution_delay_ms"),
            network_cost_analysis=NetworkCostAnalysis.from_dict(
                get_mapping(data, "network_cost_analysis")
            ),
            gas_analysis=GasAnalysis.from_dict(get_mapping(data, "gas_analysis")),
            address_summary=AddressSummary.from_dict(get_mapping(data, "address_summary")),
            trade_category=get_str(data, "trade_category", "breakeven"),
            exit_reason=get_str(data, "exit_reason"),
            completed_timestamp=get_float(data, "completed_timestamp"),
            headline=get_str(data, "headline"),
        )

    # -- validation -----------------------------------------------------------

    def validate(self) -> list[str]:
        errors: list[str] = []
        if not self.trade_pair_id:
            errors.append("trade_pair_id must not be empty.")
        if self.entry_leg.leg_id == self.exit_leg.leg_id:
            errors.append("entry and exit leg must differ.")
        if self.trade_category not in TRADE_CATEGORIES:
            errors.append(f"trade_category={self.trade_category!r} is not a known category.")
        if self.signal_duration_ms < 0 or self.execution_duration_ms < 0:
            errors.append("durations must be >= 0.")
        return errors


def _str_tuple(val: object) -> tuple[str, ...]:
    if not isinstance(val, (list, tuple)):
        return ()
    return tuple(str(v) for v in val if v)
