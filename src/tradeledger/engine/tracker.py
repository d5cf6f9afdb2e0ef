"""Trade tracker: the serialized ingest pass over the ledger.

Each call to :meth:`TradeTracker.ingest_leg` runs one pass::

    validate -> resolve network -> normalise gas (price lookup)
    -> [lock] load -> append -> match -> build trades -> fold summary
    -> double-consumption check -> commit [unlock] -> publish events

Price lookups happen before the lock is taken so a slow price source never
holds up other passes.  Events are published only once the pass has been
committed.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from tradeledger.core.config import LedgerConfig
from tradeledger.core.events import (
    ActiveLegsCleared,
    EventBus,
    LegIngested,
    SummaryRecomputed,
    TradeCompleted,
    TradeRemoved,
)
from tradeledger.core.exceptions import DoubleConsumptionError
from tradeledger.core.gas import GasCostNormalizer
from tradeledger.core.logging_setup import PACKAGE_LOGGER, setup_logger
from tradeledger.core.networks import resolve_network
from tradeledger.core.prices import KuCoinPriceSource, NativePriceService, PriceSource
from tradeledger.engine.aggregator import SummaryAggregator, summary_covers
from tradeledger.engine.legs import build_leg
from tradeledger.engine.matcher import LegMatcher, LegPair
from tradeledger.engine.pnl import PnLCalculator
from tradeledger.ledger.store import FileLedgerStore, LedgerStore
from tradeledger.models.completed import CompletedTrade
from tradeledger.models.leg import TradeLeg
from tradeledger.models.leg_event import LegEvent
from tradeledger.models.summary import TradeSummary
from tradeledger.models.types import LegId, NetworkKey, TradePairId

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NetworkTrades:
    """Active legs and completed trades of one network."""

    network: str
    active: list[TradeLeg]
    completed: list[CompletedTrade]


@dataclass(frozen=True, slots=True)
class NetworkComparison:
    """Headline figures of one network, side by side with the others."""

    total_trades: int
    total_profit: float
    average_gas_cost: float
    win_rate: float
    efficiency: float


class TradeTracker:
    """Ingests legs, pairs them and keeps the ledger documents current.

    Parameters
    ----------
    config:
        Ledger configuration snapshot.
    price_service:
        Native price lookups for gas normalisation.
    store:
        Persistence backend.  Defaults to a :class:`FileLedgerStore` under
        ``config.data_dir``.
    event_bus:
        Bus that receives ledger events.  A private bus is created when
        omitted; reach it through :attr:`event_bus`.
    clock:
        Wall-clock source (epoch seconds) for leg ids, default timestamps
        and ``completed_timestamp``.
    """

    def __init__(
        self,
        config: LedgerConfig,
        price_service: NativePriceService,
        store: LedgerStore | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._store = store if store is not None else FileLedgerStore(config.data_path)
        self._bus = event_bus if event_bus is not None else EventBus()
        self._clock = clock
        self._gas = GasCostNormalizer(
            price_service,
            default_gas_used=config.default_gas_used,
            default_gas_price_wei=config.default_gas_price_wei,
        )
        self._matcher = LegMatcher(config.amount_tolerance_pct)
        self._pnl = PnLCalculator(
            quote_currency=config.quote_currency,
            breakeven_band=config.breakeven_band_usdc,
            clock=clock,
        )
        self._aggregator = SummaryAggregator()
        self._lock = threading.Lock()
        self._owned_prices: NativePriceService | None = None

    @classmethod
    def from_config(
        cls,
        config: LedgerConfig,
        source: PriceSource | None = None,
        event_bus: EventBus | None = None,
    ) -> TradeTracker:
        """Wire a tracker for production use.

        Configures the ``tradeledger`` logger from *config* and builds a
        :class:`NativePriceService` over *source* (KuCoin by default).  The
        tracker owns that service; call :meth:`close` when done.
        """
        setup_logger(PACKAGE_LOGGER, Path(config.log_dir), config.log_level)
        if source is None:
            source = KuCoinPriceSource(
                quote_asset=config.price_quote_asset,
                request_timeout=config.price_timeout_seconds,
            )
        prices = NativePriceService(
            source,
            fallback_prices=config.fallback_native_prices,
            refresh_interval=config.price_refresh_seconds,
            timeout=config.price_timeout_seconds,
        )
        tracker = cls(config, prices, event_bus=event_bus)
        tracker._owned_prices = prices
        logger.info(
            "Tracker ready: data_dir=%s default_network=%s tolerance=%.1f%%",
            config.data_dir,
            config.default_network,
            config.amount_tolerance_pct,
        )
        return tracker

    def close(self) -> None:
        """Release the price service if this tracker created it."""
        if self._owned_prices is not None:
            self._owned_prices.close()
            self._owned_prices = None

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    # -- ingestion ------------------------------------------------------------

    def ingest_leg(self, raw: LegEvent | Mapping[str, object]) -> LegId:
        """Store a new leg, pair whatever can be paired, and return its id.

        Raises
        ------
        LegValidationError
            If *raw* is structurally invalid.  Nothing is stored.
        PersistenceError
            If the pass could not be committed.  Nothing is published.
        """
        event = raw if isinstance(raw, LegEvent) else LegEvent.from_dict(raw)
        network = resolve_network(event.network, self._config.default_network)
        gas = self._gas.normalize(event.gas_used, event.gas_price_wei, network.key)
        leg = build_leg(event, network, gas, self._clock(), self._config.quote_currency)

        if leg.amount_usdc <= 0:
            logger.warning(
                "Leg %s (%s %s) has no usable %s amount; it will never match",
                leg.leg_id,
                leg.side,
                leg.token_pair,
                self._config.quote_currency,
            )
        if not leg.is_matchable:
            logger.info("Leg %s stored as failed: %s", leg.leg_id, leg.error_message or "no reason")

        with self._lock:
            active = self._store.load_active()
            completed = self._store.load_completed()
            summary = self._load_summary(completed)

            active.append(leg)
            pairs = self._matcher.find_pairs(active)
            _check_consumption(pairs, active, completed)

            new_trades: list[CompletedTrade] = []
            consumed: set[str] = set()
            for pair in pairs:
                trade = self._pnl.build(pair.entry, pair.exit)
                completed.append(trade)
                summary = self._aggregator.fold(summary, trade, completed)
                new_trades.append(trade)
                consumed.update(trade.leg_ids)

            remaining = [x for x in active if x.leg_id not in consumed]
            self._store.commit(active=remaining, completed=completed, summary=summary)

        logger.debug(
            "Ingested %s (%s %s on %s): %d trade(s) completed, %d leg(s) active",
            leg.leg_id,
            leg.side,
            leg.token_pair,
            leg.network,
            len(new_trades),
            len(remaining),
        )
        self._bus.publish(LegIngested(leg=leg, matched=leg.leg_id in consumed))
        for trade in new_trades:
            self._bus.publish(TradeCompleted(trade=trade))
        return leg.leg_id

    # -- administration -------------------------------------------------------

    def remove_completed_trade(self, trade_pair_id: TradePairId) -> bool:
        """Delete a completed trade and rebuild the summary.

        Returns ``False`` when no trade has that id.
        """
        with self._lock:
            completed = self._store.load_completed()
            kept = [t for t in completed if t.trade_pair_id != trade_pair_id]
            if len(kept) == len(completed):
                logger.warning("Trade pair %s not found in completed trades", trade_pair_id)
                return False
            removed = next(t for t in completed if t.trade_pair_id == trade_pair_id)
            summary = self._aggregator.recompute(kept)
            self._store.commit(completed=kept, summary=summary)

        logger.info("Removed trade pair %s, %d trade(s) remain", trade_pair_id, len(kept))
        self._bus.publish(TradeRemoved(trade=removed, remaining=len(kept)))
        self._bus.publish(SummaryRecomputed(summary=summary, trade_count=len(kept)))
        return True

    def recalculate_summary(self) -> TradeSummary:
        """Rebuild the summary from the completed set and store it."""
        with self._lock:
            completed = self._store.load_completed()
            summary = self._aggregator.recompute(completed)
            self._store.commit(summary=summary)
        self._bus.publish(SummaryRecomputed(summary=summary, trade_count=len(completed)))
        return summary

    def clear_active_legs(
        self,
        network: str | None = None,
        leg_id: str | None = None,
        older_than_minutes: float | None = None,
        backup: bool = False,
        confirm: bool = True,
    ) -> int:
        """Drop unmatched legs from the active set; return how many.

        At most one filter applies, checked in order *network*, *leg_id*,
        *older_than_minutes* (by signal time); with none, every active leg
        is cleared.  With ``confirm=False`` nothing is removed and the
        selection is only logged.
        """
        with self._lock:
            active = self._store.load_active()
            if not active:
                logger.info("No active legs to clear")
                return 0

            if network is not None:
                key = resolve_network(network, self._config.default_network).key
                selected = [x for x in active if x.network == key]
            elif leg_id is not None:
                selected = [x for x in active if x.leg_id == leg_id]
            elif older_than_minutes is not None:
                cutoff = self._clock() - older_than_minutes * 60.0
                selected = [x for x in active if x.signal_timestamp < cutoff]
            else:
                selected = list(active)

            if not selected:
                logger.info("No active legs match the clearing criteria")
                return 0
            if not confirm:
                logger.warning(
                    "Confirmation required; would clear %d leg(s): %s",
                    len(selected),
                    ", ".join(x.leg_id for x in selected),
                )
                return 0

            backup_path = None
            if backup:
                backup_path = self._store.backup_active(str(int(self._clock() * 1000)))
            dropped = {x.leg_id for x in selected}
            remaining = [x for x in active if x.leg_id not in dropped]
            self._store.commit(active=remaining)

        logger.info("Cleared %d active leg(s), %d remain", len(selected), len(remaining))
        self._bus.publish(
            ActiveLegsCleared(
                removed=len(selected), remaining=len(remaining), backup_path=backup_path
            )
        )
        return len(selected)

    # -- queries --------------------------------------------------------------

    def active_legs(self) -> list[TradeLeg]:
        with self._lock:
            return self._store.load_active()

    def completed_trades(self) -> list[CompletedTrade]:
        with self._lock:
            return self._store.load_completed()

    def summary(self) -> TradeSummary:
        """Current summary, rebuilt from the completed set if the stored one
        is missing or out of step with it."""
        with self._lock:
            return self._load_summary(self._store.load_completed())

    def trades_by_network(self, network: str) -> NetworkTrades:
        key = resolve_network(network, self._config.default_network).key
        with self._lock:
            active = self._store.load_active()
            completed = self._store.load_completed()
        return NetworkTrades(
            network=key,
            active=[x for x in active if x.network == key],
            completed=[t for t in completed if t.network == key],
        )

    def network_comparison(self) -> dict[NetworkKey, NetworkComparison]:
        """Per-network totals with the efficiency score from the ranking."""
        summary = self.summary()
        efficiency = {
            r.network: r.efficiency_score for r in summary.cross_network.efficiency_ranking
        }
        return {
            network: NetworkComparison(
                total_trades=stats.total_trades,
                total_profit=stats.total_net_profit,
                average_gas_cost=stats.average_gas_cost,
                win_rate=stats.win_rate,
                efficiency=efficiency.get(network, 0.0),
            )
            for network, stats in summary.network_summary.items()
        }

    # -- internals ------------------------------------------------------------

    def _load_summary(self, completed: Sequence[CompletedTrade]) -> TradeSummary:
        summary = self._store.load_summary()
        if summary is None:
            return self._aggregator.recompute(completed)
        if not summary_covers(summary, completed):
            logger.warning(
                "Stored summary covers %d trade(s) but %d are completed; rebuilding",
                summary.total_trades,
                len(completed),
            )
            return self._aggregator.recompute(completed)
        return summary


def _check_consumption(
    pairs: Sequence[LegPair],
    active: Sequence[TradeLeg],
    completed: Sequence[CompletedTrade],
) -> None:
    """Every paired leg must be active, unpaired before, and paired once."""
    active_ids = {x.leg_id for x in active}
    already = {leg_id for t in completed for leg_id in t.leg_ids}
    seen: set[str] = set()
    for pair in pairs:
        for leg_id in (pair.entry.leg_id, pair.exit.leg_id):
            if leg_id in seen or leg_id in already or leg_id not in active_ids:
                raise DoubleConsumptionError(f"leg {leg_id} would be consumed more than once")
            seen.add(leg_id)
