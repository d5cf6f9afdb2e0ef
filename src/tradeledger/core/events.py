"""In-process event system for ledger notifications.

The tracker publishes on an ``EventBus`` after each pass has been durably
committed, so a subscriber (a report writer, a notifier) never observes a
trade that is not yet on disk.

Usage::

    bus = EventBus()
    bus.subscribe(TradeCompleted, on_trade_completed)
    tracker = TradeTracker(config, price_service, event_bus=bus)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Type

from tradeledger.models.completed import CompletedTrade
from tradeledger.models.leg import TradeLeg
from tradeledger.models.summary import TradeSummary

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LegIngested:
    """Emitted once a new leg has been stored."""

    leg: TradeLeg
    matched: bool


@dataclass(frozen=True)
class TradeCompleted:
    """Emitted for every completed trade a pass produced, in append order."""

    trade: CompletedTrade


@dataclass(frozen=True)
class TradeRemoved:
    """Emitted after an administrative removal of a completed trade."""

    trade: CompletedTrade
    remaining: int


@dataclass(frozen=True)
class SummaryRecomputed:
    """Emitted after the summary was rebuilt from the completed set."""

    summary: TradeSummary
    trade_count: int


@dataclass(frozen=True)
class ActiveLegsCleared:
    """Emitted after active legs were cleared administratively."""

    removed: int
    remaining: int
    backup_path: str | None


EventHandler = Callable[[Any], None]


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class EventBus:
    """In-process pub/sub event bus.

    Thread-safe.  Handlers run synchronously on the publishing thread, in
    registration order; a failing handler is logged and does not stop the
    others.
    """

    def __init__(self) -> None:
        self._handlers: dict[Type, list[EventHandler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type, handler: EventHandler) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: Type, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: object) -> None:
        with self._lock:
            handlers = list(self._handlers.get(type(event), []))

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler %s failed for %s",
                    getattr(handler, "__name__", repr(handler)),
                    type(event).__name__,
                )
