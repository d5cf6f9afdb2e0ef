"""Bounded retry with exponential backoff and simple rate limiting.

Price lookups sit on the ingest path, so retries here are bounded twice:
by attempt count and by a total time budget.  Once the budget is spent the
last error propagates and the caller falls back to its static value.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


# ---------------------------------------------------------------------------
# Bounded retry decorator
# ---------------------------------------------------------------------------


def retry(
    max_retries: int = 2,
    base_delay: float = 0.25,
    max_delay: float = 2.0,
    backoff_factor: float = 2.0,
    budget_seconds: float | None = None,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Callable[[F], F]:
    """Retry a function on failure with exponential backoff.

    Parameters
    ----------
    max_retries:
        Retry attempts after the initial call (0 = call once).
    base_delay:
        Delay in seconds before the first retry.
    max_delay:
        Upper bound on any single delay.
    backoff_factor:
        Multiplier applied to the delay after each failure.
    budget_seconds:
        Total wall-clock budget across all attempts.  A retry whose delay
        would overrun the budget is not attempted.  ``None`` = unbounded.
    exceptions:
        Exception types that trigger a retry; anything else propagates
        immediately.
    sleep, clock:
        Injected for tests.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = clock()
            delay = base_delay
            attempts = max_retries + 1
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as exc:
                    elapsed = clock() - started
                    out_of_budget = (
                        budget_seconds is not None and elapsed + delay > budget_seconds
                    )
                    if attempt == attempts or out_of_budget:
                        logger.warning(
                            "%s gave up after %d attempt(s) in %.2fs: %s",
                            func.__qualname__,
                            attempt,
                            elapsed,
                            exc,
                        )
                        raise
                    logger.debug(
                        "%s attempt %d/%d failed: %s (retry in %.2fs)",
                        func.__qualname__,
                        attempt,
                        attempts,
                        exc,
                        delay,
                    )
                    sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper  # type: ignore[return-value]

    return decorator


# ---------------------------------------------------------------------------
# Token-bucket rate limiter
# ---------------------------------------------------------------------------


class RateLimiter:
    """Thread-safe minimum-interval rate limiter.

    Keeps ticker requests under the exchange's public rate limit.  Callers
    that arrive too early block until their slot opens.
    """

    def __init__(
        self,
        calls_per_second: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if calls_per_second <= 0:
            raise ValueError("calls_per_second must be positive")
        self._min_interval = 1.0 / calls_per_second
        self._last_call: float | None = None
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()

    def acquire(self) -> None:
        """Block until a call is allowed."""
        with self._lock:
            now = self._clock()
            if self._last_call is not None:
                wait = self._min_interval - (now - self._last_call)
                if wait > 0:
                    self._sleep(wait)
                    now = self._clock()
            self._last_call = now
