"""Native-currency price lookups with caching, timeouts and static fallbacks.

A :class:`NativePriceService` is constructed explicitly and injected into
whatever needs prices (the gas normalizer, the tracker).  It caches one
price per network, refreshes it once the cached value is older than the
configured interval, and never raises: a failing, slow or nonsensical
source is replaced by the configured static price for that network.

Usage::

    service = NativePriceService(
        KuCoinPriceSource(),
        fallback_prices={"AVALANCHE": 28.0, "ARBITRUM": 3500.0},
    )
    avax_usd = service.get_price("AVALANCHE")
"""

from __future__ import annotations

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

import requests

from tradeledger.core.constants import (
    DEFAULT_PRICE_REFRESH_SECONDS,
    DEFAULT_PRICE_TIMEOUT_SECONDS,
    KUCOIN_API_URL,
    PRICE_QUOTE_ASSET,
)
from tradeledger.core.exceptions import PriceLookupError
from tradeledger.core.networks import get_network
from tradeledger.core.retry import RateLimiter, retry

logger = logging.getLogger(__name__)


class PriceSource(ABC):
    """Abstract native-currency price source."""

    @abstractmethod
    def fetch_price(self, network: str) -> float:
        """Return the current price of *network*'s native currency in USD.

        Raise :class:`PriceLookupError` (or any transport error) on failure.
        """


class StaticPriceSource(PriceSource):
    """Fixed prices per network; useful offline and in tests."""

    def __init__(self, prices: Mapping[str, float]) -> None:
        self._prices = {k.upper(): float(v) for k, v in prices.items()}

    def fetch_price(self, network: str) -> float:
        try:
            return self._prices[network.upper()]
        except KeyError:
            raise PriceLookupError(f"no static price for {network}") from None


# ---------------------------------------------------------------------------
# KuCoin implementation
# ---------------------------------------------------------------------------


class KuCoinPriceSource(PriceSource):
    """Native price from the KuCoin public level-1 ticker.

    No authentication required.  The ticker is quoted in *quote_asset*
    (USDT by default), which is treated as 1:1 with USDC.
    """

    def __init__(
        self,
        quote_asset: str = PRICE_QUOTE_ASSET,
        base_url: str = KUCOIN_API_URL,
        request_timeout: float = DEFAULT_PRICE_TIMEOUT_SECONDS,
        calls_per_second: float = 2.0,
        session: requests.Session | None = None,
    ) -> None:
        self._quote = quote_asset.upper()
        self._base_url = base_url.rstrip("/")
        self._request_timeout = request_timeout
        self._rate_limiter = RateLimiter(calls_per_second)
        self._session = session or requests.Session()

    def symbol_for(self, network: str) -> str:
        """``"AVALANCHE"`` → ``"AVAX-USDT"``."""
        return f"{get_network(network).native_currency}-{self._quote}"

    def fetch_price(self, network: str) -> float:
        return self._fetch_ticker(self.symbol_for(network))

    @retry(
        max_retries=2,
        base_delay=0.25,
        max_delay=1.0,
        budget_seconds=DEFAULT_PRICE_TIMEOUT_SECONDS,
        exceptions=(requests.RequestException, PriceLookupError),
    )
    def _fetch_ticker(self, symbol: str) -> float:
        self._rate_limiter.acquire()
        resp = self._session.get(
            f"{self._base_url}/api/v1/market/orderbook/level1",
            params={"symbol": symbol},
            timeout=self._request_timeout,
        )
        resp.raise_for_status()
        return self._parse_ticker(symbol, resp.json())

    @staticmethod
    def _parse_ticker(symbol: str, payload: object) -> float:
        """Extract ``data.price`` from a KuCoin ticker response.

        KuCoin wraps every response as ``{"code": "200000", "data": {...}}``;
        any other code, or a missing/unparseable price, is a lookup failure.
        """
        if not isinstance(payload, dict) or str(payload.get("code")) != "200000":
            raise PriceLookupError(f"unexpected ticker response for {symbol}: {payload!r}")
        data = payload.get("data")
        if not isinstance(data, dict):
            raise PriceLookupError(f"ticker for {symbol} has no data")
        try:
            return float(data["price"])
        except (KeyError, TypeError, ValueError) as exc:
            raise PriceLookupError(f"ticker for {symbol} has no usable price") from exc


# ---------------------------------------------------------------------------
# Cached service
# ---------------------------------------------------------------------------


class NativePriceService:
    """Per-network cached native price with timeout and static fallback.

    Parameters
    ----------
    source:
        Where live prices come from.
    fallback_prices:
        Static USD price per network key, used whenever *source* fails,
        times out or returns a non-positive price.
    refresh_interval:
        Seconds a cached price (live or fallback) stays fresh.
    timeout:
        Hard upper bound in seconds on a single lookup.
    clock:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        source: PriceSource,
        fallback_prices: Mapping[str, float],
        refresh_interval: float = DEFAULT_PRICE_REFRESH_SECONDS,
        timeout: float = DEFAULT_PRICE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._fallbacks = {k.upper(): float(v) for k, v in fallback_prices.items()}
        self._refresh_interval = refresh_interval
        self._timeout = timeout
        self._clock = clock
        self._prices: dict[str, float] = {}
        self._updated_at: dict[str, float] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="price-lookup")

    # -- public API -----------------------------------------------------------

    def get_price(self, network: str) -> float:
        """Cached price for *network*, refreshed if stale."""
        network = network.upper()
        with self._lock:
            updated = self._updated_at.get(network)
            if updated is not None and self._clock() - updated < self._refresh_interval:
                return self._prices[network]
        return self.refresh(network)

    def refresh(self, network: str) -> float:
        """Force a lookup for *network* and cache the result."""
        network = network.upper()
        price = self._lookup(network)
        with self._lock:
            self._prices[network] = price
            self._updated_at[network] = self._clock()
        return price

    def fallback_price(self, network: str) -> float:
        return self._fallbacks.get(network.upper(), 0.0)

    def cached_prices(self) -> dict[str, float]:
        with self._lock:
            return dict(self._prices)

    def close(self) -> None:
        """Release the lookup worker threads."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> NativePriceService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- internals ------------------------------------------------------------

    def _lookup(self, network: str) -> float:
        fallback = self.fallback_price(network)
        future = self._executor.submit(self._source.fetch_price, network)
        try:
            price = float(future.result(timeout=self._timeout))
        except FutureTimeoutError:
            future.cancel()
            logger.warning(
                "Price lookup for %s timed out after %.1fs, using fallback %.4f",
                network,
                self._timeout,
                fallback,
            )
            return fallback
        except Exception as exc:
            logger.warning(
                "Price lookup for %s failed (%s), using fallback %.4f", network, exc, fallback
            )
            return fallback

        if not math.isfinite(price) or price <= 0:
            logger.warning(
                "Price source returned %r for %s, using fallback %.4f", price, network, fallback
            )
            return fallback
        logger.debug("Native price for %s updated: %.4f", network, price)
        return price
