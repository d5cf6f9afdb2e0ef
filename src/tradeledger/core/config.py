"""Validated ledger configuration loaded from ``ledger_settings.json``."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from tradeledger.core.constants import (
    DEFAULT_AMOUNT_TOLERANCE_PCT,
    DEFAULT_BREAKEVEN_BAND_USDC,
    DEFAULT_DATA_DIR,
    DEFAULT_FALLBACK_NATIVE_PRICES,
    DEFAULT_GAS_PRICE_WEI,
    DEFAULT_GAS_USED,
    DEFAULT_NETWORK,
    DEFAULT_PRICE_REFRESH_SECONDS,
    DEFAULT_PRICE_TIMEOUT_SECONDS,
    PRICE_QUOTE_ASSET,
    QUOTE_CURRENCY,
    SUPPORTED_NETWORKS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerConfig:
    """Immutable snapshot of all ledger configuration.

    Build from a settings file via :meth:`from_file`, or construct directly
    for testing.
    """

    data_dir: str = DEFAULT_DATA_DIR
    default_network: str = DEFAULT_NETWORK
    quote_currency: str = QUOTE_CURRENCY
    amount_tolerance_pct: float = DEFAULT_AMOUNT_TOLERANCE_PCT
    breakeven_band_usdc: float = DEFAULT_BREAKEVEN_BAND_USDC
    price_refresh_seconds: float = DEFAULT_PRICE_REFRESH_SECONDS
    price_timeout_seconds: float = DEFAULT_PRICE_TIMEOUT_SECONDS
    price_quote_asset: str = PRICE_QUOTE_ASSET
    fallback_native_prices: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_FALLBACK_NATIVE_PRICES)
    )
    default_gas_used: int = DEFAULT_GAS_USED
    default_gas_price_wei: int = DEFAULT_GAS_PRICE_WEI
    log_dir: str = "logs"
    log_level: str = "INFO"

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    # -- factory ----------------------------------------------------------

    @classmethod
    def from_file(cls, path: Path) -> LedgerConfig:
        """Load from a JSON settings file with validation.

        Missing or unparseable values fall back to defaults.  Validation
        warnings are logged but never raise.
        """
        try:
            raw = path.read_text(encoding="utf-8")
            data: dict[str, Any] = json.loads(raw) or {}
            if not isinstance(data, dict):
                data = {}
        except (OSError, json.JSONDecodeError, TypeError) as exc:
            logger.warning("Could not read config from %s: %s", path, exc)
            data = {}

        cfg = cls(
            data_dir=str(data.get("data_dir") or DEFAULT_DATA_DIR),
            default_network=str(data.get("default_network") or DEFAULT_NETWORK).upper(),
            quote_currency=str(data.get("quote_currency") or QUOTE_CURRENCY).upper(),
            amount_tolerance_pct=_safe_float(
                data.get("amount_tolerance_pct"), DEFAULT_AMOUNT_TOLERANCE_PCT
            ),
            breakeven_band_usdc=_safe_float(
                data.get("breakeven_band_usdc"), DEFAULT_BREAKEVEN_BAND_USDC
            ),
            price_refresh_seconds=_safe_float(
                data.get("price_refresh_seconds"), DEFAULT_PRICE_REFRESH_SECONDS
            ),
            price_timeout_seconds=_safe_float(
                data.get("price_timeout_seconds"), DEFAULT_PRICE_TIMEOUT_SECONDS
            ),
            price_quote_asset=str(data.get("price_quote_asset") or PRICE_QUOTE_ASSET).upper(),
            fallback_native_prices=_parse_prices(data),
            default_gas_used=_safe_int(data.get("default_gas_used"), DEFAULT_GAS_USED),
            default_gas_price_wei=_safe_int(
                data.get("default_gas_price_wei"), DEFAULT_GAS_PRICE_WEI
            ),
            log_dir=str(data.get("log_dir") or "logs"),
            log_level=str(data.get("log_level") or "INFO").upper(),
        )

        for err in cfg.validate():
            logger.warning("Config validation: %s", err)

        return cfg

    # -- validation -------------------------------------------------------

    def validate(self) -> list[str]:
        """Return a list of human-readable validation warnings (empty = OK)."""
        errors: list[str] = []
        if self.default_network not in SUPPORTED_NETWORKS:
            errors.append(
                f"default_network={self.default_network!r} is not a supported network."
            )
        if self.amount_tolerance_pct < 0:
            errors.append(f"amount_tolerance_pct={self.amount_tolerance_pct} must be >= 0.")
        if self.breakeven_band_usdc < 0:
            errors.append(f"breakeven_band_usdc={self.breakeven_band_usdc} must be >= 0.")
        if self.price_refresh_seconds <= 0:
            errors.append(f"price_refresh_seconds={self.price_refresh_seconds} must be > 0.")
        if self.price_timeout_seconds <= 0:
            errors.append(f"price_timeout_seconds={self.price_timeout_seconds} must be > 0.")
        for network in SUPPORTED_NETWORKS:
            price = self.fallback_native_prices.get(network, 0.0)
            if price <= 0:
                errors.append(f"fallback_native_prices[{network}]={price} must be > 0.")
        if self.default_gas_used <= 0:
            errors.append(f"default_gas_used={self.default_gas_used} must be > 0.")
        if self.default_gas_price_wei <= 0:
            errors.append(f"default_gas_price_wei={self.default_gas_price_wei} must be > 0.")
        return errors


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _parse_prices(data: dict[str, Any]) -> dict[str, float]:
    prices = dict(DEFAULT_FALLBACK_NATIVE_PRICES)
    raw = data.get("fallback_native_prices")
    if not isinstance(raw, dict):
        return prices
    for key, value in raw.items():
        price = _safe_float(value, 0.0)
        if price > 0:
            prices[str(key).upper()] = price
    return prices


def _safe_int(value: Any, default: int) -> int:
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return default


def _safe_float(value: Any, default: float) -> float:
    try:
        result = float(str(value).replace("%", "").strip())
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default
