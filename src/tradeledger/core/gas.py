"""Gas cost normalisation into native and quote currency."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from tradeledger.core.constants import (
    DEFAULT_GAS_PRICE_GWEI,
    DEFAULT_GAS_PRICE_WEI,
    DEFAULT_GAS_USED,
    WEI_PER_GWEI,
    WEI_PER_NATIVE,
)
from tradeledger.core.prices import NativePriceService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GasCost:
    """Cost of one on-chain operation.

    ``native_price_usdc`` is the spot price used for the conversion; legs
    keep it so later P&L math never re-derives it.
    """

    gas_used: int
    gas_price_wei: int
    gas_cost_native: float
    gas_cost_usdc: float
    native_price_usdc: float


class GasCostNormalizer:
    """Convert raw gas figures to whole native units and USDC.

    Parameters
    ----------
    price_service:
        Injected native-price lookup; never raises.
    default_gas_used, default_gas_price_wei:
        Conservative substitutes for missing, zero, negative or non-finite
        inputs.
    """

    def __init__(
        self,
        price_service: NativePriceService,
        default_gas_used: int = DEFAULT_GAS_USED,
        default_gas_price_wei: int = DEFAULT_GAS_PRICE_WEI,
    ) -> None:
        self._prices = price_service
        self._default_gas_used = default_gas_used
        self._default_gas_price_wei = default_gas_price_wei

    def normalize(
        self,
        gas_used: float | None,
        gas_price_wei: float | None,
        network: str,
    ) -> GasCost:
        used = _positive_int(gas_used, self._default_gas_used)
        price_wei = _positive_int(gas_price_wei, self._default_gas_price_wei)
        if used != gas_used or price_wei != gas_price_wei:
            logger.debug(
                "Gas defaults applied on %s: gas_used=%r->%d gas_price=%r->%d",
                network,
                gas_used,
                used,
                gas_price_wei,
                price_wei,
            )

        native_price = self._prices.get_price(network)
        if not math.isfinite(native_price) or native_price < 0:
            native_price = 0.0

        cost_native = used * price_wei / WEI_PER_NATIVE
        return GasCost(
            gas_used=used,
            gas_price_wei=price_wei,
            gas_cost_native=cost_native,
            gas_cost_usdc=cost_native * native_price,
            native_price_usdc=native_price,
        )


def _positive_int(value: float | None, default: int) -> int:
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number) or number <= 0:
        return default
    return int(number) or default


def gas_price_gwei(price_wei: float | None) -> float:
    """Wei → gwei; unknown or non-positive prices read as the 25 gwei default."""
    if price_wei is None or not math.isfinite(price_wei) or price_wei <= 0:
        return DEFAULT_GAS_PRICE_GWEI
    return price_wei / WEI_PER_GWEI
