"""Trade leg data model.

A :class:`TradeLeg` is one confirmed (or failed) swap: the entry ``buy`` or
the exit ``sell`` / ``sellsl`` / ``selltp`` half of a round trip.  Legs are
immutable once created; they sit in ``trades_active.json`` until the
matcher consumes them into a completed trade, which keeps its own copies.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass

from tradeledger.core.constants import (
    ENTRY_SIDES,
    LEG_STATUSES,
    QUOTE_CURRENCY,
    SCHEMA_VERSION,
    SIGNAL_TYPES,
    VALID_SIDES,
    WRAPPED_NATIVE_TOKENS,
)
from tradeledger.models._fields import (
    get_float,
    get_int,
    get_mapping,
    get_str,
    opt_float,
    opt_int,
)


@dataclass(frozen=True, slots=True)
class TokenRef:
    """A token as seen on-chain: symbol, contract address, decimals."""

    symbol: str
    address: str = ""
    decimals: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {"symbol": self.symbol, "address": self.address, "decimals": self.decimals}

    @classmethod
    def from_dict(cls, data: Mapping[str, object] | None) -> TokenRef | None:
        if not data:
            return None
        symbol = get_str(data, "symbol")
        address = get_str(data, "address")
        if not symbol and not address:
            return None
        return cls(symbol=symbol, address=address, decimals=opt_int(data.get("decimals")))


@dataclass(frozen=True, slots=True)
class TradeLeg:
    """One side of a round-trip trade.

    Parameters
    ----------
    leg_id:
        Unique id generated at creation.
    side:
        ``"buy"``, ``"sell"``, ``"sellsl"`` or ``"selltp"``.
    product:
        The product string as received, e.g. ``"AVAX/USDC"``.
    token_pair, base_token, quote_token:
        Derived from *product*; bare native symbols are replaced by their
        wrapped token (``AVAX`` → ``WAVAX``).
    network, network_name, chain_id, native_currency, explorer_url:
        Canonical network context from the resolver.
    signal_timestamp:
        Unix epoch (seconds) the originating signal was received.
    execution_timestamp:
        Unix epoch (seconds) the swap confirmed; always strictly after
        *signal_timestamp*.
    amount_usdc:
        Quote-currency size of the leg.  ``0.0`` means the size could not
        be determined; such a leg is stored but never matched.
    gas_cost_native, gas_cost_usdc, native_price_usdc:
        Normalised gas cost and the spot price used for the conversion,
        captured once at creation.
    status:
        ``"pending"``, ``"completed"`` or ``"failed"``.
    """

    leg_id: str
    side: str
    product: str
    token_pair: str
    base_token: str
    quote_token: str
    network: str
    network_name: str
    chain_id: int
    native_currency: str
    explorer_url: str
    signal_timestamp: float
    execution_timestamp: float
    amount_usdc: float
    gas_used: int = 0
    effective_gas_price: int = 0
    gas_cost_native: float = 0.0
    gas_cost_usdc: float = 0.0
    native_price_usdc: float = 0.0
    status: str = "pending"
    exchange: str = ""
    trade_direction: str = ""
    amount_in: float | None = None
    amount_out: float | None = None
    expected_output: float | None = None
    slippage_actual_pct: float = 0.0
    price_impact: float = 0.0
    input_token: TokenRef | None = None
    output_token: TokenRef | None = None
    router_address: str = ""
    pool_address: str = ""
    pool_fee: int | None = None
    tx_hash: str = ""
    block_number: int | None = None
    webhook_id: str = ""
    error_message: str = ""

    # -- convenience ----------------------------------------------------------

    @property
    def is_entry(self) -> bool:
        return self.side in ENTRY_SIDES

    @property
    def signal_type(self) -> str:
        return SIGNAL_TYPES.get(self.side, "Regular Sell")

    @property
    def is_matchable(self) -> bool:
        """``True`` if the matcher may consider this leg at all."""
        return self.status != "failed"

    @property
    def signal_to_execution_delay_ms(self) -> float:
        return max(0.0, (self.execution_timestamp - self.signal_timestamp) * 1000.0)

    @property
    def tx_url(self) -> str:
        return f"{self.explorer_url}/tx/{self.tx_hash}" if self.tx_hash else ""

    # -- serialisation --------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        return {
            "schema_version": SCHEMA_VERSION,
            "leg_id": self.leg_id,
            "side": self.side,
            "signal_type": self.signal_type,
            "is_entry": self.is_entry,
            "product": self.product,
            "token_pair": self.token_pair,
            "base_token": self.base_token,
            "quote_token": self.quote_token,
            "network": self.network,
            "network_name": self.network_name,
            "chain_id": self.chain_id,
            "native_currency": self.native_currency,
            "explorer_url": self.explorer_url,
            "signal_timestamp": self.signal_timestamp,
            "execution_timestamp": self.execution_timestamp,
            "amount_usdc": self.amount_usdc,
            "gas_used": self.gas_used,
            "effective_gas_price": self.effective_gas_price,
            "gas_cost_native": self.gas_cost_native,
            "gas_cost_usdc": self.gas_cost_usdc,
            "native_price_usdc": self.native_price_usdc,
            "status": self.status,
            "exchange": self.exchange,
            "trade_direction": self.trade_direction,
            "amount_in": self.amount_in,
            "amount_out": self.amount_out,
            "expected_output": self.expected_output,
            "slippage_actual_pct": self.slippage_actual_pct,
            "price_impact": self.price_impact,
            "input_token": self.input_token.to_dict() if self.input_token else None,
            "output_token": self.output_token.to_dict() if self.output_token else None,
            "router_address": self.router_address,
            "pool_address": self.pool_address,
            "pool_fee": self.pool_fee,
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
            "webhook_id": self.webhook_id,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> TradeLeg:
        """Reconstruct a leg from a current-schema record.

        Legacy records must go through ``ledger.migrations.migrate_leg``
        first; this constructor only tolerates missing optional fields.
        """
        return cls(
            leg_id=get_str(data, "leg_id"),
            side=get_str(data, "side").lower(),
            product=get_str(data, "product"),
            token_pair=get_str(data, "token_pair"),
            base_token=get_str(data, "base_token"),
            quote_token=get_str(data, "quote_token", QUOTE_CURRENCY),
            network=get_str(data, "network"),
            network_name=get_str(data, "network_name"),
            chain_id=get_int(data, "chain_id"),
            native_currency=get_str(data, "native_currency"),
            explorer_url=get_str(data, "explorer_url"),
            signal_timestamp=get_float(data, "signal_timestamp"),
            execution_timestamp=get_float(data, "execution_timestamp"),
            amount_usdc=get_float(data, "amount_usdc"),
            gas_used=get_int(data, "gas_used"),
            effective_gas_price=get_int(data, "effective_gas_price"),
            gas_cost_native=get_float(data, "gas_cost_native"),
            gas_cost_usdc=get_float(data, "gas_cost_usdc"),
            native_price_usdc=get_float(data, "native_price_usdc"),
            status=get_str(data, "status", "pending"),
            exchange=get_str(data, "exchange"),
            trade_direction=get_str(data, "trade_direction"),
            amount_in=opt_float(data.get("amount_in")),
            amount_out=opt_float(data.get("amount_out")),
            expected_output=opt_float(data.get("expected_output")),
            slippage_actual_pct=get_float(data, "slippage_actual_pct"),
            price_impact=get_float(data, "price_impact"),
            input_token=TokenRef.from_dict(get_mapping(data, "input_token")),
            output_token=TokenRef.from_dict(get_mapping(data, "output_token")),
            router_address=get_str(data, "router_address"),
            pool_address=get_str(data, "pool_address"),
            pool_fee=opt_int(data.get("pool_fee")),
            tx_hash=get_str(data, "tx_hash"),
            block_number=opt_int(data.get("block_number")),
            webhook_id=get_str(data, "webhook_id"),
            error_message=get_str(data, "error_message"),
        )

    # -- validation -----------------------------------------------------------

    def validate(self) -> list[str]:
        """Return a list of validation errors (empty means valid)."""
        errors: list[str] = []
        if not self.leg_id:
            errors.append("leg_id must not be empty.")
        if self.side not in VALID_SIDES:
            errors.append(f"side={self.side!r} is not a known side.")
        if not self.token_pair:
            errors.append("token_pair must not be empty.")
        if self.status not in LEG_STATUSES:
            errors.append(f"status={self.status!r} is not a known status.")
        if self.amount_usdc < 0:
            errors.append(f"amount_usdc={self.amount_usdc} must be >= 0.")
        if self.execution_timestamp < self.signal_timestamp:
            errors.append("execution_timestamp must not precede signal_timestamp.")
        if self.gas_cost_usdc < 0 or self.gas_cost_native < 0:
            errors.append("gas costs must be >= 0.")
        return errors


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_product(product: str, quote_currency: str = QUOTE_CURRENCY) -> tuple[str, str, str]:
    """Split a product string into ``(base, quote, token_pair)``.

    >>> parse_product("AVAX/USDC")
    ('WAVAX', 'USDC', 'WAVAX-USDC')
    >>> parse_product("weth-usdc")
    ('WETH', 'USDC', 'WETH-USDC')
    """
    text = product.strip().upper()
    for sep in ("/", "-", "_"):
        if sep in text:
            base, _, quote = text.partition(sep)
            break
    else:
        base, quote = text, ""
    base = base.strip() or text
    quote = quote.strip() or quote_currency.upper()
    base = WRAPPED_NATIVE_TOKENS.get(base, base)
    return base, quote, f"{base}-{quote}"


def normalize_timestamps(signal: float, execution: float) -> tuple[float, float]:
    """Enforce ``execution > signal``.

    An execution time equal to the signal time is nudged to the next
    representable float; one earlier than the signal is clamped up to it
    first.
    """
    if execution <= signal:
        execution = math.nextafter(signal, math.inf)
    return signal, execution
