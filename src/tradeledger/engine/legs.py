"""Turn a validated :class:`LegEvent` into a stored :class:`TradeLeg`."""

from __future__ import annotations

import secrets

from tradeledger.core.constants import QUOTE_CURRENCY
from tradeledger.core.gas import GasCost
from tradeledger.core.networks import NetworkDescriptor
from tradeledger.models.leg import TradeLeg, normalize_timestamps, parse_product
from tradeledger.models.leg_event import LegEvent
from tradeledger.models.types import LegId


def new_leg_id(now: float) -> LegId:
    """``leg_<epoch ms>_<6 hex chars>``.

    >>> new_leg_id(1700000000.0).startswith("leg_1700000000000_")
    True
    """
    return f"leg_{int(now * 1000)}_{secrets.token_hex(3)}"


def build_leg(
    event: LegEvent,
    network: NetworkDescriptor,
    gas: GasCost,
    now: float,
    quote_currency: str = QUOTE_CURRENCY,
    leg_id: str | None = None,
) -> TradeLeg:
    """Assemble the immutable leg record.

    Missing timestamps default to *now*; the execution time is then forced
    strictly after the signal time.
    """
    base, quote, pair = parse_product(event.product, quote_currency)
    signal = event.signal_timestamp if event.signal_timestamp is not None else now
    execution = event.execution_timestamp if event.execution_timestamp is not None else now
    signal, execution = normalize_timestamps(signal, execution)

    return TradeLeg(
        leg_id=leg_id or new_leg_id(now),
        side=event.side,
        product=event.product,
        token_pair=pair,
        base_token=base,
        quote_token=quote,
        network=network.key,
        network_name=network.name,
        chain_id=network.chain_id,
        native_currency=network.native_currency,
        explorer_url=network.explorer_url,
        signal_timestamp=signal,
        execution_timestamp=execution,
        amount_usdc=event.usdc_amount(quote_currency),
        gas_used=gas.gas_used,
        effective_gas_price=gas.gas_price_wei,
        gas_cost_native=gas.gas_cost_native,
        gas_cost_usdc=gas.gas_cost_usdc,
        native_price_usdc=gas.native_price_usdc,
        status=event.status,
        exchange=event.exchange,
        trade_direction=event.trade_direction,
        amount_in=event.amount_in,
        amount_out=event.actual_output,
        expected_output=event.expected_amount_out,
        slippage_actual_pct=event.slippage_pct(),
        price_impact=event.price_impact or 0.0,
        input_token=event.input_token,
        output_token=event.output_token,
        router_address=event.router_address,
        pool_address=event.pool_address,
        pool_fee=event.pool_fee,
        tx_hash=event.tx_hash,
        block_number=event.block_number,
        webhook_id=event.webhook_id,
        error_message=event.error_message,
    )
