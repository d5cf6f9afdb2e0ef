"""Validated ingestion input for a new trade leg.

The execution layer hands over a loosely shaped mapping (webhook fields
plus the swap outcome).  :meth:`LegEvent.from_dict` is the only place that
shape is interpreted: structural defects raise
:class:`LegValidationError`, and numeric fields that cannot be parsed
become ``None`` so that downstream code substitutes its documented
defaults.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from tradeledger.core.constants import ENTRY_SIDES, QUOTE_CURRENCY, VALID_SIDES
from tradeledger.core.exceptions import LegValidationError
from tradeledger.models._fields import opt_float, opt_int, opt_str
from tradeledger.models.leg import TokenRef

# Accepted spellings per field; snake_case first, then the upstream camelCase.
_KEYS: dict[str, tuple[str, ...]] = {
    "side": ("side", "signal"),
    "product": ("product", "symbol"),
    "network": ("network", "networkLabel", "chain"),
    "exchange": ("exchange", "dex"),
    "trade_direction": ("trade_direction", "tradeDirection"),
    "amount_in": ("amount_in", "amountIn", "actualAmountIn"),
    "amount_out": ("amount_out", "amountOut"),
    "expected_amount_out": ("expected_amount_out", "expectedAmountOut", "expectedOutput"),
    "actual_amount_out": ("actual_amount_out", "actualAmountOut", "actualOutput"),
    "gas_used": ("gas_used", "gasUsed"),
    "gas_price_wei": ("gas_price_wei", "effective_gas_price", "effectiveGasPrice", "gasPrice"),
    "signal_timestamp": ("signal_timestamp", "signalTimestamp", "timestamp"),
    "execution_timestamp": ("execution_timestamp", "executionTimestamp"),
    "tx_hash": ("tx_hash", "txHash", "hash"),
    "block_number": ("block_number", "blockNumber"),
    "webhook_id": ("webhook_id", "webhookId"),
    "execution_state": ("execution_state", "executionState"),
    "error_message": ("error_message", "errorMessage", "error"),
    "input_token": ("input_token", "inputToken"),
    "output_token": ("output_token", "outputToken"),
    "router_address": ("router_address", "routerAddress", "router"),
    "pool_address": ("pool_address", "poolAddress", "pool"),
    "pool_fee": ("pool_fee", "poolFee"),
    "price_impact": ("price_impact", "priceImpact"),
}

# Nested sections the execution layer may wrap fields in.
_SECTIONS = ("webhookData", "webhook_data", "tradeResult", "trade_result", "executionDetails")

# Upper bound for epoch seconds; larger values are taken to be milliseconds.
_MAX_EPOCH_SECONDS = 1e11

_STATE_TO_STATUS = {"confirmed": "completed", "failed": "failed"}


@dataclass(frozen=True, slots=True)
class LegEvent:
    """A new-leg notification from the execution layer.

    Only *side* and *product* are required.  Every other field is optional
    and ``None`` when absent or unparseable.
    """

    side: str
    product: str
    network: str | None = None
    exchange: str = ""
    trade_direction: str = ""
    amount_in: float | None = None
    amount_out: float | None = None
    expected_amount_out: float | None = None
    actual_amount_out: float | None = None
    gas_used: float | None = None
    gas_price_wei: float | None = None
    signal_timestamp: float | None = None
    execution_timestamp: float | None = None
    tx_hash: str = ""
    block_number: int | None = None
    webhook_id: str = ""
    execution_state: str | None = None
    error_message: str = ""
    input_token: TokenRef | None = None
    output_token: TokenRef | None = None
    router_address: str = ""
    pool_address: str = ""
    pool_fee: int | None = None
    price_impact: float | None = None

    # -- derived --------------------------------------------------------------

    @property
    def is_entry(self) -> bool:
        return self.side in ENTRY_SIDES

    @property
    def status(self) -> str:
        """Leg status from the execution state.

        ``Confirmed`` → ``completed``, ``Failed`` → ``failed``, anything
        else (including no state) → ``pending``.
        """
        return _STATE_TO_STATUS.get((self.execution_state or "").strip().lower(), "pending")

    @property
    def actual_output(self) -> float | None:
        return self.actual_amount_out if self.actual_amount_out is not None else self.amount_out

    def usdc_amount(self, quote_currency: str = QUOTE_CURRENCY) -> float:
        """Quote-currency size of this leg.

        ``<QUOTE>_TO_*`` trades spend the quote currency, so the input
        amount is used; ``*_TO_<QUOTE>`` trades receive it, so the actual
        output is used with the expected output as fallback.  Otherwise an
        entry uses its input amount and an exit its output amount.  An
        amount that cannot be determined resolves to ``0.0``.
        """
        quote = quote_currency.upper()
        direction = self.trade_direction.upper()
        if direction.startswith(f"{quote}_TO_"):
            amount = self.amount_in
        elif direction.endswith(f"_TO_{quote}"):
            amount = self.actual_amount_out
            if amount is None or amount <= 0:
                amount = self.expected_amount_out
        elif self.is_entry:
            amount = self.amount_in
        else:
            amount = self.actual_output
        if amount is None or amount < 0:
            return 0.0
        return amount

    def slippage_pct(self) -> float:
        """``max(0, (expected - actual) / expected * 100)``; 0 when unknown."""
        expected = self.expected_amount_out
        actual = self.actual_output
        if expected is None or actual is None or expected <= 0:
            return 0.0
        return max(0.0, (expected - actual) / expected * 100.0)

    # -- construction ---------------------------------------------------------

    @classmethod
    def from_dict(cls, data: object) -> LegEvent:
        """Build an event from an upstream payload.

        Raises
        ------
        LegValidationError
            If *data* is not a mapping, the side is unknown, or the product
            is missing.
        """
        if not isinstance(data, Mapping):
            raise LegValidationError(f"leg event must be a mapping, got {type(data).__name__}")
        flat = _flatten(data)

        def pick(field: str) -> object:
            for key in _KEYS[field]:
                if flat.get(key) is not None:
                    return flat[key]
            return None

        def pick_str(field: str) -> str:
            return opt_str(pick(field)) or ""

        def pick_token(field: str) -> TokenRef | None:
            raw = pick(field)
            return TokenRef.from_dict(raw) if isinstance(raw, Mapping) else None

        event = cls(
            side=pick_str("side").lower(),
            product=pick_str("product"),
            network=opt_str(pick("network")),
            exchange=pick_str("exchange"),
            trade_direction=pick_str("trade_direction").upper(),
            amount_in=opt_float(pick("amount_in")),
            amount_out=opt_float(pick("amount_out")),
            expected_amount_out=opt_float(pick("expected_amount_out")),
            actual_amount_out=opt_float(pick("actual_amount_out")),
            gas_used=opt_float(pick("gas_used")),
            gas_price_wei=opt_float(pick("gas_price_wei")),
            signal_timestamp=_epoch_seconds(pick("signal_timestamp")),
            execution_timestamp=_epoch_seconds(pick("execution_timestamp")),
            tx_hash=pick_str("tx_hash"),
            block_number=opt_int(pick("block_number")),
            webhook_id=pick_str("webhook_id"),
            execution_state=opt_str(pick("execution_state")),
            error_message=pick_str("error_message"),
            input_token=pick_token("input_token"),
            output_token=pick_token("output_token"),
            router_address=pick_str("router_address"),
            pool_address=pick_str("pool_address"),
            pool_fee=opt_int(pick("pool_fee")),
            price_impact=opt_float(pick("price_impact")),
        )
        errors = event.validate()
        if errors:
            raise LegValidationError("; ".join(errors))
        return event

    def validate(self) -> list[str]:
        """Return a list of structural errors (empty means valid)."""
        errors: list[str] = []
        if self.side not in VALID_SIDES:
            errors.append(f"side={self.side!r} must be one of {sorted(VALID_SIDES)}.")
        if not self.product.strip():
            errors.append("product must not be empty.")
        return errors


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _flatten(data: Mapping[str, object]) -> dict[str, object]:
    """Top-level fields win over the same field inside a nested section."""
    flat: dict[str, object] = {}
    for section in _SECTIONS:
        nested = data.get(section)
        if isinstance(nested, Mapping):
            flat.update({k: v for k, v in nested.items() if v is not None})
    flat.update({k: v for k, v in data.items() if v is not None and k not in _SECTIONS})
    return flat


def _epoch_seconds(val: object) -> float | None:
    number = opt_float(val)
    if number is None or number <= 0:
        return None
    return number / 1000.0 if number > _MAX_EPOCH_SECONDS else number
