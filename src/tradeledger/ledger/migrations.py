"""One-time upgrade of legacy ledger records to the current schema.

Version 1 records were written with camelCase keys and scattered optional
fields (``slippageActual`` vs ``slippageActualPercent``, ``inputToken`` vs
``tokenAddresses.inputToken`` ...).  Every such fallback is resolved here,
once, on read; the models only ever see current-schema records.

A record without ``schema_version`` is treated as version 1.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from tradeledger.core.constants import (
    QUOTE_CURRENCY,
    SCHEMA_VERSION,
    SIGNAL_TYPES,
)
from tradeledger.core.gas import gas_price_gwei
from tradeledger.core.networks import resolve_network
from tradeledger.models._fields import get_mapping, opt_float, opt_int, opt_str
from tradeledger.models.leg import normalize_timestamps, parse_product

logger = logging.getLogger(__name__)

_SIDE_FOR_SIGNAL_TYPE = {v: k for k, v in SIGNAL_TYPES.items()}


def schema_version(record: Mapping[str, Any]) -> int:
    version = opt_int(record.get("schema_version"))
    return 1 if version is None else version


# ---------------------------------------------------------------------------
# Legs
# ---------------------------------------------------------------------------


def migrate_leg(record: Mapping[str, Any]) -> dict[str, Any]:
    """Return *record* in the current leg schema."""
    if schema_version(record) >= SCHEMA_VERSION:
        return dict(record)

    details = get_mapping(record, "executionDetails")
    protocol = get_mapping(record, "protocolAddresses")
    addresses = get_mapping(record, "tokenAddresses")
    network_details = get_mapping(record, "networkExecutionDetails")

    network = resolve_network(record.get("network") or record.get("chainId"))
    product = str(record.get("product") or "")
    base, quote, pair = parse_product(product or str(record.get("tokenPair") or ""))

    signal_ts = _first_float(record, "signalTimestamp", "entryTimestamp") or 0.0
    exec_ts = _first_float(record, "executionTimestamp", "entryTimestamp") or signal_ts
    signal_ts, exec_ts = normalize_timestamps(signal_ts, exec_ts)

    side = str(record.get("entrySignal") or "").lower()
    if side not in SIGNAL_TYPES:
        side = _SIDE_FOR_SIGNAL_TYPE.get(str(record.get("signalType") or ""), "")
    if not side:
        side = "buy" if record.get("isEntry") else "sell"

    logger.debug("Migrating legacy leg %s to schema v%d", record.get("tradeId"), SCHEMA_VERSION)
    gas_price = opt_float(details.get("effectiveGasPrice")) or opt_float(
        record.get("entryEffectiveGasPrice")
    )

    return {
        "schema_version": SCHEMA_VERSION,
        "leg_id": str(record.get("tradeId") or record.get("leg_id") or ""),
        "side": side,
        "product": product,
        "token_pair": str(record.get("tokenPair") or pair),
        "base_token": str(record.get("baseToken") or base),
        "quote_token": str(record.get("quoteToken") or quote or QUOTE_CURRENCY),
        "network": network.key,
        "network_name": str(record.get("networkName") or network.name),
        "chain_id": opt_int(record.get("chainId")) or network.chain_id,
        "native_currency": str(record.get("nativeCurrency") or network.native_currency),
        "explorer_url": str(network_details.get("explorerUrl") or network.explorer_url),
        "signal_timestamp": signal_ts,
        "execution_timestamp": exec_ts,
        "amount_usdc": max(0.0, opt_float(record.get("amountUSDC")) or 0.0),
        "gas_used": opt_int(record.get("gasUsed") or details.get("gasUsed")) or 0,
        "effective_gas_price": int(gas_price or 0),
        "gas_cost_native": opt_float(record.get("gasCostNative")) or 0.0,
        "gas_cost_usdc": opt_float(record.get("gasCostUSDC")) or 0.0,
        "native_price_usdc": opt_float(record.get("nativePriceUSDC")) or 0.0,
        "status": str(record.get("status") or "pending"),
        "exchange": str(record.get("exchange") or ""),
        "trade_direction": str(record.get("tradeDirection") or "").upper(),
        "amount_in": opt_float(record.get("entryAmount")),
        "amount_out": opt_float(record.get("actualOutput")),
        "expected_output": opt_float(record.get("expectedOutput")),
        "slippage_actual_pct": _first_float(
            record, "slippageActual", "slippageActualPercent"
        )
        or opt_float(details.get("slippageActual"))
        or 0.0,
        "price_impact": opt_float(record.get("priceImpact"))
        or opt_float(details.get("priceImpact"))
        or 0.0,
        "input_token": _token(record.get("inputToken"), addresses.get("inputToken")),
        "output_token": _token(record.get("outputToken"), addresses.get("outputToken")),
        "router_address": str(protocol.get("routerAddress") or details.get("router") or ""),
        "pool_address": str(protocol.get("poolAddress") or details.get("pool") or ""),
        "pool_fee": opt_int(record.get("poolFee") or details.get("poolFee")),
        "tx_hash": str(
            record.get("txHash") or record.get("entryTxHash") or details.get("hash") or ""
        ),
        "block_number": opt_int(record.get("blockNumber") or record.get("entryBlockNumber")),
        "webhook_id": str(record.get("webhookId") or ""),
        "error_message": str(record.get("errorMessage") or ""),
    }


# ---------------------------------------------------------------------------
# Completed trades
# ---------------------------------------------------------------------------


def migrate_completed(record: Mapping[str, Any]) -> dict[str, Any]:
    """Return *record* in the current completed-trade schema."""
    if schema_version(record) >= SCHEMA_VERSION:
        migrated = dict(record)
        migrated["entry_leg"] = migrate_leg(get_mapping(record, "entry_leg"))
        migrated["exit_leg"] = migrate_leg(get_mapping(record, "exit_leg"))
        return migrated

    entry = migrate_leg(get_mapping(record, "entryLeg"))
    exit_ = migrate_leg(get_mapping(record, "exitLeg"))
    network = resolve_network(record.get("network") or entry["network"])
    cost = get_mapping(record, "networkCostAnalysis")
    gas = get_mapping(record, "gasAnalysis")
    net_gas = get_mapping(gas, "networkGasAnalysis")
    addresses = get_mapping(record, "addressSummary")
    entry_tokens = get_mapping(addresses, "entryTokens")
    exit_tokens = get_mapping(addresses, "exitTokens")

    def num(key: str, default: float = 0.0) -> float:
        value = opt_float(record.get(key))
        return default if value is None else value

    networks = record.get("networksUsed")
    return {
        "schema_version": SCHEMA_VERSION,
        "trade_pair_id": str(
            record.get("tradePairId") or f"pair_{entry['leg_id']}_{exit_['leg_id']}"
        ),
        "network": network.key,
        "network_name": str(record.get("networkName") or network.name),
        "chain_id": opt_int(record.get("chainId")) or network.chain_id,
        "native_currency": str(record.get("nativeCurrency") or network.native_currency),
        "is_cross_network": entry["network"] != exit_["network"],
        "networks_used": list(networks)
        if isinstance(networks, list)
        else list(dict.fromkeys([entry["network"], exit_["network"]])),
        "entry_leg": entry,
        "exit_leg": exit_,
        "gross_profit_usdc": num("grossProfitUSDC"),
        "gas_cost_usdc": num("gasCostUSDC"),
        "gas_cost_native": num("gasCostNative"),
        "net_profit_usdc": num("netProfitUSDC"),
        "profit_percentage": num("profitPercentage"),
        "expected_gross_profit_usdc": num("expectedGrossProfitUSDC"),
        "expected_profit_known": f"_TO_{QUOTE_CURRENCY}" in exit_["trade_direction"],
        "actual_vs_expected_difference": num("actualVsExpectedDifference"),
        "actual_vs_expected_percent": num("actualVsExpectedPercent"),
        "total_slippage_impact": num("totalSlippageImpact"),
        "price_impact_total": num("priceImpactTotal"),
        "execution_efficiency": num("executionEfficiency", 1.0),
        "signal_duration_ms": max(0.0, num("signalDurationMs") or num("tradeDurationMs")),
        "execution_duration_ms": max(0.0, num("executionDurationMs")),
        # legacy stored an average processing delay in seconds
        "avg_signal_to_execution_delay_ms": num("avgSignalToExecutionDelay") * 1000.0,
        "network_cost_analysis": {
            "average_native_price": opt_float(cost.get("averageNativePrice")) or 0.0,
            "network_efficiency_score": opt_float(cost.get("networkEfficiencyScore")) or 0.0,
            "gas_cost_comparison": {
                str(k): {
                    "gas_cost_usdc": opt_float(v.get("gasCostUSDC")) or 0.0,
                    "gas_cost_native": opt_float(v.get("gasCostNative")) or 0.0,
                    "efficiency": opt_float(v.get("efficiency")) or 0.0,
                }
                for k, v in get_mapping(cost, "gasCostComparison").items()
                if isinstance(v, Mapping)
            },
        },
        "gas_analysis": {
            "entry_gas_cost_usdc": opt_float(gas.get("entryGasCostUSDC")) or 0.0,
            "exit_gas_cost_usdc": opt_float(gas.get("exitGasCostUSDC")) or 0.0,
            "total_gas_cost_usdc": opt_float(gas.get("totalGasCostUSDC")) or 0.0,
            "entry_gas_cost_native": opt_float(net_gas.get("entryGasCostNative")) or 0.0,
            "exit_gas_cost_native": opt_float(net_gas.get("exitGasCostNative")) or 0.0,
            "total_gas_cost_native": opt_float(net_gas.get("totalGasCostNative")) or 0.0,
            "gas_efficiency": opt_float(gas.get("gasEfficiency")) or 0.0,
            "avg_gas_price_gwei": opt_float(gas.get("avgGasPriceGwei"))
            or _avg_gwei(entry, exit_),
            "average_native_price": opt_float(net_gas.get("averageNativePrice")) or 0.0,
            "network": network.key,
            "native_currency": network.native_currency,
            "gas_strategy": str(net_gas.get("gasStrategy") or network.gas_strategy),
        },
        "address_summary": {
            "token_pair": str(addresses.get("tokenPair") or entry["token_pair"]),
            "entry_input_token": opt_str(entry_tokens.get("input")) or "",
            "entry_output_token": opt_str(entry_tokens.get("output")) or "",
            "exit_input_token": opt_str(exit_tokens.get("input")) or "",
            "exit_output_token": opt_str(exit_tokens.get("output")) or "",
            "routers": list(addresses.get("routersUsed") or []),
            "pools": list(addresses.get("poolsUsed") or []),
        },
        "trade_category": str(record.get("tradeCategory") or "breakeven"),
        "exit_reason": str(record.get("exitReason") or ""),
        "completed_timestamp": num("completedTimestamp"),
        "headline": str(record.get("summary") or ""),
    }


def summary_needs_rebuild(record: object) -> bool:
    """``True`` when a stored summary cannot be trusted as-is.

    Summaries are never migrated field by field; an absent or older one is
    rebuilt from the completed set instead.
    """
    if not isinstance(record, Mapping) or not record:
        return True
    return schema_version(record) < SCHEMA_VERSION


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _first_float(record: Mapping[str, Any], *keys: str) -> float | None:
    for key in keys:
        value = opt_float(record.get(key))
        if value is not None:
            return value
    return None


def _token(primary: object, fallback: object) -> dict[str, Any] | None:
    for candidate in (primary, fallback):
        if isinstance(candidate, Mapping) and (
            candidate.get("symbol") or candidate.get("address")
        ):
            return {
                "symbol": str(candidate.get("symbol") or ""),
                "address": str(candidate.get("address") or ""),
                "decimals": opt_int(candidate.get("decimals")),
            }
    return None


def _avg_gwei(entry: Mapping[str, Any], exit_: Mapping[str, Any]) -> float:
    return (
        gas_price_gwei(entry["effective_gas_price"]) + gas_price_gwei(exit_["effective_gas_price"])
    ) / 2
