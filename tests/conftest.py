"""Shared pytest fixtures for tradeledger tests."""

from __future__ import annotations

import itertools
import json
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from tradeledger.core.config import LedgerConfig
from tradeledger.core.constants import DEFAULT_FALLBACK_NATIVE_PRICES
from tradeledger.core.networks import get_network
from tradeledger.core.prices import NativePriceService, StaticPriceSource
from tradeledger.models.leg import TokenRef, TradeLeg

BASE_TS = 1_700_000_000.0  # 2023-11-14T22:13:20Z

WAVAX = TokenRef(symbol="WAVAX", address="0xb31f66aa3c1e785363f0875a1b74e27b85fd66c7", decimals=18)
USDC = TokenRef(symbol="USDC", address="0xb97ef9ef8734c71904d8002f8b6bc66dd9c48a6e", decimals=6)


class FakeClock:
    """Callable wall clock that only moves when told to."""

    def __init__(self, start: float = BASE_TS) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Return a temporary ledger data directory."""
    return tmp_path / "trades"


@pytest.fixture
def sample_config(data_dir: Path) -> LedgerConfig:
    """Return a LedgerConfig pointing at the temporary data directory."""
    return LedgerConfig(data_dir=str(data_dir))


@pytest.fixture
def sample_settings_dict() -> dict[str, Any]:
    """Return a raw ledger_settings.json-style dict for testing config loading."""
    return {
        "data_dir": "ledger/trades",
        "default_network": "arbitrum",
        "quote_currency": "usdc",
        "amount_tolerance_pct": "20%",
        "breakeven_band_usdc": 0.05,
        "price_refresh_seconds": 60,
        "price_timeout_seconds": 2.5,
        "fallback_native_prices": {"avalanche": 30.0, "ARBITRUM": 3000},
        "default_gas_used": 200000,
        "log_level": "debug",
    }


@pytest.fixture
def settings_file(tmp_path: Path, sample_settings_dict: dict[str, Any]) -> Path:
    """Write a sample ledger_settings.json and return its path."""
    p = tmp_path / "ledger_settings.json"
    p.write_text(json.dumps(sample_settings_dict, indent=2), encoding="utf-8")
    return p


@pytest.fixture
def price_service() -> Iterator[NativePriceService]:
    """Price service answering from the static fallback table."""
    service = NativePriceService(
        StaticPriceSource(DEFAULT_FALLBACK_NATIVE_PRICES),
        fallback_prices=DEFAULT_FALLBACK_NATIVE_PRICES,
    )
    yield service
    service.close()


@pytest.fixture
def make_leg() -> Callable[..., TradeLeg]:
    """Factory for stored legs with realistic defaults.

    ``make_leg("sell", 105.0, signal=BASE_TS + 60)`` gives a WAVAX-USDC exit
    on Avalanche.  Any other ``TradeLeg`` field can be overridden by keyword.
    """
    counter = itertools.count(1)

    def _make(
        side: str = "buy",
        amount: float = 100.0,
        signal: float = BASE_TS,
        network: str = "AVALANCHE",
        pair: str = "WAVAX-USDC",
        **overrides: Any,
    ) -> TradeLeg:
        net = get_network(network)
        base, _, quote = pair.partition("-")
        entry = side == "buy"
        fields: dict[str, Any] = {
            "leg_id": f"leg_{int(signal * 1000)}_{next(counter):06x}",
            "side": side,
            "product": f"{base}/{quote}",
            "token_pair": pair,
            "base_token": base,
            "quote_token": quote,
            "network": net.key,
            "network_name": net.name,
            "chain_id": net.chain_id,
            "native_currency": net.native_currency,
            "explorer_url": net.explorer_url,
            "signal_timestamp": signal,
            "execution_timestamp": signal + 2.0,
            "amount_usdc": amount,
            "gas_used": 150_000,
            "effective_gas_price": 25_000_000_000,
            "gas_cost_native": 0.00375,
            "gas_cost_usdc": 0.105,
            "native_price_usdc": 28.0,
            "status": "completed",
            "trade_direction": f"{quote}_TO_{base}" if entry else f"{base}_TO_{quote}",
            "amount_in": amount if entry else 3.5,
            "amount_out": 3.5 if entry else amount,
            "expected_output": 3.5 if entry else amount,
            "input_token": USDC if entry else WAVAX,
            "output_token": WAVAX if entry else USDC,
            "router_address": "0x60ae616a2155ee3d9a68541ba4544862310933d4",
            "pool_address": "0xf4003f4efbe8691b60249e6afbd307abe7758adb",
        }
        fields.update(overrides)
        return TradeLeg(**fields)

    return _make


@pytest.fixture
def make_event() -> Callable[..., dict[str, Any]]:
    """Factory for raw ingestion payloads as the execution layer sends them."""

    def _make(
        side: str = "buy",
        amount: float = 100.0,
        signal: float = BASE_TS,
        network: str = "avalanche",
        product: str = "AVAX/USDC",
        **overrides: Any,
    ) -> dict[str, Any]:
        entry = side == "buy"
        payload: dict[str, Any] = {
            "side": side,
            "product": product,
            "network": network,
            "exchange": "traderjoe",
            "tradeDirection": "USDC_TO_WAVAX" if entry else "WAVAX_TO_USDC",
            "amountIn": amount if entry else 3.5,
            "expectedAmountOut": 3.5 if entry else amount,
            "actualAmountOut": 3.5 if entry else amount,
            "gasUsed": 150_000,
            "effectiveGasPrice": 25_000_000_000,
            "signalTimestamp": signal,
            "executionTimestamp": signal + 2.0,
            "executionState": "Confirmed",
            "txHash": f"0x{int(signal):064x}",
        }
        payload.update(overrides)
        return payload

    return _make
