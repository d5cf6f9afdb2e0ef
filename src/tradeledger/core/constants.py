"""Shared constants for tradeledger.

Network table, matching thresholds, gas defaults and file names live here so
there is a single source of truth for every magic number the engine uses.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Supported networks: canonical key -> descriptor fields.
# ---------------------------------------------------------------------------
SUPPORTED_NETWORKS: dict[str, dict[str, object]] = {
    "AVALANCHE": {
        "name": "Avalanche",
        "chain_id": 43114,
        "native_currency": "AVAX",
        "explorer_url": "https://snowtrace.io",
        "is_layer2": False,
    },
    "ARBITRUM": {
        "name": "Arbitrum One",
        "chain_id": 42161,
        "native_currency": "ETH",
        "explorer_url": "https://arbiscan.io",
        "is_layer2": True,
    },
}

# Loose labels seen in upstream events, lower-cased.
NETWORK_ALIASES: dict[str, str] = {
    "avalanche": "AVALANCHE",
    "avax": "AVALANCHE",
    "avax-c": "AVALANCHE",
    "c-chain": "AVALANCHE",
    "arbitrum": "ARBITRUM",
    "arbitrum one": "ARBITRUM",
    "arbitrum-one": "ARBITRUM",
    "arb": "ARBITRUM",
    "arb1": "ARBITRUM",
}

DEFAULT_NETWORK: str = "AVALANCHE"

# Bare native symbols in a product string are traded as their wrapped token.
WRAPPED_NATIVE_TOKENS: dict[str, str] = {
    "AVAX": "WAVAX",
    "ETH": "WETH",
}

# ---------------------------------------------------------------------------
# Quote currency. Every financial figure is normalised into this unit.
# ---------------------------------------------------------------------------
QUOTE_CURRENCY: str = "USDC"
PRICE_QUOTE_ASSET: str = "USDT"  # exchange ticker quote used for native prices

# ---------------------------------------------------------------------------
# Leg sides and their display names.
# ---------------------------------------------------------------------------
ENTRY_SIDES: frozenset[str] = frozenset({"buy"})
EXIT_SIDES: frozenset[str] = frozenset({"sell", "sellsl", "selltp"})
VALID_SIDES: frozenset[str] = ENTRY_SIDES | EXIT_SIDES

SIGNAL_TYPES: dict[str, str] = {
    "buy": "Regular Buy",
    "sell": "Regular Sell",
    "sellsl": "Stop Loss",
    "selltp": "Take Profit",
}

LEG_STATUSES: frozenset[str] = frozenset({"pending", "completed", "failed"})

# ---------------------------------------------------------------------------
# Matching / classification
# ---------------------------------------------------------------------------
DEFAULT_AMOUNT_TOLERANCE_PCT: float = 25.0
DEFAULT_BREAKEVEN_BAND_USDC: float = 0.01

# ---------------------------------------------------------------------------
# Gas defaults, used when an execution outcome omits or zeroes a field.
# ---------------------------------------------------------------------------
DEFAULT_GAS_USED: int = 150_000
DEFAULT_GAS_PRICE_WEI: int = 25_000_000_000  # 25 gwei
DEFAULT_GAS_PRICE_GWEI: float = 25.0
WEI_PER_NATIVE: float = 1e18
WEI_PER_GWEI: float = 1e9

# ---------------------------------------------------------------------------
# Native price lookups
# ---------------------------------------------------------------------------
DEFAULT_FALLBACK_NATIVE_PRICES: dict[str, float] = {
    "AVALANCHE": 28.0,
    "ARBITRUM": 3500.0,
}
DEFAULT_PRICE_REFRESH_SECONDS: float = 5 * 60.0
DEFAULT_PRICE_TIMEOUT_SECONDS: float = 5.0
KUCOIN_API_URL: str = "https://api.kucoin.com"

# ---------------------------------------------------------------------------
# Efficiency scoring
# ---------------------------------------------------------------------------
EFFICIENCY_SCORE_MAX: float = 100.0
GAS_RATIO_SCALE: float = 1000.0
GAS_TREND_WINDOW: int = 3  # trades compared at each end of the history

# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------
SCHEMA_VERSION: int = 2
DEFAULT_DATA_DIR: str = "data/trades"
ACTIVE_LEGS_FILENAME: str = "trades_active.json"
COMPLETED_TRADES_FILENAME: str = "trades_completed.json"
SUMMARY_FILENAME: str = "trades_summary.json"
SETTINGS_FILENAME: str = "ledger_settings.json"
