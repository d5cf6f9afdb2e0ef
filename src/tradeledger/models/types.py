"""Domain-specific type aliases for tradeledger.

These aliases document intent at call sites without introducing runtime cost.
"""

from __future__ import annotations

from typing import TypeAlias

# A canonical network key, one of ``core.constants.SUPPORTED_NETWORKS``.
NetworkKey: TypeAlias = str

# Generated leg identifier, e.g. ``"leg_1718000000000_a1b2c3"``.
LegId: TypeAlias = str

# ``"pair_<entryLegId>_<exitLegId>"``.
TradePairId: TypeAlias = str

# Dash-joined base/quote symbols, e.g. ``"WAVAX-USDC"``.
TokenPair: TypeAlias = str

# ``"profitable"``, ``"loss"`` or ``"breakeven"``.
TradeCategory: TypeAlias = str

# Amount expressed in the quote currency (USDC).
QuoteAmount: TypeAlias = float
