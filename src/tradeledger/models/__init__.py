"""Domain data models for tradeledger.

Re-exports all model classes for convenient imports::

    from tradeledger.models import CompletedTrade, LegEvent, TradeLeg, TradeSummary
"""

from tradeledger.models.completed import (
    AddressSummary,
    CompletedTrade,
    GasAnalysis,
    LegGasCost,
    NetworkCostAnalysis,
)
from tradeledger.models.leg import TokenRef, TradeLeg
from tradeledger.models.leg_event import LegEvent
from tradeledger.models.summary import (
    CrossNetworkAnalytics,
    EfficiencyRank,
    NetworkGasStats,
    NetworkProtocolStats,
    NetworkStats,
    ProtocolAnalytics,
    TokenNetworkStats,
    TokenStats,
    TradeSummary,
)
from tradeledger.models.types import (
    LegId,
    NetworkKey,
    QuoteAmount,
    TokenPair,
    TradeCategory,
    TradePairId,
)

__all__ = [
    "AddressSummary",
    "CompletedTrade",
    "CrossNetworkAnalytics",
    "EfficiencyRank",
    "GasAnalysis",
    "LegEvent",
    "LegGasCost",
    "LegId",
    "NetworkCostAnalysis",
    "NetworkGasStats",
    "NetworkKey",
    "NetworkProtocolStats",
    "NetworkStats",
    "ProtocolAnalytics",
    "QuoteAmount",
    "TokenNetworkStats",
    "TokenPair",
    "TokenRef",
    "TokenStats",
    "TradeCategory",
    "TradeLeg",
    "TradePairId",
    "TradeSummary",
]
