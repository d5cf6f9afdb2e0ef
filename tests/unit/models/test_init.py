"""Tests for the tradeledger.models package re-exports."""

from __future__ import annotations

import tradeledger.models as models


def test_all_names_importable() -> None:
    for name in models.__all__:
        assert hasattr(models, name), name


def test_core_models_exported() -> None:
    from tradeledger.models import CompletedTrade, LegEvent, TradeLeg, TradeSummary

    assert TradeLeg.__name__ == "TradeLeg"
    assert LegEvent.__name__ == "LegEvent"
    assert CompletedTrade.__name__ == "CompletedTrade"
    assert TradeSummary.__name__ == "TradeSummary"
