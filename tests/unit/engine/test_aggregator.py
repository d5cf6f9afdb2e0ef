"""Tests for tradeledger.engine.aggregator."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from tradeledger.engine.aggregator import (
    SummaryAggregator,
    gas_efficiency_trend,
    rank_networks,
    running_mean,
    summary_covers,
)
from tradeledger.engine.pnl import PnLCalculator
from tradeledger.models.completed import CompletedTrade
from tradeledger.models.leg import TradeLeg
from tradeledger.models.summary import NOT_AVAILABLE, NetworkGasStats, TradeSummary

BASE_TS = 1_700_000_000.0  # Tuesday 2023-11-14 UTC

MakeLeg = Callable[..., TradeLeg]


@pytest.fixture
def make_trade(make_leg: MakeLeg) -> Callable[..., CompletedTrade]:
    calc = PnLCalculator()

    def _make(
        entry_amount: float = 100.0,
        exit_amount: float = 104.0,
        start: float = BASE_TS,
        minutes: float = 1.0,
        network: str = "AVALANCHE",
        pair: str = "WAVAX-USDC",
        side: str = "sell",
        **leg_overrides: object,
    ) -> CompletedTrade:
        entry = make_leg("buy", entry_amount, signal=start, network=network, pair=pair, **leg_overrides)
        exit_leg = make_leg(
            side, exit_amount, signal=start + minutes * 60, network=network, pair=pair, **leg_overrides
        )
        return calc.build(entry, exit_leg, completed_at=start + minutes * 60 + 1)

    return _make


@pytest.fixture
def trades(make_trade: Callable[..., CompletedTrade]) -> list[CompletedTrade]:
    day = 86_400.0
    return [
        make_trade(100.0, 104.0, start=BASE_TS, minutes=2),
        make_trade(80.0, 75.0, start=BASE_TS + 600, minutes=10, side="sellsl"),
        make_trade(50.0, 50.21, start=BASE_TS + day, minutes=1),
        make_trade(
            200.0, 210.0, start=BASE_TS + 8 * day, minutes=30, network="ARBITRUM", pair="WETH-USDC",
            gas_cost_usdc=0.5, native_price_usdc=3500.0,
        ),
        make_trade(60.0, 66.0, start=BASE_TS + 20 * day, minutes=5, side="selltp"),
    ]


def test_running_mean() -> None:
    assert running_mean(0.0, 10.0, 1) == 10.0
    assert running_mean(10.0, 20.0, 2) == 15.0
    assert running_mean(15.0, 30.0, 3) == pytest.approx(20.0)


class TestFoldMatchesRecompute:
    def test_fold_sequence_equals_recompute(self, trades: list[CompletedTrade]) -> None:
        agg = SummaryAggregator()
        folded = TradeSummary()
        for i, trade in enumerate(trades):
            folded = agg.fold(folded, trade, trades[: i + 1])
        assert folded == agg.recompute(trades)

    def test_fold_does_not_mutate_input(self, trades: list[CompletedTrade]) -> None:
        before = TradeSummary()
        SummaryAggregator().fold(before, trades[0], trades[:1])
        assert before == TradeSummary()


class TestSummaryCovers:
    def test_recomputed_summary_covers_its_trades(self, trades: list[CompletedTrade]) -> None:
        assert summary_covers(SummaryAggregator().recompute(trades), trades)
        assert summary_covers(TradeSummary(), [])

    def test_missing_trade_detected(self, trades: list[CompletedTrade]) -> None:
        stale = SummaryAggregator().recompute(trades[:-1])
        assert not summary_covers(stale, trades)

    def test_wrong_last_trade_detected(self, trades: list[CompletedTrade]) -> None:
        s = SummaryAggregator().recompute(trades)
        s.last_updated = trades[-1].completed_timestamp - 1.0
        assert not summary_covers(s, trades)


class TestGlobalFigures:
    def test_counts_and_totals(self, trades: list[CompletedTrade]) -> None:
        s = SummaryAggregator().recompute(trades)
        assert s.total_trades == 5
        assert s.profitable_trades == 3
        assert s.losing_trades == 1
        assert s.breakeven_trades == 1
        assert s.win_rate == pytest.approx(60.0)
        assert s.total_net_profit == pytest.approx(sum(t.net_profit_usdc for t in trades))
        assert s.total_gas_costs == pytest.approx(sum(t.gas_cost_usdc for t in trades))
        assert s.average_profit == pytest.approx(s.total_net_profit / 5)
        assert s.last_updated == trades[-1].completed_timestamp

    def test_durations_in_minutes(self, trades: list[CompletedTrade]) -> None:
        s = SummaryAggregator().recompute(trades)
        assert s.longest_trade == pytest.approx(30.0)
        assert s.shortest_trade == pytest.approx(1.0)
        assert s.average_trade_duration == pytest.approx((2 + 10 + 1 + 30 + 5) / 5)

    def test_expected_totals(self, trades: list[CompletedTrade]) -> None:
        s = SummaryAggregator().recompute(trades)
        assert s.total_expected_profit == pytest.approx(
            sum(t.expected_gross_profit_usdc for t in trades)
        )
        assert s.execution_efficiency_avg == pytest.approx(1.0)

    def test_empty(self) -> None:
        s = SummaryAggregator().recompute([])
        assert s.total_trades == 0
        assert s.win_rate == 0.0
        assert s.last_updated == 0.0


class TestNetworkAndToken:
    def test_network_summary(self, trades: list[CompletedTrade]) -> None:
        s = SummaryAggregator().recompute(trades)
        avax = s.network_summary["AVALANCHE"]
        arb = s.network_summary["ARBITRUM"]
        assert avax.total_trades == 4
        assert avax.native_currency == "AVAX"
        assert avax.win_rate == pytest.approx(50.0)
        assert arb.total_trades == 1
        assert arb.native_currency == "ETH"
        assert arb.average_gas_cost == pytest.approx(1.0)

    def test_token_performance(self, trades: list[CompletedTrade]) -> None:
        s = SummaryAggregator().recompute(trades)
        wavax = s.token_performance["WAVAX"]
        assert wavax.trades == 4
        assert wavax.profitable_trades == 2
        assert wavax.average_trade_size == pytest.approx((100 + 80 + 50 + 60) / 4)
        assert wavax.token_address == trades[0].entry_leg.input_token.address
        assert wavax.network_breakdown["AVALANCHE"].trades == 4
        assert s.token_performance["WETH"].win_rate == pytest.approx(100.0)


class TestBuckets:
    def test_daily_weekly_monthly(self, trades: list[CompletedTrade]) -> None:
        s = SummaryAggregator().recompute(trades)
        first_two = trades[0].net_profit_usdc + trades[1].net_profit_usdc
        assert s.daily["2023-11-14"] == pytest.approx(first_two)
        assert s.daily["2023-11-15"] == pytest.approx(trades[2].net_profit_usdc)
        assert s.weekly["2023-W46"] == pytest.approx(first_two + trades[2].net_profit_usdc)
        assert s.weekly["2023-W47"] == pytest.approx(trades[3].net_profit_usdc)
        assert s.monthly["2023-12"] == pytest.approx(trades[4].net_profit_usdc)
        assert set(s.daily_by_network) == {"AVALANCHE", "ARBITRUM"}
        assert sum(s.daily.values()) == pytest.approx(s.total_net_profit)


class TestCrossNetwork:
    def test_distribution_and_ranking(self, trades: list[CompletedTrade]) -> None:
        s = SummaryAggregator().recompute(trades)
        cross = s.cross_network
        assert cross.network_distribution == {"AVALANCHE": 4, "ARBITRUM": 1}
        assert cross.total_cross_network_trades == 0
        ranks = {r.network: r for r in cross.efficiency_ranking}
        assert ranks["AVALANCHE"].gas_cost_rank == 1
        assert ranks["ARBITRUM"].gas_cost_rank == 2
        scores = [r.efficiency_score for r in cross.efficiency_ranking]
        assert scores == sorted(scores, reverse=True)

    def test_cross_network_counted(self, make_leg: MakeLeg) -> None:
        trade = PnLCalculator().build(
            make_leg("buy", 100.0),
            make_leg("sell", 100.0, signal=BASE_TS + 5, network="ARBITRUM"),
            completed_at=BASE_TS + 6,
        )
        s = SummaryAggregator().recompute([trade])
        assert s.cross_network.total_cross_network_trades == 1

    def test_rank_networks(self) -> None:
        stats = {
            "A": NetworkGasStats(average_gas_cost_usdc=0.5, average_efficiency_score=90.0),
            "B": NetworkGasStats(average_gas_cost_usdc=0.1, average_efficiency_score=95.0),
        }
        ranks = rank_networks(stats)
        assert [r.network for r in ranks] == ["B", "A"]
        assert [r.gas_cost_rank for r in ranks] == [1, 2]


class TestProtocol:
    def test_empty_defaults(self) -> None:
        protocol = SummaryAggregator().recompute([]).protocol
        assert protocol.most_used_router == NOT_AVAILABLE
        assert protocol.most_traded_token_pair == NOT_AVAILABLE
        assert set(protocol.network_stats) == {"AVALANCHE", "ARBITRUM"}
        assert protocol.network_stats["ARBITRUM"].most_traded_pair == NOT_AVAILABLE
        assert protocol.network_stats["ARBITRUM"].average_gas_per_trade == 0.0

    def test_counts(self, trades: list[CompletedTrade]) -> None:
        protocol = SummaryAggregator().recompute(trades).protocol
        assert protocol.total_unique_routers == 1
        assert protocol.total_unique_pools == 1
        assert protocol.total_unique_tokens == 2
        assert protocol.most_traded_token_pair == "WAVAX-USDC"
        assert protocol.network_stats["ARBITRUM"].most_traded_pair == "WETH-USDC"
        assert protocol.network_stats["AVALANCHE"].most_traded_pair == "WAVAX-USDC"


class TestGasTrend:
    def test_needs_six_trades(self, trades: list[CompletedTrade]) -> None:
        assert gas_efficiency_trend(trades) == 0.0

    def test_cheaper_recent_gas_is_positive(self, make_trade: Callable[..., CompletedTrade]) -> None:
        history = [
            make_trade(start=BASE_TS + i * 600, gas_cost_usdc=0.2 if i < 3 else 0.1)
            for i in range(6)
        ]
        assert gas_efficiency_trend(history) == pytest.approx(50.0)
        s = SummaryAggregator().recompute(history)
        assert s.protocol.gas_efficiency_trend == pytest.approx(50.0)
