"""Tests for tradeledger.core.timeutils."""

from __future__ import annotations

import pytest

from tradeledger.core.timeutils import day_key, fmt_usdc, format_duration, month_key, week_key


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("ms", "expected"),
        [
            (0, "0s"),
            (-5, "0s"),
            (float("nan"), "0s"),
            (450, "450ms"),
            (999, "999ms"),
            (1000, "1s"),
            (59_999, "59s"),
            (61_000, "1m 1s"),
            (3_723_000, "1h 2m 3s"),
            (7_200_000, "2h 0m 0s"),
        ],
    )
    def test_formats(self, ms: float, expected: str) -> None:
        assert format_duration(ms) == expected


class TestBuckets:
    def test_day_key_is_utc(self) -> None:
        # 2023-11-14T23:59:59Z
        assert day_key(1_700_006_399.0) == "2023-11-14"
        assert day_key(1_700_006_400.0) == "2023-11-15"

    def test_month_key(self) -> None:
        assert month_key(1_700_000_000.0) == "2023-11"

    def test_week_key_iso(self) -> None:
        assert week_key(1_700_000_000.0) == "2023-W46"

    def test_week_key_year_boundary(self) -> None:
        # 2021-01-01 belongs to ISO week 53 of 2020
        assert week_key(1_609_459_200.0) == "2020-W53"


def test_fmt_usdc() -> None:
    assert fmt_usdc(1.23456) == "+1.2346 USDC"
    assert fmt_usdc(-0.5) == "-0.5000 USDC"
