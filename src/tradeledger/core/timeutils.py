"""Time bucketing and human-readable duration formatting."""

from __future__ import annotations

import math
from datetime import datetime, timezone


# ---- Formatting ----

def format_duration(duration_ms: float) -> str:
    """``3723000`` → ``"1h 2m 3s"``; sub-second values render as ``"450ms"``."""
    if not math.isfinite(duration_ms) or duration_ms <= 0:
        return "0s"
    if duration_ms < 1000:
        return f"{round(duration_ms)}ms"
    total_seconds = int(duration_ms // 1000)
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def fmt_usdc(x: float) -> str:
    """Signed quote-currency amount with four decimals: ``+1.2345 USDC``."""
    return f"{x:+.4f} USDC"


# ---- Buckets ----

def _utc(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def day_key(timestamp: float) -> str:
    """``YYYY-MM-DD`` of the UTC date."""
    return _utc(timestamp).strftime("%Y-%m-%d")


def week_key(timestamp: float) -> str:
    """ISO week, ``YYYY-Www``."""
    return _utc(timestamp).strftime("%G-W%V")


def month_key(timestamp: float) -> str:
    return _utc(timestamp).strftime("%Y-%m")
