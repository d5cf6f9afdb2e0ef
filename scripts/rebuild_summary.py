#!/usr/bin/env python3
"""Rebuild ``trades_summary.json`` from the completed trades.

Reads ``ledger_settings.json`` from the current directory (defaults apply
when it is missing).  Legacy records are migrated as they are read.

Usage::

    python scripts/rebuild_summary.py
"""

from __future__ import annotations

from pathlib import Path


def main() -> None:
    from tradeledger.core.config import LedgerConfig
    from tradeledger.core.constants import SETTINGS_FILENAME
    from tradeledger.core.timeutils import fmt_usdc
    from tradeledger.engine.tracker import TradeTracker

    base_dir = Path.cwd()
    config = LedgerConfig.from_file(base_dir / SETTINGS_FILENAME)

    tracker = TradeTracker.from_config(config)
    try:
        summary = tracker.recalculate_summary()
    finally:
        tracker.close()

    print(f"Trades:   {summary.total_trades}")
    print(f"Net P&L:  {fmt_usdc(summary.total_net_profit)}")
    print(f"Win rate: {summary.win_rate:.2f}%")
    for network, stats in sorted(summary.network_summary.items()):
        print(f"  {network:<10} {stats.total_trades:>5} trades  {fmt_usdc(stats.total_net_profit)}")


if __name__ == "__main__":
    main()
