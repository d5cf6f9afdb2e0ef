"""Entry/exit leg matching.

Pure logic, no I/O.  Given the active set, pairs each entry leg (oldest
first) with the best eligible exit leg.  A leg is consumed at most once
per pass, so the returned pairs never share a leg.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from tradeledger.core.constants import DEFAULT_AMOUNT_TOLERANCE_PCT
from tradeledger.models.leg import TradeLeg

logger = logging.getLogger(__name__)

# Rounding slack so decimal amounts exactly at the tolerance still qualify.
_TOLERANCE_SLACK_PCT = 1e-9


@dataclass(frozen=True, slots=True)
class LegPair:
    """An entry leg and the exit leg chosen for it."""

    entry: TradeLeg
    exit: TradeLeg


def relative_difference_pct(a: float, b: float) -> float:
    """``|a - b| / ((a + b) / 2) * 100``; infinite when the mean is zero."""
    mean = (a + b) / 2
    if mean == 0:
        return float("inf")
    return abs(a - b) / mean * 100.0


def is_amount_within_tolerance(
    a: float, b: float, tolerance_pct: float = DEFAULT_AMOUNT_TOLERANCE_PCT
) -> bool:
    """``True`` if the two amounts differ by at most *tolerance_pct* percent.

    A zero amount on either side is never within tolerance.

    >>> is_amount_within_tolerance(70, 90)
    True
    >>> is_amount_within_tolerance(100, 200)
    False
    """
    if a == 0 or b == 0:
        return False
    return relative_difference_pct(a, b) <= tolerance_pct + _TOLERANCE_SLACK_PCT


class LegMatcher:
    """Pairs active entry legs with exit legs.

    Parameters
    ----------
    tolerance_pct:
        Maximum relative amount difference (percent of the pair's mean)
        for an exit to be eligible.
    """

    def __init__(self, tolerance_pct: float = DEFAULT_AMOUNT_TOLERANCE_PCT) -> None:
        self.tolerance_pct = tolerance_pct

    def is_eligible(self, entry: TradeLeg, exit_leg: TradeLeg) -> bool:
        """Eligibility of *exit_leg* as the exit for *entry*."""
        return (
            entry.is_entry
            and not exit_leg.is_entry
            and entry.is_matchable
            and exit_leg.is_matchable
            and exit_leg.token_pair == entry.token_pair
            and exit_leg.network == entry.network
            and exit_leg.signal_timestamp >= entry.signal_timestamp
            and is_amount_within_tolerance(
                entry.amount_usdc, exit_leg.amount_usdc, self.tolerance_pct
            )
        )

    def candidates(self, entry: TradeLeg, exits: Sequence[TradeLeg]) -> list[TradeLeg]:
        """Eligible exits for *entry*, best first.

        Earliest exit signal wins; equal signal times go to the amount
        closest to the entry's.  Leg id breaks any remaining tie.
        """
        eligible = [x for x in exits if self.is_eligible(entry, x)]
        eligible.sort(
            key=lambda x: (
                x.signal_timestamp,
                abs(x.amount_usdc - entry.amount_usdc),
                x.leg_id,
            )
        )
        return eligible

    def find_pairs(self, legs: Sequence[TradeLeg]) -> list[LegPair]:
        """Run one matching pass over *legs*.

        Entries are visited oldest signal first.  A candidate pair where
        either leg has a non-positive amount is discarded with a warning and
        the next candidate is tried.
        """
        entries = sorted(
            (leg for leg in legs if leg.is_entry and leg.is_matchable),
            key=lambda leg: (leg.signal_timestamp, leg.leg_id),
        )
        exits = [leg for leg in legs if not leg.is_entry and leg.is_matchable]
        consumed: set[str] = set()
        pairs: list[LegPair] = []

        for entry in entries:
            available = [x for x in exits if x.leg_id not in consumed]
            for candidate in self.candidates(entry, available):
                if entry.amount_usdc <= 0 or candidate.amount_usdc <= 0:
                    logger.warning(
                        "Discarding pairing %s/%s: non-positive amount (%.6f, %.6f)",
                        entry.leg_id,
                        candidate.leg_id,
                        entry.amount_usdc,
                        candidate.amount_usdc,
                    )
                    continue
                consumed.update((entry.leg_id, candidate.leg_id))
                pairs.append(LegPair(entry=entry, exit=candidate))
                logger.debug(
                    "Matched %s -> %s on %s (%s, %.4f -> %.4f)",
                    entry.leg_id,
                    candidate.leg_id,
                    entry.network,
                    entry.token_pair,
                    entry.amount_usdc,
                    candidate.amount_usdc,
                )
                break
            else:
                logger.debug("No eligible exit for %s (%s)", entry.leg_id, entry.token_pair)

        return pairs
