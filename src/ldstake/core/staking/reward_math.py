"""
Weekly reward arithmetic for stake positions.

Rewards accrue per whole week since ``last_claimed``. Each elapsed week is
worth one 52nd of the annual rate on the current principal, and missed weeks
are paid as a plain multiple of that slice (no week-over-week compounding).
All arithmetic is integer with one floor division at the end.
"""

from __future__ import annotations

from dataclasses import dataclass

SECONDS_PER_DAY = 86_400
SECONDS_PER_WEEK = 7 * SECONDS_PER_DAY
WEEKS_PER_YEAR = 52
APR_DENOMINATOR = 10_000  # two implied decimals on top of percent


@dataclass(frozen=True)
class RewardQuote:
    """Reward owed to one position at one instant."""

    weeks: int
    amount: int
    new_last_claimed: int

    @property
    def window_open(self) -> bool:
        return self.weeks >= 1


def weeks_elapsed(last_claimed: int, now: int) -> int:
    """Whole weeks between ``last_claimed`` and ``now``; 0 if time has not advanced."""
    if now <= last_claimed:
        return 0
    return (now - last_claimed) // SECONDS_PER_WEEK


def weekly_reward(staked_amount: int, apr_rate: int, weeks: int) -> int:
    """
    Linear reward for ``weeks`` whole weeks.

    ``staked_amount * apr_rate / 10000 * weeks / 52``, floored once.
    """
    if weeks <= 0 or staked_amount <= 0 or apr_rate <= 0:
        return 0
    return (staked_amount * apr_rate * weeks) // (APR_DENOMINATOR * WEEKS_PER_YEAR)


def quote_reward(staked_amount: int, apr_rate: int, last_claimed: int, now: int) -> RewardQuote:
    weeks = weeks_elapsed(last_claimed, now)
    return RewardQuote(
        weeks=weeks,
        amount=weekly_reward(staked_amount, apr_rate, weeks),
        # Advance by whole weeks only so the partial week carries forward
        new_last_claimed=last_claimed + weeks * SECONDS_PER_WEEK,
    )


def window_opens_at(last_claimed: int) -> int:
    """Earliest timestamp at which claim, restake or unstake is allowed."""
    return last_claimed + SECONDS_PER_WEEK
