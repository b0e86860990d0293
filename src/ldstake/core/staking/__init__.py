"""
LD staking: the ledger, its reward pool and the weekly reward arithmetic.
"""

from .ledger import LdStaking, StakePosition
from .reward_math import (
    SECONDS_PER_DAY,
    SECONDS_PER_WEEK,
    RewardQuote,
    quote_reward,
    weekly_reward,
    weeks_elapsed,
)
from .reward_pool import RewardPool

__all__ = [
    "LdStaking",
    "StakePosition",
    "RewardPool",
    "RewardQuote",
    "SECONDS_PER_DAY",
    "SECONDS_PER_WEEK",
    "quote_reward",
    "weekly_reward",
    "weeks_elapsed",
]
