"""
ldstake - LD token staking ledger with weekly reward windows.

Quick start:
    from ldstake import Chain, LdToken, LdStaking, RewardPool, ManualClock

    chain = Chain(clock=ManualClock())
    token = LdToken(chain, owner="0xOwner", initial_supply=10**27)
    staking = LdStaking(chain, 5000, "0xOwner", token.address)
    pool = RewardPool(chain, "0xOwner", staking.address, token.address)
    staking.set_pool("0xOwner", pool.address)
"""

from .core.chain import Chain, bootstrap
from .core.clock import ManualClock, SystemClock
from .core.config import ConfigurationError, StakingConfig, UnstakeRewardPolicy, load_config
from .core.contracts import LdToken
from .core.staking import LdStaking, RewardPool, StakePosition

__version__ = "0.1.0"

__all__ = [
    "Chain",
    "bootstrap",
    "ManualClock",
    "SystemClock",
    "StakingConfig",
    "UnstakeRewardPolicy",
    "ConfigurationError",
    "load_config",
    "LdToken",
    "LdStaking",
    "RewardPool",
    "StakePosition",
]
