"""
ldstake contract primitives.

This module provides:
- Contract: base class with events and state snapshots
- Ownable: single-owner access control
- LdToken: ERC20 value-transfer rail used by staking and the reward pool
- The contract exception hierarchy
"""

from .base import ZERO_ADDRESS, Contract, ContractEvent, normalize_address
from .erc20 import LdToken
from .exceptions import (
    AccessError,
    ClaimOrUnstakeWindowNotOpenError,
    ClaimsClosedError,
    ContractError,
    ERC20InsufficientAllowanceError,
    ERC20InsufficientBalanceError,
    ERC20InvalidReceiverError,
    InsufficientRewardLiquidityError,
    InsufficientStakeError,
    InvalidAmountError,
    InvalidAprError,
    LiquidityError,
    OwnableInvalidOwnerError,
    OwnableUnauthorizedAccountError,
    StakeNotFoundError,
    StakingNotStartedError,
    StakingStateError,
    UnauthorizedError,
    ValidationError,
    ZeroAddressError,
)
from .ownable import Ownable

__all__ = [
    # Primitives
    "ZERO_ADDRESS",
    "Contract",
    "ContractEvent",
    "Ownable",
    "normalize_address",
    # Token
    "LdToken",
    # Exceptions
    "ContractError",
    "ValidationError",
    "ZeroAddressError",
    "InvalidAprError",
    "InvalidAmountError",
    "ERC20InvalidReceiverError",
    "AccessError",
    "OwnableUnauthorizedAccountError",
    "OwnableInvalidOwnerError",
    "UnauthorizedError",
    "StakingStateError",
    "StakingNotStartedError",
    "StakeNotFoundError",
    "ClaimOrUnstakeWindowNotOpenError",
    "ClaimsClosedError",
    "InsufficientStakeError",
    "LiquidityError",
    "InsufficientRewardLiquidityError",
    "ERC20InsufficientBalanceError",
    "ERC20InsufficientAllowanceError",
]
