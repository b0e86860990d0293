"""
Contract exception hierarchy for ldstake.

Every failed contract call raises one of these. A failure aborts the whole
call: the chain transaction that wraps it restores all contract state before
the exception leaves the call.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class ContractError(Exception):
    """Base exception for all contract call failures.

    Attributes:
        message: Human-readable error description
        details: Diagnostic payload (offending address, index, amounts)
        recoverable: Whether re-issuing a corrected call can succeed
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable


# ==================== Validation Errors ====================


class ValidationError(ContractError):
    """Raised when a call argument fails validation."""
    pass


class ZeroAddressError(ValidationError):
    """Raised when a required address is the zero address."""
    pass


class InvalidAprError(ValidationError):
    """Raised when an APR is given without its two implied decimals.

    Example: ``50`` would mean 0.50%, the caller almost certainly meant 50%
    (``5000``).
    """
    pass


class InvalidAmountError(ValidationError):
    """Raised when an amount is zero, negative or out of range."""
    pass


class ERC20InvalidReceiverError(ValidationError):
    """Raised when a token transfer targets the zero address."""
    pass


# ==================== Access Errors ====================


class AccessError(ContractError):
    """Raised when the caller is not allowed to perform an operation."""
    pass


class OwnableUnauthorizedAccountError(AccessError):
    """Raised when a non-owner calls an owner-only operation."""
    pass


class OwnableInvalidOwnerError(AccessError):
    """Raised when the zero address is proposed as owner."""
    pass


class UnauthorizedError(AccessError):
    """Raised when someone other than the staking contract asks the pool to pay."""
    pass


# ==================== Staking State Errors ====================


class StakingStateError(ContractError):
    """Raised when the staking ledger is not in a state that allows the call."""
    pass


class StakingNotStartedError(StakingStateError):
    """Raised when staking while the ledger lock is engaged."""
    pass


class StakeNotFoundError(StakingStateError):
    """Raised when the caller has no position at the given index."""
    pass


class ClaimOrUnstakeWindowNotOpenError(StakingStateError):
    """Raised when less than one full week passed since the last claim."""
    pass


class ClaimsClosedError(StakingStateError):
    """Raised when reward claims were closed by the owner."""
    pass


class InsufficientStakeError(StakingStateError):
    """Raised when unstaking more than the position holds."""
    pass


# ==================== Liquidity Errors ====================


class LiquidityError(ContractError):
    """Raised when a contract lacks the funds a call needs."""
    pass


class InsufficientRewardLiquidityError(LiquidityError):
    """Raised when the reward pool cannot cover a computed reward."""
    pass


class ERC20InsufficientBalanceError(LiquidityError):
    """Raised when a token holder's balance is below the transfer amount."""
    pass


class ERC20InsufficientAllowanceError(LiquidityError):
    """Raised when a spender's allowance is below the transfer amount."""
    pass
