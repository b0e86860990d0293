"""
Reward pool for the LD staking ledger.

Holds the tokens that fund staking rewards. The owner funds and drains it;
only the registered staking contract can make it pay out.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict

from ..contracts.base import normalize_address, require_address, require_positive_amount
from ..contracts.erc20 import LdToken
from ..contracts.exceptions import (
    InsufficientRewardLiquidityError,
    UnauthorizedError,
    ZeroAddressError,
)
from ..contracts.ownable import Ownable

if TYPE_CHECKING:
    from ..chain import Chain

logger = logging.getLogger(__name__)


class RewardPool(Ownable):
    """
    Token vault that pays staking rewards on the staking contract's instruction.

    ``pooled_amount`` tracks what the owner earmarked for rewards; the
    spendable figure is always the pool's actual token balance.
    """

    contract_type = "RewardPool"

    def __init__(
        self,
        chain: "Chain",
        owner: str,
        staking_address: str,
        token_address: str,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, "reward_pool", address=address)
        self._init_owner(owner)
        self.staking_address = require_address(
            staking_address, "Staking contract address can't be zero"
        )
        self.token_address = require_address(
            token_address, "LDToken contract address can't be zero"
        )
        self.pooled_amount = 0
        chain.register(self)

    @property
    def token(self) -> LdToken:
        token = self.chain.resolve(self.token_address, LdToken)
        if token is None:
            raise ZeroAddressError(
                "LDToken contract not deployed", details={"address": self.token_address}
            )
        return token

    # ==================== Views ====================

    def available_rewards(self) -> int:
        """Tokens the pool can actually pay out right now."""
        return self.token.balance_of(self.address)

    # ==================== Owner Functions ====================

    def fund_pool(self, caller: str, amount: int) -> bool:
        """
        Pull ``amount`` tokens from the owner into the pool.

        The owner must have approved the pool for at least ``amount``.
        """
        with self.chain.transaction(self):
            self._require_owner(caller)
            require_positive_amount(amount, "Amount must be greater than zero")
            self.token.transfer_from(self.address, self.owner, self.address, amount)
            self.pooled_amount += amount
            self._emit("PoolFunded", funder=self.owner, amount=amount)

        self.chain.after_commit(
            logger.info,
            "Reward pool funded",
            extra={
                "event": "reward_pool.funded",
                "pool": self.address[:10],
                "amount": amount,
                "pooled_amount": self.pooled_amount,
            }
        )
        return True

    def withdraw_remaining_tokens(self, caller: str) -> int:
        """Send the pool's entire token balance back to the owner."""
        with self.chain.transaction(self):
            self._require_owner(caller)
            balance = self.available_rewards()
            if balance > 0:
                self.token.transfer(self.address, self.owner, balance)
            self.pooled_amount = 0
            self._emit("RemainingTokensWithdrawn", recipient=self.owner, amount=balance)

        self.chain.after_commit(
            logger.warning,
            "Reward pool drained by owner",
            extra={
                "event": "reward_pool.withdrawn",
                "pool": self.address[:10],
                "amount": balance,
            }
        )
        return balance

    # ==================== Staking Hook ====================

    def send_rewards(self, caller: str, amount: int, recipient: str) -> bool:
        """
        Pay ``amount`` tokens to ``recipient``.

        Args:
            caller: Must be the registered staking contract
            amount: Reward amount
            recipient: Staker, or the staking contract itself for restakes

        Raises:
            UnauthorizedError: If caller is not the staking contract
            InsufficientRewardLiquidityError: If the pool cannot cover ``amount``
        """
        with self.chain.transaction(self):
            if normalize_address(caller) != self.staking_address:
                raise UnauthorizedError(
                    "UnAuthorized", details={"caller": normalize_address(caller)}
                )
            require_positive_amount(amount)
            recipient_norm = require_address(recipient, "Reward recipient can't be zero")

            available = self.available_rewards()
            if amount > available:
                raise InsufficientRewardLiquidityError(
                    "InsufficientRewardLiquidity",
                    details={"requested": amount, "available": available},
                )

            self.token.transfer(self.address, recipient_norm, amount)
            self.pooled_amount -= min(amount, self.pooled_amount)
            self._emit("RewardsSent", recipient=recipient_norm, amount=amount)

        self.chain.after_commit(
            logger.debug,
            "Rewards sent",
            extra={
                "event": "reward_pool.rewards_sent",
                "recipient": recipient_norm[:10],
                "amount": amount,
                "remaining": available - amount,
            }
        )
        return True

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "staking_address": self.staking_address,
            "token_address": self.token_address,
            "pooled_amount": self.pooled_amount,
            "events": self._events_to_list(),
        }

    @classmethod
    def from_dict(cls, chain: "Chain", data: Dict[str, Any]) -> "RewardPool":
        pool = cls(
            chain,
            owner=data["owner"],
            staking_address=data["staking_address"],
            token_address=data["token_address"],
            address=data["address"],
        )
        pool.pooled_amount = data.get("pooled_amount", 0)
        pool._events_from_list(data.get("events", []))
        return pool
