"""
LD Staking Ledger.

Tracks every account's stake positions and pays weekly rewards out of a
separate RewardPool:
- Staking: each stake appends a new indexed position
- Claiming: once a full week has passed since the last claim, pays the
  owed whole-week reward straight from the pool to the staker
- Restaking: same reward, paid into the ledger and added to the position
- Unstaking: returns principal from ledger custody, gated by the same
  weekly window

Position indices are stable for the ledger's lifetime. A position that was
fully unstaked stays addressable with a zero amount.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Dict, List

from ..config import MIN_APR_RATE, UnstakeRewardPolicy
from ..contracts.base import (
    ZERO_ADDRESS,
    normalize_address,
    require_address,
    require_positive_amount,
)
from ..contracts.erc20 import LdToken
from ..contracts.exceptions import (
    ClaimOrUnstakeWindowNotOpenError,
    ClaimsClosedError,
    InsufficientRewardLiquidityError,
    InsufficientStakeError,
    InvalidAprError,
    StakeNotFoundError,
    StakingNotStartedError,
    ValidationError,
    ZeroAddressError,
)
from ..contracts.ownable import Ownable
from .reward_math import RewardQuote, quote_reward, window_opens_at
from .reward_pool import RewardPool

if TYPE_CHECKING:
    from ..chain import Chain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StakePosition:
    """One stake: principal plus the point from which rewards accrue.

    Positions are immutable; the ledger swaps in an updated copy on every
    change, so a rollback snapshot only has to copy the position lists.
    """

    staked_amount: int
    last_claimed: int

    def to_dict(self) -> Dict[str, int]:
        return {"staked_amount": self.staked_amount, "last_claimed": self.last_claimed}

    @classmethod
    def from_dict(cls, data: Dict[str, int]) -> "StakePosition":
        return cls(staked_amount=int(data["staked_amount"]), last_claimed=int(data["last_claimed"]))


class LdStaking(Ownable):
    """
    Staking ledger with weekly claim windows and linear catch-up rewards.

    Staking starts locked; the owner must point the ledger at a reward pool
    and call :meth:`enable_staking` before the first stake. ``apr_rate`` and
    ``unstake_policy`` fall back to the chain's :class:`StakingConfig`.
    """

    contract_type = "LdStaking"

    def __init__(
        self,
        chain: "Chain",
        apr_rate: int | None = None,
        owner: str | None = None,
        token_address: str | None = None,
        unstake_policy: UnstakeRewardPolicy | str | None = None,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, "staking", address=address)
        self._init_owner(owner)
        if apr_rate is None:
            apr_rate = chain.config.default_apr_rate
        self._validate_apr(apr_rate)
        self.token_address = require_address(
            token_address, "LDToken contract address can't be zero"
        )

        self.apr_rate = apr_rate
        self.lock = True
        self.claims_closed = False
        self.reward_pool = ZERO_ADDRESS
        self.treasury = ZERO_ADDRESS
        self.total_staked_amount = 0
        self.stakes: Dict[str, List[StakePosition]] = {}

        if unstake_policy is None:
            unstake_policy = chain.config.unstake_reward_policy
        self.unstake_policy = UnstakeRewardPolicy(unstake_policy)

        chain.register(self)

    # ==================== Collaborators ====================

    @property
    def token(self) -> LdToken:
        token = self.chain.resolve(self.token_address, LdToken)
        if token is None:
            raise ZeroAddressError(
                "LDToken contract not deployed", details={"address": self.token_address}
            )
        return token

    @property
    def pool(self) -> RewardPool:
        pool = self.chain.resolve(self.reward_pool, RewardPool)
        if pool is None:
            raise ZeroAddressError("Reward pool not set", details={"address": self.reward_pool})
        return pool

    # ==================== Admin Functions ====================

    def enable_staking(self, caller: str) -> bool:
        """Open staking (owner only). Requires a reward pool."""
        with self.chain.transaction(self):
            self._require_owner(caller)
            if self.reward_pool == ZERO_ADDRESS:
                raise ZeroAddressError(
                    "Reward pool must be set before enabling staking",
                    details={"address": self.reward_pool},
                )
            if not self.lock:
                return False
            self.lock = False
            self._emit("StakingEnabled")

        self.chain.after_commit(
            logger.info,
            "Staking enabled",
            extra={"event": "staking.enabled", "contract": self.address[:10]},
        )
        return True

    def disable_staking(self, caller: str) -> bool:
        """Close staking to new stakes (owner only). Existing positions are unaffected."""
        with self.chain.transaction(self):
            self._require_owner(caller)
            if self.lock:
                return False
            self.lock = True
            self._emit("StakingDisabled")

        self.chain.after_commit(
            logger.info,
            "Staking disabled",
            extra={"event": "staking.disabled", "contract": self.address[:10]},
        )
        return True

    def change_apr(self, caller: str, new_apr: int) -> bool:
        """
        Change the annual rate (owner only).

        Args:
            caller: Must be owner
            new_apr: Rate with two implied decimals (50% is 5000)

        Raises:
            InvalidAprError: If the rate is below 1.00% (100)
        """
        with self.chain.transaction(self):
            self._require_owner(caller)
            self._validate_apr(new_apr)
            old_apr = self.apr_rate
            self.apr_rate = new_apr
            self._emit("AprChanged", old_apr=old_apr, new_apr=new_apr)

        self.chain.after_commit(
            logger.info,
            "APR changed",
            extra={"event": "staking.apr_changed", "old_apr": old_apr, "new_apr": new_apr}
        )
        return True

    def set_pool(self, caller: str, pool_address: str) -> bool:
        """Point the ledger at a reward pool (owner only)."""
        with self.chain.transaction(self):
            self._require_owner(caller)
            pool_norm = require_address(pool_address, "Reward pool address can't be zero")
            pool = self.chain.resolve(pool_norm, RewardPool)
            if pool is None:
                raise ValidationError(
                    "Address is not a reward pool", details={"address": pool_norm}
                )
            if pool.staking_address != self.address:
                raise ValidationError(
                    "Reward pool pays a different staking contract",
                    details={"address": pool_norm, "staking_address": pool.staking_address},
                )
            self.reward_pool = pool_norm
            self._emit("RewardPoolSet", pool=pool_norm)

        self.chain.after_commit(
            logger.info,
            "Reward pool set",
            extra={"event": "staking.pool_set", "pool": pool_norm[:10]},
        )
        return True

    def change_treasury(self, caller: str, treasury_address: str) -> bool:
        """Set the treasury that receives forfeited rewards (owner only)."""
        with self.chain.transaction(self):
            self._require_owner(caller)
            treasury_norm = require_address(treasury_address, "Treasury address can't be zero")
            self.treasury = treasury_norm
            self._emit("TreasuryChanged", treasury=treasury_norm)

        self.chain.after_commit(
            logger.info,
            "Treasury changed",
            extra={"event": "staking.treasury_changed", "treasury": treasury_norm[:10]}
        )
        return True

    def disable_reward_claims(self, caller: str) -> bool:
        """Stop claims and restakes (owner only). Unstaking stays open."""
        with self.chain.transaction(self):
            self._require_owner(caller)
            if self.claims_closed:
                return False
            self.claims_closed = True
            self._emit("ClaimsClosed")

        self.chain.after_commit(
            logger.warning,
            "Reward claims closed",
            extra={"event": "staking.claims_closed"},
        )
        return True

    def enable_reward_claims(self, caller: str) -> bool:
        with self.chain.transaction(self):
            self._require_owner(caller)
            if not self.claims_closed:
                return False
            self.claims_closed = False
            self._emit("ClaimsOpened")

        self.chain.after_commit(
            logger.info,
            "Reward claims opened",
            extra={"event": "staking.claims_opened"},
        )
        return True

    # ==================== Staking ====================

    def stake_ld(self, caller: str, amount: int) -> int:
        """
        Stake ``amount`` tokens as a new position.

        The caller must have approved the ledger for ``amount``.

        Returns:
            Index of the new position
        """
        with self.chain.transaction(self):
            account = normalize_address(caller)
            if self.lock:
                raise StakingNotStartedError("StakingNotStarted")
            require_positive_amount(amount, "Invalid amount")

            self.token.transfer_from(self.address, account, self.address, amount)

            positions = self.stakes.setdefault(account, [])
            positions.append(StakePosition(staked_amount=amount, last_claimed=self.chain.now))
            index = len(positions) - 1
            self.total_staked_amount += amount
            self._emit("Staked", account=account, amount=amount)

        self.chain.after_commit(
            logger.info,
            "Stake created",
            extra={
                "event": "staking.staked",
                "account": account[:10],
                "index": index,
                "amount": amount,
                "total_staked": self.total_staked_amount,
            }
        )
        return index

    def claim_rewards(self, caller: str, index: int) -> int:
        """
        Pay the position's owed whole-week rewards to the caller.

        Returns:
            Reward paid

        Raises:
            ClaimsClosedError: If the owner closed claims
            StakeNotFoundError: If the caller has no position at ``index``
            ClaimOrUnstakeWindowNotOpenError: If less than a week has passed
            InsufficientRewardLiquidityError: If the pool cannot cover the reward
        """
        with self.chain.transaction(self):
            account = normalize_address(caller)
            self._require_claims_open()
            position = self._position(account, index)
            quote = self._open_window(account, index, position)

            if quote.amount > 0:
                self._pay_reward(quote.amount, account)
            self._update_position(account, index, last_claimed=quote.new_last_claimed)
            self._emit("RewardClaimed", account=account, amount=quote.amount)

        self.chain.after_commit(
            logger.info,
            "Rewards claimed",
            extra={
                "event": "staking.rewards_claimed",
                "account": account[:10],
                "index": index,
                "weeks": quote.weeks,
                "amount": quote.amount,
            }
        )
        return quote.amount

    def restake(self, caller: str, index: int) -> int:
        """
        Add the position's owed whole-week rewards to its principal.

        Same gates as :meth:`claim_rewards`; the pool pays the ledger instead
        of the caller.

        Returns:
            Reward added to the position
        """
        with self.chain.transaction(self):
            account = normalize_address(caller)
            self._require_claims_open()
            position = self._position(account, index)
            quote = self._open_window(account, index, position)

            if quote.amount > 0:
                self._pay_reward(quote.amount, self.address)
                self.total_staked_amount += quote.amount
            position = self._update_position(
                account,
                index,
                staked_amount=position.staked_amount + quote.amount,
                last_claimed=quote.new_last_claimed,
            )
            self._emit("RewardClaimed", account=account, amount=quote.amount)

        self.chain.after_commit(
            logger.info,
            "Rewards restaked",
            extra={
                "event": "staking.restaked",
                "account": account[:10],
                "index": index,
                "weeks": quote.weeks,
                "amount": quote.amount,
                "staked_amount": position.staked_amount,
            }
        )
        return quote.amount

    def unstake_ld(self, caller: str, amount: int, index: int) -> bool:
        """
        Return ``amount`` of principal from position ``index`` to the caller.

        Accrued rewards are handled by the ledger's unstake policy.

        Raises:
            StakeNotFoundError: If the caller has no position at ``index``
            ClaimOrUnstakeWindowNotOpenError: If less than a week has passed
            InsufficientStakeError: If ``amount`` exceeds the position
        """
        with self.chain.transaction(self):
            account = normalize_address(caller)
            position = self._position(account, index)
            quote = self._open_window(account, index, position)
            require_positive_amount(amount, "Invalid amount")
            if amount > position.staked_amount:
                raise InsufficientStakeError(
                    "NotsufficientStake",
                    details={
                        "account": account,
                        "index": index,
                        "staked_amount": position.staked_amount,
                        "requested": amount,
                    },
                )

            position = self._settle_rewards_on_unstake(account, index, position, quote)

            self.token.transfer(self.address, account, amount)
            position = self._update_position(
                account, index, staked_amount=position.staked_amount - amount
            )
            self.total_staked_amount -= amount
            self._emit("Unstake", account=account, amount=amount)

        self.chain.after_commit(
            logger.info,
            "Stake withdrawn",
            extra={
                "event": "staking.unstaked",
                "account": account[:10],
                "index": index,
                "amount": amount,
                "remaining": position.staked_amount,
                "policy": self.unstake_policy.value,
            }
        )
        return True

    # ==================== Views ====================

    def get_user_stake(self, account: str, index: int) -> StakePosition:
        return self._position(normalize_address(account), index)

    def stakes_of(self, account: str) -> List[StakePosition]:
        return list(self.stakes.get(normalize_address(account), []))

    def stake_count(self, account: str) -> int:
        return len(self.stakes.get(normalize_address(account), []))

    def pending_rewards(self, account: str, index: int) -> RewardQuote:
        """What a claim on this position would pay right now."""
        position = self._position(normalize_address(account), index)
        return quote_reward(position.staked_amount, self.apr_rate, position.last_claimed, self.chain.now)

    def next_claim_time(self, account: str, index: int) -> int:
        position = self._position(normalize_address(account), index)
        return window_opens_at(position.last_claimed)

    # ==================== Helpers ====================

    def _validate_apr(self, apr_rate: int) -> None:
        if not isinstance(apr_rate, int) or isinstance(apr_rate, bool) or apr_rate < MIN_APR_RATE:
            raise InvalidAprError(
                "InvalidAPR",
                details={"apr_rate": apr_rate, "minimum": MIN_APR_RATE},
            )

    def _require_claims_open(self) -> None:
        if self.claims_closed:
            raise ClaimsClosedError("Reward claims are closed")

    def _position(self, account: str, index: int) -> StakePosition:
        positions = self.stakes.get(account, [])
        # bool is an int subclass; True must not address position 1
        is_index = isinstance(index, int) and not isinstance(index, bool)
        if not is_index or index < 0 or index >= len(positions):
            raise StakeNotFoundError(
                "StakeNotFound", details={"account": account, "index": index}
            )
        return positions[index]

    def _update_position(self, account: str, index: int, **changes: int) -> StakePosition:
        position = replace(self.stakes[account][index], **changes)
        self.stakes[account][index] = position
        return position

    def _open_window(self, account: str, index: int, position: StakePosition) -> RewardQuote:
        now = self.chain.now
        quote = quote_reward(position.staked_amount, self.apr_rate, position.last_claimed, now)
        if not quote.window_open:
            raise ClaimOrUnstakeWindowNotOpenError(
                "ClaimOrUnstakeWindowNotOpen",
                details={
                    "account": account,
                    "index": index,
                    "opens_at": window_opens_at(position.last_claimed),
                    "now": now,
                },
            )
        return quote

    def _pay_reward(self, amount: int, recipient: str) -> None:
        pool = self.pool
        available = pool.available_rewards()
        if amount > available:
            raise InsufficientRewardLiquidityError(
                "InsufficientRewardLiquidity",
                details={"requested": amount, "available": available},
            )
        pool.send_rewards(self.address, amount, recipient)

    def _settle_rewards_on_unstake(
        self, account: str, index: int, position: StakePosition, quote: RewardQuote
    ) -> StakePosition:
        policy = self.unstake_policy
        if policy is UnstakeRewardPolicy.PRESERVE:
            return position

        if policy is UnstakeRewardPolicy.CLAIM:
            # Closed claims leave the rewards where they are
            if self.claims_closed:
                return position
            if quote.amount > 0:
                self._pay_reward(quote.amount, account)
            self._emit("RewardClaimed", account=account, amount=quote.amount)
            return self._update_position(account, index, last_claimed=quote.new_last_claimed)

        position = self._update_position(account, index, last_claimed=quote.new_last_claimed)
        if quote.amount == 0:
            return position
        self._emit("RewardForfeited", account=account, amount=quote.amount)
        if self.treasury != ZERO_ADDRESS:
            pool = self.pool
            if pool.available_rewards() >= quote.amount:
                pool.send_rewards(self.address, quote.amount, self.treasury)
            else:
                self.chain.after_commit(
                    logger.warning,
                    "Forfeited rewards left in pool",
                    extra={
                        "event": "staking.forfeit_sweep_skipped",
                        "amount": quote.amount,
                        "available": pool.available_rewards(),
                    }
                )
        return position

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "owner": self.owner,
            "token_address": self.token_address,
            "apr_rate": self.apr_rate,
            "lock": self.lock,
            "claims_closed": self.claims_closed,
            "reward_pool": self.reward_pool,
            "treasury": self.treasury,
            "total_staked_amount": self.total_staked_amount,
            "unstake_policy": self.unstake_policy.value,
            "stakes": {
                account: [p.to_dict() for p in positions]
                for account, positions in self.stakes.items()
            },
            "events": self._events_to_list(),
        }

    @classmethod
    def from_dict(cls, chain: "Chain", data: Dict[str, Any]) -> "LdStaking":
        ledger = cls(
            chain,
            apr_rate=data["apr_rate"],
            owner=data["owner"],
            token_address=data["token_address"],
            unstake_policy=data.get("unstake_policy"),
            address=data["address"],
        )
        ledger.lock = data.get("lock", True)
        ledger.claims_closed = data.get("claims_closed", False)
        ledger.reward_pool = normalize_address(data.get("reward_pool"))
        ledger.treasury = normalize_address(data.get("treasury"))
        ledger.total_staked_amount = data.get("total_staked_amount", 0)
        ledger.stakes = {
            account: [StakePosition.from_dict(p) for p in positions]
            for account, positions in data.get("stakes", {}).items()
        }
        ledger._events_from_list(data.get("events", []))
        return ledger

