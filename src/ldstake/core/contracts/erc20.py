"""
ERC20 Token Implementation.

The staking ledger and reward pool move value only through this token's
standard operations (transfer, approve, transferFrom, balanceOf). The
LD token's transfer tax and anti-snipe rules live outside this package;
this is the plain value-transfer rail they sit on.

Every mutating call runs in a chain transaction, so a failed transferFrom
never leaves a half-spent allowance behind.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict

from .base import (
    UINT256_MAX,
    ZERO_ADDRESS,
    normalize_address,
    require_positive_amount,
)
from .exceptions import (
    ERC20InsufficientAllowanceError,
    ERC20InsufficientBalanceError,
    ERC20InvalidReceiverError,
    InvalidAmountError,
)
from .ownable import Ownable

if TYPE_CHECKING:
    from ..chain import Chain

logger = logging.getLogger(__name__)


class LdToken(Ownable):
    """
    Fungible token with 18 decimals, owner-only minting and holder burning.

    Every state-changing method takes the acting address (msg.sender) as its
    first argument.
    """

    contract_type = "LdToken"

    def __init__(
        self,
        chain: "Chain",
        owner: str,
        name: str = "LD Token",
        symbol: str = "LD",
        decimals: int = 18,
        initial_supply: int = 0,
        address: str | None = None,
    ) -> None:
        super().__init__(chain, f"token:{symbol}", address=address)
        self._init_owner(owner)
        if not name:
            raise InvalidAmountError("ERC20: name cannot be empty")
        if decimals < 0 or decimals > 18:
            raise InvalidAmountError("ERC20: invalid decimals", details={"decimals": decimals})
        if initial_supply < 0:
            raise InvalidAmountError("ERC20: invalid initial supply", details={"amount": initial_supply})

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[str, Dict[str, int]] = {}

        chain.register(self)
        if initial_supply > 0:
            self.mint(self.owner, self.owner, initial_supply)

    # ==================== Views ====================

    def balance_of(self, account: str) -> int:
        """Tokens held by ``account`` (0 for unknown addresses)."""
        return self.balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        """How much ``spender`` may still pull from ``owner``."""
        owner_norm = normalize_address(owner)
        spender_norm = normalize_address(spender)
        return self.allowances.get(owner_norm, {}).get(spender_norm, 0)

    # ==================== Transfers ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Move ``amount`` from ``sender`` (the caller) to ``recipient``.

        The staking ledger uses this to return principal and the reward pool
        to pay out rewards.

        Raises:
            ERC20InvalidReceiverError: If recipient is the zero address
            ERC20InsufficientBalanceError: If sender's balance is too low
        """
        with self.chain.transaction(self):
            sender_norm = normalize_address(sender)
            recipient_norm = self._validate_receiver(recipient)
            self._validate_amount(amount)
            self._move(sender_norm, recipient_norm, amount)

        self.chain.after_commit(
            logger.debug,
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            }
        )
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """
        Let ``spender`` pull up to ``amount`` of the caller's tokens.

        Stakers approve the ledger before ``stake_ld``; the pool owner approves
        the pool before ``fund_pool``. The new amount replaces the old one.
        """
        with self.chain.transaction(self):
            owner_norm = normalize_address(owner)
            spender_norm = normalize_address(spender)
            if spender_norm == ZERO_ADDRESS:
                raise ERC20InvalidReceiverError(
                    "ERC20InvalidSpender", details={"spender": spender or ""}
                )
            self._validate_amount(amount)

            self.allowances.setdefault(owner_norm, {})[spender_norm] = amount
            self._emit("Approval", owner=owner_norm, spender=spender_norm, value=amount)

        return True

    def transfer_from(
        self, spender: str, from_addr: str, to_addr: str, amount: int
    ) -> bool:
        """
        Pull ``amount`` from ``from_addr`` to ``to_addr`` against the caller's allowance.

        Args:
            spender: The contract or account doing the pulling (the caller)
            from_addr: Holder whose allowance is spent
            to_addr: Destination, usually the spender itself
            amount: Tokens to move

        Raises:
            ERC20InsufficientAllowanceError: If allowance is too low
            ERC20InsufficientBalanceError: If from_addr's balance is too low
        """
        with self.chain.transaction(self):
            spender_norm = normalize_address(spender)
            from_norm = normalize_address(from_addr)
            to_norm = self._validate_receiver(to_addr)
            self._validate_amount(amount)

            current_allowance = self.allowance(from_norm, spender_norm)
            if current_allowance < amount:
                raise ERC20InsufficientAllowanceError(
                    "ERC20InsufficientAllowance",
                    details={
                        "spender": spender_norm,
                        "allowance": current_allowance,
                        "needed": amount,
                    },
                )

            # Unlimited allowances are never decremented
            if current_allowance != UINT256_MAX:
                self.allowances[from_norm][spender_norm] = current_allowance - amount

            self._move(from_norm, to_norm, amount)

        return True

    def increase_allowance(self, owner: str, spender: str, added_value: int) -> bool:
        """Raise an allowance, capped at the unlimited value."""
        new_allowance = min(self.allowance(owner, spender) + added_value, UINT256_MAX)
        return self.approve(owner, spender, new_allowance)

    def decrease_allowance(self, owner: str, spender: str, subtracted_value: int) -> bool:
        """Lower an allowance; going below zero is an error."""
        current = self.allowance(owner, spender)
        if subtracted_value > current:
            raise ERC20InsufficientAllowanceError(
                "ERC20: decreased allowance below zero",
                details={"allowance": current, "needed": subtracted_value},
            )
        return self.approve(owner, spender, current - subtracted_value)

    # ==================== Supply ====================

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """Create ``amount`` new tokens for ``to``. Only the owner may mint."""
        with self.chain.transaction(self):
            self._require_owner(minter)
            to_norm = self._validate_receiver(to)
            require_positive_amount(amount)

            if self.total_supply + amount > UINT256_MAX:
                raise InvalidAmountError("ERC20: mint would overflow total supply")

            self.total_supply += amount
            self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
            self._emit("Transfer", sender=ZERO_ADDRESS, recipient=to_norm, value=amount)

        self.chain.after_commit(
            logger.info,
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )
        return True

    def burn(self, holder: str, amount: int) -> bool:
        """Destroy ``amount`` of the caller's own tokens."""
        with self.chain.transaction(self):
            holder_norm = normalize_address(holder)
            require_positive_amount(amount)

            balance = self.balances.get(holder_norm, 0)
            if balance < amount:
                raise ERC20InsufficientBalanceError(
                    "ERC20InsufficientBalance",
                    details={"sender": holder_norm, "balance": balance, "needed": amount},
                )

            self.balances[holder_norm] = balance - amount
            self.total_supply -= amount
            self._emit("Transfer", sender=holder_norm, recipient=ZERO_ADDRESS, value=amount)

        self.chain.after_commit(
            logger.info,
            "ERC20 burn",
            extra={
                "event": "erc20.burn",
                "token": self.symbol,
                "from": holder_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )
        return True

    # ==================== Helpers ====================

    def _move(self, from_norm: str, to_norm: str, amount: int) -> None:
        from_balance = self.balances.get(from_norm, 0)
        if from_balance < amount:
            raise ERC20InsufficientBalanceError(
                "ERC20InsufficientBalance",
                details={"sender": from_norm, "balance": from_balance, "needed": amount},
            )
        self.balances[from_norm] = from_balance - amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
        self._emit("Transfer", sender=from_norm, recipient=to_norm, value=amount)

    def _validate_receiver(self, address: str) -> str:
        normalized = normalize_address(address)
        if normalized == ZERO_ADDRESS:
            raise ERC20InvalidReceiverError(
                "ERC20InvalidReceiver", details={"receiver": address or ""}
            )
        return normalized

    def _validate_amount(self, amount: int) -> None:
        """Zero is a valid ERC20 amount; negatives and overflow are not."""
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise InvalidAmountError("ERC20: amount must be an integer", details={"amount": amount})
        if amount < 0:
            raise InvalidAmountError("ERC20: amount cannot be negative", details={"amount": amount})
        if amount > UINT256_MAX:
            raise InvalidAmountError("ERC20: amount exceeds uint256", details={"amount": amount})

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "total_supply": self.total_supply,
            "owner": self.owner,
            "balances": dict(self.balances),
            "allowances": {k: dict(v) for k, v in self.allowances.items()},
            "events": self._events_to_list(),
        }

    @classmethod
    def from_dict(cls, chain: "Chain", data: Dict[str, Any]) -> "LdToken":
        """Deserialize token state and register it on ``chain``."""
        token = cls(
            chain,
            owner=data["owner"],
            name=data["name"],
            symbol=data["symbol"],
            decimals=data.get("decimals", 18),
            address=data["address"],
        )
        token.total_supply = data.get("total_supply", 0)
        token.balances = dict(data.get("balances", {}))
        token.allowances = {k: dict(v) for k, v in data.get("allowances", {}).items()}
        token._events_from_list(data.get("events", []))
        return token
