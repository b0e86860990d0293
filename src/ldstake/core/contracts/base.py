"""
Shared contract plumbing: addresses, events and state snapshots.

Contracts are plain Python objects registered on a :class:`~ldstake.core.chain.Chain`.
The chain owns time and transaction boundaries; contracts only hold state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List

from .exceptions import InvalidAmountError, ZeroAddressError

if TYPE_CHECKING:
    from ..chain import Chain

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40
UINT256_MAX = 2**256 - 1
EVENT_COUNT_KEY = "_event_count"


def normalize_address(address: str | None) -> str:
    """Normalize address to lowercase; ``None`` and ``""`` become the zero address."""
    if not address:
        return ZERO_ADDRESS
    return address.lower()


def is_zero_address(address: str | None) -> bool:
    return normalize_address(address) == ZERO_ADDRESS


def require_address(address: str | None, message: str) -> str:
    """Return the normalized address or raise ZeroAddressError with ``message``."""
    normalized = normalize_address(address)
    if normalized == ZERO_ADDRESS:
        raise ZeroAddressError(message, details={"address": address or ""})
    return normalized


def require_positive_amount(amount: int, message: str = "Invalid amount") -> None:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise InvalidAmountError(message, details={"amount": amount})
    if amount <= 0 or amount > UINT256_MAX:
        raise InvalidAmountError(message, details={"amount": amount})


def _copy_containers(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _copy_containers(item) for key, item in value.items()}
    if isinstance(value, list):
        return list(value)
    return value


@dataclass
class ContractEvent:
    """A log entry emitted by a contract call."""

    name: str
    args: Dict[str, Any]
    contract: str
    timestamp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "args": dict(self.args),
            "contract": self.contract,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractEvent":
        return cls(
            name=data["name"],
            args=dict(data.get("args", {})),
            contract=data.get("contract", ""),
            timestamp=data.get("timestamp", 0),
        )


class Contract:
    """
    Base class for chain-registered contracts.

    Subclasses keep their state in instance attributes other than ``chain``,
    built from ints, strings, enums and frozen records, held directly or in
    dicts and lists. Copying those containers is then a full snapshot of the
    contract. State may only change inside ``chain.transaction(self)``.
    """

    contract_type = "Contract"

    def __init__(self, chain: "Chain", label: str, address: str | None = None) -> None:
        self.chain = chain
        self.address = normalize_address(address) if address else chain.next_address(label)
        self.events: List[ContractEvent] = []

    # ==================== Events ====================

    def _emit(self, name: str, **args: Any) -> ContractEvent:
        event = ContractEvent(
            name=name,
            args=args,
            contract=self.address,
            timestamp=self.chain.now,
        )
        self.events.append(event)
        return event

    def events_named(self, name: str) -> List[ContractEvent]:
        return [event for event in self.events if event.name == name]

    # ==================== Snapshots ====================

    def snapshot_state(self) -> Dict[str, Any]:
        """
        Capture the state a rollback needs.

        Events are append-only, so only their count is recorded.
        """
        state = {
            key: _copy_containers(value)
            for key, value in vars(self).items()
            if key not in ("chain", "events")
        }
        state[EVENT_COUNT_KEY] = len(self.events)
        return state

    def restore_state(self, state: Dict[str, Any]) -> None:
        """Return to ``state``; the snapshot must not be reused afterwards."""
        chain, events = self.chain, self.events
        del events[state[EVENT_COUNT_KEY]:]
        self.__dict__.clear()
        self.__dict__.update(state)
        del self.__dict__[EVENT_COUNT_KEY]
        self.chain = chain
        self.events = events

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    def _events_to_list(self) -> List[Dict[str, Any]]:
        return [event.to_dict() for event in self.events]

    def _events_from_list(self, data: List[Dict[str, Any]]) -> None:
        self.events = [ContractEvent.from_dict(item) for item in data]
