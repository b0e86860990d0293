"""
Execution substrate for ldstake contracts.

The chain stands in for what a blockchain gives contracts for free:
- a registry resolving addresses to contracts
- one timestamp per transaction, taken from an injected clock
- single-writer, all-or-nothing transactions: each contract is
  snapshotted when it first changes inside a transaction and restored
  if anything inside it raises
- export/import of the whole contract state as JSON
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional, Tuple, Type, TypeVar

from .clock import ManualClock, SystemClock
from .config import StakingConfig, load_config
from .logging_config import configure_from

if TYPE_CHECKING:
    from .contracts.base import Contract

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="Contract")

STATE_VERSION = 1


class Chain:
    """
    Contract registry plus clock and transaction boundary.

    Usage:
        chain = Chain(clock=ManualClock())
        token = LdToken(chain, owner="0xOwner", initial_supply=10**24)
        with chain.transaction():
            token.transfer("0xOwner", "0xAlice", 10**18)
    """

    def __init__(
        self,
        clock: Optional[Any] = None,
        config: Optional[StakingConfig] = None,
        chain_id: str = "ldstake-local",
    ) -> None:
        self.clock = clock or SystemClock()
        self.config = config or StakingConfig()
        self.chain_id = chain_id
        self.contracts: Dict[str, "Contract"] = {}
        self._nonce = 0
        self._lock = threading.RLock()
        self._depth = 0
        self._tx_timestamp: Optional[int] = None
        self._snapshots: Dict[str, Dict[str, Any]] = {}
        self._deployed: List[str] = []
        self._commit_hooks: List[Tuple[Callable[..., Any], tuple, dict]] = []

    # ==================== Time ====================

    @property
    def now(self) -> int:
        """Timestamp of the open transaction, or the clock's time outside one."""
        if self._tx_timestamp is not None:
            return self._tx_timestamp
        return self.clock.now()

    # ==================== Registry ====================

    def next_address(self, label: str) -> str:
        with self._lock:
            digest = hashlib.sha3_256(f"{self.chain_id}:{label}:{self._nonce}".encode()).digest()
            self._nonce += 1
        return f"0x{digest[-20:].hex()}"

    def register(self, contract: "Contract") -> None:
        with self._lock:
            if contract.address in self.contracts:
                raise ValueError(f"address {contract.address} already holds a contract")
            self.contracts[contract.address] = contract
            if self._depth > 0:
                self._deployed.append(contract.address)
        logger.debug(
            "Contract registered",
            extra={
                "event": "chain.contract_registered",
                "contract_type": contract.contract_type,
                "address": contract.address,
            }
        )

    def resolve(self, address: str, expected_type: Optional[Type[C]] = None) -> Optional[C]:
        """Return the contract at ``address``, or None if absent or of another type."""
        contract = self.contracts.get((address or "").lower())
        if contract is None:
            return None
        if expected_type is not None and not isinstance(contract, expected_type):
            return None
        return contract

    # ==================== Transactions ====================

    @contextmanager
    def transaction(self, contract: Optional["Contract"] = None) -> Iterator["Chain"]:
        """
        Run the enclosed calls as one atomic transaction.

        Nested transactions join the outermost one; only the outermost
        rolls back. ``contract`` is the contract about to change state; it
        is snapshotted the first time it enters, and contracts that never
        enter are not copied at all.
        """
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                self._tx_timestamp = self.clock.now()
                self._snapshots = {}
                self._deployed = []
                self._commit_hooks = []
                nonce = self._nonce
            if contract is not None and contract.address not in self._snapshots:
                self._snapshots[contract.address] = contract.snapshot_state()
            self._depth += 1
            try:
                yield self
            except Exception as exc:
                if outermost:
                    self._rollback(nonce)
                    logger.debug(
                        "Transaction reverted",
                        extra={
                            "event": "chain.transaction_reverted",
                            "error_type": type(exc).__name__,
                        }
                    )
                raise
            finally:
                self._depth -= 1
                if outermost:
                    self._tx_timestamp = None
                    hooks, self._commit_hooks = self._commit_hooks, []
                    self._snapshots = {}
                    self._deployed = []
            if outermost:
                for callback, args, kwargs in hooks:
                    callback(*args, **kwargs)

    def after_commit(self, callback: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """
        Call ``callback`` once the open transaction commits.

        Outside a transaction it runs at once; if the transaction reverts
        it never runs. Contracts log their successful calls through this.
        """
        with self._lock:
            if self._depth > 0:
                self._commit_hooks.append((callback, args, kwargs))
                return
        callback(*args, **kwargs)

    def _rollback(self, nonce: int) -> None:
        # Contracts deployed inside the failed transaction disappear with it
        for address in self._deployed:
            self.contracts.pop(address, None)
        for address, state in self._snapshots.items():
            contract = self.contracts.get(address)
            if contract is not None:
                contract.restore_state(state)
        self._nonce = nonce

    # ==================== Persistence ====================

    def export_state(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "version": STATE_VERSION,
                "chain_id": self.chain_id,
                "timestamp": self.now,
                "nonce": self._nonce,
                "contracts": {
                    address: {"type": contract.contract_type, "data": contract.to_dict()}
                    for address, contract in self.contracts.items()
                },
            }

    @classmethod
    def from_state(
        cls,
        state: Dict[str, Any],
        clock: Optional[Any] = None,
        config: Optional[StakingConfig] = None,
    ) -> "Chain":
        """
        Rebuild a chain from :meth:`export_state` output.

        Without an explicit clock the chain resumes on a ManualClock at the
        exported timestamp.
        """
        version = state.get("version")
        if version != STATE_VERSION:
            raise ValueError(f"Unsupported state version: {version!r}")

        chain = cls(
            clock=clock or ManualClock(state.get("timestamp", 0)),
            config=config,
            chain_id=state.get("chain_id", "ldstake-local"),
        )
        types = _contract_types()
        for address, entry in state.get("contracts", {}).items():
            contract_cls = types.get(entry.get("type"))
            if contract_cls is None:
                raise ValueError(f"Unknown contract type {entry.get('type')!r} at {address}")
            contract_cls.from_dict(chain, entry["data"])
        chain._nonce = state.get("nonce", len(chain.contracts))
        return chain

    def save_state(self, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_suffix(target.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(self.export_state(), handle, indent=2, sort_keys=True)
        tmp.replace(target)
        logger.info(
            "Chain state saved",
            extra={"event": "chain.state_saved", "path": str(target), "contracts": len(self.contracts)}
        )
        return target

    @classmethod
    def load_state(
        cls,
        path: str | Path,
        clock: Optional[Any] = None,
        config: Optional[StakingConfig] = None,
    ) -> "Chain":
        with Path(path).open("r", encoding="utf-8") as handle:
            state = json.load(handle)
        chain = cls.from_state(state, clock=clock, config=config)
        logger.info(
            "Chain state loaded",
            extra={"event": "chain.state_loaded", "path": str(path), "contracts": len(chain.contracts)}
        )
        return chain


def _contract_types() -> Dict[str, Type["Contract"]]:
    from .contracts.erc20 import LdToken
    from .staking.ledger import LdStaking
    from .staking.reward_pool import RewardPool

    return {
        LdToken.contract_type: LdToken,
        LdStaking.contract_type: LdStaking,
        RewardPool.contract_type: RewardPool,
    }


def bootstrap(config: Optional[StakingConfig] = None, clock: Optional[Any] = None) -> Chain:
    """
    Configure logging and return a chain ready for deployments.

    Resumes from ``config.state_file`` when that file exists.
    """
    config = config or load_config()
    configure_from(config)
    if config.state_file and Path(config.state_file).exists():
        return Chain.load_state(config.state_file, clock=clock, config=config)
    return Chain(clock=clock, config=config)
