"""Single-owner access control for contracts."""

from __future__ import annotations

import logging

from .base import ZERO_ADDRESS, Contract, normalize_address
from .exceptions import OwnableInvalidOwnerError, OwnableUnauthorizedAccountError

logger = logging.getLogger(__name__)


class Ownable(Contract):
    """Contract with one owner who alone may call administrative operations."""

    def _init_owner(self, owner: str) -> None:
        owner_norm = normalize_address(owner)
        if owner_norm == ZERO_ADDRESS:
            raise OwnableInvalidOwnerError(
                "OwnableInvalidOwner", details={"owner": owner or ""}
            )
        self.owner = owner_norm

    def _require_owner(self, caller: str) -> None:
        """Require caller is owner."""
        caller_norm = normalize_address(caller)
        if caller_norm != self.owner:
            raise OwnableUnauthorizedAccountError(
                "OwnableUnauthorizedAccount", details={"account": caller_norm}
            )

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        """Transfer ownership (owner only)."""
        with self.chain.transaction(self):
            self._require_owner(caller)
            new_owner_norm = normalize_address(new_owner)
            if new_owner_norm == ZERO_ADDRESS:
                raise OwnableInvalidOwnerError(
                    "OwnableInvalidOwner", details={"owner": new_owner or ""}
                )
            previous = self.owner
            self.owner = new_owner_norm
            self._emit("OwnershipTransferred", previous_owner=previous, new_owner=new_owner_norm)

        self.chain.after_commit(
            logger.info,
            "Ownership transferred",
            extra={
                "event": "ownable.ownership_transferred",
                "contract": self.address[:10],
                "new_owner": new_owner_norm[:10],
            }
        )
        return True
