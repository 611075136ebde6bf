# -*- coding: utf-8 -*-
"""
lpstake.access.ownable
======================

Single-owner authorization bound to a contract.

- read the current owner (`get_owner`)
- initialize the owner once (`init_owner`)
- check that a caller is the owner (`require_owner`)
- transfer ownership to a new account (`transfer_ownership`)
- renounce ownership (`renounce_ownership`)

Events:
    - "OwnershipTransferred" args: {"previous": bytes, "new": bytes}

After `renounce_ownership` the owner slot holds empty bytes and every
owner-only operation fails for good.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ..address import AddressLike, is_zero, to_address, to_hex
from ..errors import InvalidOwner, Unauthorized
from . import OWNER_KEY

if TYPE_CHECKING:  # pragma: no cover
    from ..runtime.contract import Contract

log = logging.getLogger(__name__)

NOT_OWNER_MESSAGE = "Ownable: caller is not the owner"


class Ownable:
    def __init__(self, contract: "Contract") -> None:
        self._c = contract

    def get_owner(self) -> Optional[bytes]:
        """Current owner address, or None if unset/renounced."""
        v = self._c.storage.get(OWNER_KEY)
        return v if v else None

    def init_owner(self, owner: AddressLike) -> None:
        """Set the owner if none is set yet. Idempotent."""
        if self._c.storage.get(OWNER_KEY):
            return
        new = to_address(owner)
        if is_zero(new):
            raise InvalidOwner("Ownable: new owner is the zero address")
        self._c.storage.set(OWNER_KEY, new)
        self._c._emit(b"OwnershipTransferred", {"previous": b"", "new": new})

    def require_owner(self, caller: AddressLike) -> None:
        owner = self.get_owner()
        who = to_address(caller)
        if owner is None or owner != who:
            raise Unauthorized(NOT_OWNER_MESSAGE, model="ownable", account=to_hex(who))

    def transfer_ownership(self, caller: AddressLike, new_owner: AddressLike) -> None:
        """
        Owner-only: hand ownership to `new_owner` (non-zero; use
        `renounce_ownership` to leave the contract ownerless).
        """
        self.require_owner(caller)
        new = to_address(new_owner)
        if is_zero(new):
            raise InvalidOwner("Ownable: new owner is the zero address")
        previous = self.get_owner() or b""
        self._c.storage.set(OWNER_KEY, new)
        self._c._emit(b"OwnershipTransferred", {"previous": previous, "new": new})
        log.info("ownership of %s: %s -> %s", to_hex(self._c.address), to_hex(previous), to_hex(new))

    def renounce_ownership(self, caller: AddressLike) -> None:
        self.require_owner(caller)
        previous = self.get_owner() or b""
        self._c.storage.set(OWNER_KEY, b"")
        self._c._emit(b"OwnershipTransferred", {"previous": previous, "new": b""})
        log.info("ownership of %s renounced by %s", to_hex(self._c.address), to_hex(previous))


__all__ = ["Ownable", "NOT_OWNER_MESSAGE"]
