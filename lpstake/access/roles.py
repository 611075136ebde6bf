# -*- coding: utf-8 -*-
"""
lpstake.access.roles
====================

Role-based access control bound to a contract.

- **Bytes32 role identifiers**; `DEFAULT_ADMIN_ROLE` is 32 zero bytes and is
  the admin of every role unless `set_role_admin` says otherwise.
- **Reverting mutations**: granting or revoking requires the admin role of
  the target role; a missing role raises `Unauthorized`.
- **Idempotent on state**: granting an existing member or revoking a
  non-member changes nothing and emits nothing.
- **Protected members**: accounts passed as ``protected`` can never lose
  `DEFAULT_ADMIN_ROLE` (the vault protects its deployer this way).

Events
------
- **RoleGranted**      : {"role": bytes, "account": bytes, "sender": bytes}
- **RoleRevoked**      : {"role": bytes, "account": bytes, "sender": bytes}
- **RoleAdminChanged** : {"role": bytes, "previousAdminRole": bytes, "newAdminRole": bytes}
"""
from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Iterable, Union

from ..address import AddressLike, is_zero, to_address, to_hex
from ..errors import InvalidAddress, Unauthorized
from . import DEFAULT_ADMIN_ROLE, ROLE_ADMIN_PREFIX, ROLE_MEMBER_PREFIX

if TYPE_CHECKING:  # pragma: no cover
    from ..runtime.contract import Contract

log = logging.getLogger(__name__)


def normalize_role(role: Union[bytes, bytearray]) -> bytes:
    """Ensure `role` is exactly 32 bytes."""
    if not isinstance(role, (bytes, bytearray)) or len(role) != 32:
        raise ValueError("role id must be exactly 32 bytes")
    return bytes(role)


def derive_role_id(name: Union[str, bytes]) -> bytes:
    """Deterministic role id: sha3_256(name)."""
    if isinstance(name, str):
        name = name.encode("utf-8")
    return hashlib.sha3_256(bytes(name)).digest()


def missing_role_message(account: bytes, role: bytes) -> str:
    return f"AccessControl: account {to_hex(account)} is missing role {to_hex(role)}"


def _key_member(role: bytes, account: bytes) -> bytes:
    return ROLE_MEMBER_PREFIX + role + b":" + account


def _key_admin(role: bytes) -> bytes:
    return ROLE_ADMIN_PREFIX + role


class Roles:
    def __init__(self, contract: "Contract", *, protected: Iterable[AddressLike] = ()) -> None:
        self._c = contract
        self._protected = frozenset(to_address(a) for a in protected)

    # ---- Queries ------------------------------------------------------------

    def has_role(self, role: bytes, account: AddressLike) -> bool:
        role = normalize_role(role)
        return bool(self._c.storage.get(_key_member(role, to_address(account))))

    def get_role_admin(self, role: bytes) -> bytes:
        """Admin role-id for `role`, or DEFAULT_ADMIN_ROLE if unset."""
        role = normalize_role(role)
        v = self._c.storage.get(_key_admin(role))
        return v if v and len(v) == 32 else DEFAULT_ADMIN_ROLE

    def require_role(self, role: bytes, caller: AddressLike) -> None:
        role = normalize_role(role)
        who = to_address(caller)
        if not self.has_role(role, who):
            raise Unauthorized(
                missing_role_message(who, role),
                model="roles",
                account=to_hex(who),
                role=to_hex(role),
            )

    # ---- Mutations ----------------------------------------------------------

    def setup_role(self, role: bytes, account: AddressLike) -> None:
        """Unchecked grant, for construction time."""
        role = normalize_role(role)
        who = to_address(account)
        if self.has_role(role, who):
            return
        self._c.storage.set(_key_member(role, who), b"1")
        self._c._emit(b"RoleGranted", {"role": role, "account": who, "sender": who})

    def grant_role(self, caller: AddressLike, role: bytes, account: AddressLike) -> None:
        """
        Grant `role` to `account`. Only callable by holders of the role's
        admin role. Emits RoleGranted on first grant.
        """
        role = normalize_role(role)
        sender = to_address(caller)
        who = to_address(account)
        if is_zero(who):
            raise InvalidAddress("AccessControl: account is the zero address")
        self.require_role(self.get_role_admin(role), sender)
        if self.has_role(role, who):
            return
        self._c.storage.set(_key_member(role, who), b"1")
        self._c._emit(b"RoleGranted", {"role": role, "account": who, "sender": sender})
        log.info("role %s granted to %s by %s", to_hex(role), to_hex(who), to_hex(sender))

    def revoke_role(self, caller: AddressLike, role: bytes, account: AddressLike) -> None:
        """Revoke `role` from `account`. Only callable by the role's admins."""
        role = normalize_role(role)
        sender = to_address(caller)
        who = to_address(account)
        self.require_role(self.get_role_admin(role), sender)
        self._check_removable(role, who)
        if not self.has_role(role, who):
            return
        self._c.storage.delete(_key_member(role, who))
        self._c._emit(b"RoleRevoked", {"role": role, "account": who, "sender": sender})
        log.info("role %s revoked from %s by %s", to_hex(role), to_hex(who), to_hex(sender))

    def renounce_role(self, caller: AddressLike, role: bytes) -> None:
        """Caller removes themself from `role`. No-op if not a member."""
        role = normalize_role(role)
        who = to_address(caller)
        self._check_removable(role, who)
        if not self.has_role(role, who):
            return
        self._c.storage.delete(_key_member(role, who))
        self._c._emit(b"RoleRevoked", {"role": role, "account": who, "sender": who})
        log.info("role %s renounced by %s", to_hex(role), to_hex(who))

    def set_role_admin(self, caller: AddressLike, role: bytes, admin_role: bytes) -> None:
        """Set the admin role of `role`. Only callable by its current admins."""
        role = normalize_role(role)
        admin_role = normalize_role(admin_role)
        self.require_role(self.get_role_admin(role), caller)
        prev = self.get_role_admin(role)
        if prev == admin_role:
            return
        self._c.storage.set(_key_admin(role), admin_role)
        self._c._emit(
            b"RoleAdminChanged",
            {"role": role, "previousAdminRole": prev, "newAdminRole": admin_role},
        )

    def _check_removable(self, role: bytes, account: bytes) -> None:
        if role == DEFAULT_ADMIN_ROLE and account in self._protected:
            raise Unauthorized(
                "AccessControl: deployer admin role cannot be removed",
                model="roles",
                account=to_hex(account),
                role=to_hex(role),
            )


__all__ = ["Roles", "normalize_role", "derive_role_id", "missing_role_message"]
