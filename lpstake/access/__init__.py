# -*- coding: utf-8 -*-
"""
lpstake.access
==============

Authorization helpers shared by the contracts in this package.

Two independent schemes:

- :class:`~lpstake.access.ownable.Ownable`: a single owner (the ledger's
  minter). Failures read ``"Ownable: caller is not the owner"``.
- :class:`~lpstake.access.roles.Roles`: 32-byte role ids with per-role admin
  roles (the vault's administrators). Failures read
  ``"AccessControl: account 0x… is missing role 0x…"``.

Both store their state in the owning contract's `Storage` and emit through
its event sink, so the host journals them like any other write.

Storage layout
--------------
- Owner:          ``b"access:owner"`` → address bytes (empty after renounce)
- Member flag:    ``b"access:role:member:" + role + b":" + account`` → ``b"1"``
- Admin-of-role:  ``b"access:role:admin:" + role`` → 32-byte role id
"""
from __future__ import annotations

OWNER_KEY: bytes = b"access:owner"
DEFAULT_ADMIN_ROLE: bytes = b"\x00" * 32
ROLE_MEMBER_PREFIX: bytes = b"access:role:member:"
ROLE_ADMIN_PREFIX: bytes = b"access:role:admin:"

from .ownable import Ownable  # noqa: E402
from .roles import Roles, derive_role_id  # noqa: E402

__all__ = [
    "OWNER_KEY",
    "DEFAULT_ADMIN_ROLE",
    "ROLE_MEMBER_PREFIX",
    "ROLE_ADMIN_PREFIX",
    "Ownable",
    "Roles",
    "derive_role_id",
]
