# -*- coding: utf-8 -*-
"""
Fungible token ledger (ERC-20 style)
====================================

Deterministic, float-free, storage-backed token. Every mutating call takes
an explicit `caller` and either applies completely or raises before writing.

Highlights
----------
- Storage layout from :mod:`lpstake.token` (``tok:bal:``, ``tok:allow:``).
- Events:
    - b"Transfer" { "from": bytes, "to": bytes, "value": int }
    - b"Approval" { "owner": bytes, "spender": bytes, "value": int }
  Mints come *from* and burns go *to* the zero address.
- U256-checked math via :mod:`lpstake.math` (no silent wrap).
- Single owner (:class:`~lpstake.access.ownable.Ownable`) gates `mint`.
- An allowance of ``MAX_UINT256`` is infinite: spends never decrement it.

Public interface
----------------
# metadata / views
name() -> bytes
symbol() -> bytes
decimals() -> int
total_supply() -> int
balance_of(addr) -> int
allowance(owner, spender) -> int
owner() -> bytes

# state-changing (explicit caller)
transfer(caller, to, amount) -> bool
approve(caller, spender, amount) -> bool
transfer_from(caller, owner, to, amount) -> bool
mint(caller, to, amount) -> bool              # owner only
burn(caller, amount) -> bool
transfer_ownership(caller, new_owner) -> None
renounce_ownership(caller) -> None
"""

from __future__ import annotations

import logging
from typing import Any, Final, Optional

from ..access.ownable import Ownable
from ..address import ZERO_ADDRESS, AddressLike, is_zero, to_address, to_hex
from ..config import get_config
from ..errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidOwner,
    InvalidRecipient,
    InvalidSpender,
)
from ..math import MAX_UINT256, require_u256, u256_add, u256_sub
from ..runtime.contract import Contract
from . import (
    EVT_APPROVAL,
    EVT_TRANSFER,
    clamp_decimals,
    key_allow,
    key_balance,
    normalize_symbol,
    require_name,
    require_symbol,
)

log = logging.getLogger(__name__)

K_NAME: Final[bytes] = b"tok:meta:name"
K_SYMBOL: Final[bytes] = b"tok:meta:symbol"
K_DECIMALS: Final[bytes] = b"tok:meta:dec"
K_TOTAL: Final[bytes] = b"tok:meta:total"

NOT_ENOUGH_TOKENS: Final[str] = "Not enough tokens"


class Ledger(Contract):
    """Fungible token with owner-gated minting and infinite allowances."""

    def __init__(
        self,
        address: AddressLike,
        *,
        name: Any,
        symbol: Any,
        owner: AddressLike,
        decimals: Optional[int] = None,
        initial_supply: int = 0,
        holder: Optional[AddressLike] = None,
        **runtime: Any,
    ) -> None:
        super().__init__(address, **runtime)
        name_b = require_name(name)
        sym_b = normalize_symbol(require_symbol(symbol))
        dec = clamp_decimals(get_config().default_decimals if decimals is None else int(decimals))
        require_u256(initial_supply)
        to = to_address(holder if holder is not None else owner)
        if initial_supply > 0 and is_zero(to):
            raise InvalidRecipient("Mint to the zero address")

        self.storage.set(K_NAME, name_b)
        self.storage.set(K_SYMBOL, sym_b)
        self.storage.set_u256(K_DECIMALS, dec)
        self._ownable = Ownable(self)
        self._ownable.init_owner(owner)

        if initial_supply > 0:
            self._mint_to(to, initial_supply)
        log.debug("ledger %s %r supply=%d holder=%s", to_hex(self.address), sym_b, initial_supply, to_hex(to))

    # ------------------------------------------------------------------ #
    # Metadata & views
    # ------------------------------------------------------------------ #

    def name(self) -> bytes:
        return self.storage.get(K_NAME) or b""

    def symbol(self) -> bytes:
        return self.storage.get(K_SYMBOL) or b""

    def decimals(self) -> int:
        return self.storage.get_u256(K_DECIMALS)

    def total_supply(self) -> int:
        return self.storage.get_u256(K_TOTAL)

    def balance_of(self, addr: AddressLike) -> int:
        return self.storage.get_u256(key_balance(to_address(addr)))

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        return self.storage.get_u256(key_allow(to_address(owner), to_address(spender)))

    def owner(self) -> bytes:
        return self._ownable.get_owner() or b""

    # ------------------------------------------------------------------ #
    # Mutations (explicit caller)
    # ------------------------------------------------------------------ #

    def transfer(self, caller: AddressLike, to: AddressLike, amount: int) -> bool:
        frm = to_address(caller)
        dst = to_address(to)
        require_u256(amount)
        if is_zero(dst):
            raise InvalidRecipient()
        self._move(frm, dst, amount)
        return True

    def approve(self, caller: AddressLike, spender: AddressLike, amount: int) -> bool:
        own = to_address(caller)
        spd = to_address(spender)
        require_u256(amount)
        if is_zero(own):
            raise InvalidOwner("Approve from the zero address")
        if is_zero(spd):
            raise InvalidSpender()
        self.storage.set_u256(key_allow(own, spd), amount)
        self._emit(EVT_APPROVAL, {"owner": own, "spender": spd, "value": amount})
        return True

    def transfer_from(self, caller: AddressLike, owner: AddressLike, to: AddressLike, amount: int) -> bool:
        """
        Spender (`caller`) moves `amount` from `owner` to `to` using its
        allowance. A finite allowance is decremented; ``MAX_UINT256`` is not.
        """
        spd = to_address(caller)
        own = to_address(owner)
        dst = to_address(to)
        require_u256(amount)
        if is_zero(dst):
            raise InvalidRecipient()

        allow_key = key_allow(own, spd)
        current = self.storage.get_u256(allow_key)
        if current < amount:
            raise InsufficientAllowance(allowance=current, needed=amount)
        bal = self.storage.get_u256(key_balance(own))
        if bal < amount:
            raise InsufficientBalance(NOT_ENOUGH_TOKENS, balance=bal, needed=amount)

        if current != MAX_UINT256:
            self.storage.set_u256(allow_key, current - amount)
        self._move(own, dst, amount)
        return True

    def mint(self, caller: AddressLike, to: AddressLike, amount: int) -> bool:
        self._ownable.require_owner(caller)
        dst = to_address(to)
        require_u256(amount)
        if is_zero(dst):
            raise InvalidRecipient("Mint to the zero address")
        self._mint_to(dst, amount)
        return True

    def burn(self, caller: AddressLike, amount: int) -> bool:
        """Holder burns their own tokens."""
        frm = to_address(caller)
        require_u256(amount)
        if is_zero(frm):
            raise InvalidOwner("Burn from the zero address")
        self._burn_from(frm, amount)
        return True

    def transfer_ownership(self, caller: AddressLike, new_owner: AddressLike) -> None:
        self._ownable.transfer_ownership(caller, new_owner)

    def renounce_ownership(self, caller: AddressLike) -> None:
        self._ownable.renounce_ownership(caller)

    # ------------------------------------------------------------------ #
    # Internals (no authorization; callers enforce it)
    # ------------------------------------------------------------------ #

    def _move(self, frm: bytes, to: bytes, amount: int) -> None:
        from_key = key_balance(frm)
        from_bal = self.storage.get_u256(from_key)
        if from_bal < amount:
            raise InsufficientBalance(NOT_ENOUGH_TOKENS, balance=from_bal, needed=amount)
        to_key = key_balance(to)
        # Credit is computed after the debit so a self-transfer is a no-op.
        self.storage.set_u256(from_key, from_bal - amount)
        self.storage.set_u256(to_key, u256_add(self.storage.get_u256(to_key), amount))
        self._emit(EVT_TRANSFER, {"from": frm, "to": to, "value": amount})
        log.debug("transfer %s: %s -> %s %d", to_hex(self.address), to_hex(frm), to_hex(to), amount)

    def _mint_to(self, to: bytes, amount: int) -> None:
        total = u256_add(self.total_supply(), amount)
        to_key = key_balance(to)
        bal = u256_add(self.storage.get_u256(to_key), amount)
        self.storage.set_u256(K_TOTAL, total)
        self.storage.set_u256(to_key, bal)
        self._emit(EVT_TRANSFER, {"from": ZERO_ADDRESS, "to": to, "value": amount})
        log.debug("mint %s: %s +%d (supply=%d)", to_hex(self.address), to_hex(to), amount, total)

    def _burn_from(self, frm: bytes, amount: int) -> None:
        bal_key = key_balance(frm)
        bal = self.storage.get_u256(bal_key)
        if bal < amount:
            raise InsufficientBalance("Burn amount exceeds balance", balance=bal, needed=amount)
        self.storage.set_u256(bal_key, bal - amount)
        self.storage.set_u256(K_TOTAL, u256_sub(self.total_supply(), amount))
        self._emit(EVT_TRANSFER, {"from": frm, "to": ZERO_ADDRESS, "value": amount})
        log.debug("burn %s: %s -%d", to_hex(self.address), to_hex(frm), amount)


__all__ = ["Ledger", "K_NAME", "K_SYMBOL", "K_DECIMALS", "K_TOTAL", "NOT_ENOUGH_TOKENS"]
