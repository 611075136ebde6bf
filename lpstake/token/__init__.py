# -*- coding: utf-8 -*-
"""
lpstake.token
=============

Key layout, event names and metadata rules shared by the token ledger
(:mod:`lpstake.token.fungible`) and the pool's LP ledger.

    balance of A          tok:bal:<A>
    allowance A -> S      tok:allow:<A>|<S>

    Transfer  {from, to, value}
    Approval  {owner, spender, value}

A name is 1 to 64 printable ASCII bytes. A symbol is 1 to 11 printable ASCII
bytes and is stored upper-cased, so "tst" and "TST" name the same ticker.
"""

from __future__ import annotations

from typing import Final, Union

from ..errors import InvalidConfig

BAL_PREFIX: Final[bytes] = b"tok:bal:"
ALLOW_PREFIX: Final[bytes] = b"tok:allow:"

EVT_TRANSFER: Final[bytes] = b"Transfer"
EVT_APPROVAL: Final[bytes] = b"Approval"

MAX_DECIMALS: Final[int] = 36

TextLike = Union[str, bytes, bytearray]


def key_balance(addr: bytes) -> bytes:
    return BAL_PREFIX + bytes(addr)


def key_allow(owner: bytes, spender: bytes) -> bytes:
    return ALLOW_PREFIX + bytes(owner) + b"|" + bytes(spender)


def is_printable_ascii(s: bytes) -> bool:
    """True iff `s` is non-empty and every byte is in 32..126."""
    if not isinstance(s, (bytes, bytearray)) or len(s) == 0:
        return False
    return all(32 <= b <= 126 for b in s)


def _as_bytes(value: TextLike, what: str) -> bytes:
    if isinstance(value, str):
        try:
            return value.encode("ascii")
        except UnicodeEncodeError:
            raise InvalidConfig(f"token {what} must be printable ASCII") from None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    raise InvalidConfig(f"token {what} must be str or bytes", data={"py_type": type(value).__name__})


def require_name(name: TextLike) -> bytes:
    """Name must be 1..64 printable ASCII. Returns it as bytes."""
    b = _as_bytes(name, "name")
    if not is_printable_ascii(b) or not (1 <= len(b) <= 64):
        raise InvalidConfig("token name must be 1..64 printable ASCII chars")
    return b


def require_symbol(sym: TextLike) -> bytes:
    """Symbol must be 1..11 printable ASCII. Returns it as bytes."""
    b = _as_bytes(sym, "symbol")
    if not is_printable_ascii(b) or not (1 <= len(b) <= 11):
        raise InvalidConfig("token symbol must be 1..11 printable ASCII chars")
    return b


def normalize_symbol(sym: bytes) -> bytes:
    # ASCII-only upper-casing; callers validate first.
    return sym.decode("ascii").upper().encode("ascii")


def clamp_decimals(n: int) -> int:
    """Clamp decimals to [0, 36]."""
    if n < 0:
        return 0
    if n > MAX_DECIMALS:
        return MAX_DECIMALS
    return n


from .fungible import Ledger  # noqa: E402

__all__ = [
    "BAL_PREFIX",
    "ALLOW_PREFIX",
    "EVT_TRANSFER",
    "EVT_APPROVAL",
    "MAX_DECIMALS",
    "key_balance",
    "key_allow",
    "is_printable_ascii",
    "require_name",
    "require_symbol",
    "normalize_symbol",
    "clamp_decimals",
    "Ledger",
]
