"""
lpstake.address: address coercion and deterministic derivation.

Contracts work on raw ``bytes`` addresses. Hex strings (with or without
"0x") are accepted at every public entry point and normalized here, so that
``ledger.balance_of("0xaa…")`` and ``ledger.balance_of(b"\\xaa…")`` read the
same slot.

Design notes
------------
- Every address is exactly ADDRESS_BYTES (20) bytes; anything else fails
  `InvalidAddress`. Storage keys concatenate addresses, so a fixed width keeps
  each (owner, spender) slot distinct and every key under the storage cap.
- `derive_address` gives stable addresses for deployments and test accounts
  (sha3-256 of a domain-separated label, truncated to ADDRESS_BYTES).
"""

from __future__ import annotations

import hashlib
from typing import Union

from .errors import InvalidAddress

AddressLike = Union[bytes, bytearray, memoryview, str]

ADDRESS_BYTES: int = 20
ZERO_ADDRESS: bytes = b"\x00" * ADDRESS_BYTES


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_address(value: AddressLike) -> bytes:
    """
    Coerce `value` to address bytes.
    - If str, interpret as hex (with or without '0x'); odd-length hex is rejected.
    - If a bytes-like object, copy to immutable bytes.
    Anything but ADDRESS_BYTES bytes is rejected.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        b = bytes(value)
    elif isinstance(value, str):
        h = _strip_0x(value.strip())
        if len(h) % 2 != 0:
            raise InvalidAddress(f"hex address must have even length, got {len(h)}")
        try:
            b = bytes.fromhex(h)
        except ValueError as e:
            raise InvalidAddress(f"invalid hex address: {value!r}") from e
    else:
        raise InvalidAddress(
            f"cannot convert type {type(value).__name__} to an address",
            data={"py_type": type(value).__name__},
        )
    if len(b) != ADDRESS_BYTES:
        raise InvalidAddress(
            f"address must be {ADDRESS_BYTES} bytes, got {len(b)}",
            data={"length": len(b)},
        )
    return b


def to_hex(b: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def is_zero(addr: bytes) -> bool:
    """True iff every byte of `addr` is zero."""
    return not any(addr)


def derive_address(label: Union[str, bytes]) -> bytes:
    """
    Stable address derived from a label: sha3_256(b"lpstake-addr|" + label)[:ADDRESS_BYTES].
    """
    if isinstance(label, str):
        label = label.encode("utf-8")
    return hashlib.sha3_256(b"lpstake-addr|" + bytes(label)).digest()[:ADDRESS_BYTES]


__all__ = [
    "AddressLike",
    "ADDRESS_BYTES",
    "ZERO_ADDRESS",
    "to_address",
    "to_hex",
    "is_zero",
    "derive_address",
]
