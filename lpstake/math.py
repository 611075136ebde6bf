# -*- coding: utf-8 -*-
"""
lpstake.math
============

Checked unsigned-integer helpers for ledger and vault arithmetic.

- **U256**-oriented, integer-only; floats never appear in balances or rewards.
- "checked" helpers raise `InvalidAmount` on out-of-range inputs or results
  instead of wrapping or clamping.
- Division truncates toward zero (floor for the non-negative domain), which
  is the only rounding the vault's reward formula allows.
"""

from __future__ import annotations

import math
from typing import Final

from .errors import InvalidAmount

U256_MAX: Final[int] = (1 << 256) - 1
MAX_UINT256: Final[int] = U256_MAX  # infinite-allowance sentinel


def is_u256(x: object) -> bool:
    # bool is an int subclass; reject it explicitly.
    return isinstance(x, int) and not isinstance(x, bool) and 0 <= x <= U256_MAX


def require_u256(*xs: object) -> None:
    """Raise unless every argument is an int in [0, U256_MAX]."""
    for x in xs:
        if not is_u256(x):
            raise InvalidAmount(
                "amount must be an integer in [0, 2**256-1]",
                data={"value": repr(x)[:80]},
            )


def u256_add(x: int, y: int) -> int:
    """Checked add: raise on overflow."""
    require_u256(x, y)
    s = x + y
    if s > U256_MAX:
        raise InvalidAmount("u256 overflow", data={"op": "add"})
    return s


def u256_sub(x: int, y: int) -> int:
    """Checked sub: raise on underflow (y > x)."""
    require_u256(x, y)
    if y > x:
        raise InvalidAmount("u256 underflow", data={"op": "sub"})
    return x - y


def mul_div_down(x: int, y: int, d: int) -> int:
    """floor(x*y/d). The intermediate product is unbounded (Python ints)."""
    require_u256(x, y)
    if not isinstance(d, int) or d <= 0:
        raise InvalidAmount("divisor must be a positive integer", data={"op": "mul_div"})
    return (x * y) // d


def isqrt(n: int) -> int:
    """Integer floor square root (exact & deterministic)."""
    if n < 0:
        raise InvalidAmount("negative sqrt", data={"op": "isqrt"})
    return math.isqrt(n)


__all__ = [
    "U256_MAX",
    "MAX_UINT256",
    "is_u256",
    "require_u256",
    "u256_add",
    "u256_sub",
    "mul_div_down",
    "isqrt",
]
