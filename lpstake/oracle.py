"""
lpstake.oracle: value liquidity-pool shares in one of the pool's reserve assets.

The vault never talks to an AMM directly. It asks a `PriceOracle` what a
number of LP units is worth in the reward asset *right now*:

    value = floor(liquidity_amount * reserve_of(asset) / total_liquidity_supply())

Anything that exposes the two read-only methods of `LiquidityPool` can back
the oracle; in this package that is `lpstake.pool.ConstantProductPool`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .address import AddressLike, to_address, to_hex
from .errors import StalePool
from .math import mul_div_down, require_u256

log = logging.getLogger(__name__)


@runtime_checkable
class LiquidityPool(Protocol):
    """Read-only capability the oracle needs from a pool."""

    def total_liquidity_supply(self) -> int: ...

    def reserve_of(self, asset: bytes) -> int: ...


@dataclass(frozen=True)
class PriceQuote:
    """Snapshot of one pricing: inputs and the floored result."""

    asset: bytes
    liquidity_amount: int
    total_supply: int
    reserve: int
    value: int

    def to_dict(self) -> dict:
        return {
            "asset": to_hex(self.asset),
            "liquidity_amount": self.liquidity_amount,
            "total_supply": self.total_supply,
            "reserve": self.reserve,
            "value": self.value,
        }


class PriceOracle:
    def __init__(self, pool: LiquidityPool) -> None:
        if not isinstance(pool, LiquidityPool):
            raise TypeError(f"{type(pool).__name__} does not implement LiquidityPool")
        self.pool = pool

    def quote(self, liquidity_amount: int, asset: AddressLike) -> PriceQuote:
        """Price `liquidity_amount` LP units in `asset`; fails StalePool on an empty pool."""
        require_u256(liquidity_amount)
        a = to_address(asset)
        supply = int(self.pool.total_liquidity_supply())
        if supply == 0:
            raise StalePool(data={"asset": to_hex(a)})
        reserve = int(self.pool.reserve_of(a))
        value = mul_div_down(liquidity_amount, reserve, supply)
        q = PriceQuote(a, liquidity_amount, supply, reserve, value)
        log.debug("quote %s", q.to_dict())
        return q

    def price_in_reserve(self, liquidity_amount: int, asset: AddressLike) -> int:
        return self.quote(liquidity_amount, asset).value


__all__ = ["LiquidityPool", "PriceQuote", "PriceOracle"]
