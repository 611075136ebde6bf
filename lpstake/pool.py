"""
lpstake.pool: a deterministic constant-product pair.

`ConstantProductPool` stands in for the external AMM the vault prices
rewards against. Like a Uniswap-V2 pair it is two things at once:

* the **LP token**: it *is* a `Ledger`, minting liquidity shares to
  depositors, and
* the **reserve holder**: it owns balances of two token ledgers and tracks
  their reserves.

Liquidity math
--------------
first deposit:  L = isqrt(a * b) - MINIMUM_LIQUIDITY
                (MINIMUM_LIQUIDITY shares are minted to the zero address and
                stay locked forever, so the supply never returns to zero)
later deposit:  L = min(a * S // Ra, b * S // Rb)

Swaps charge a 0.3% fee on the input:

    out = in * 997 * Rout // (Rin * 1000 + in * 997)

Tokens are pulled from depositors with `transfer_from`, so callers approve
the pool first. Both token contracts are looked up through the host.
"""

from __future__ import annotations

import logging
from typing import Any, Final, Tuple

from .address import ZERO_ADDRESS, AddressLike, is_zero, to_address, to_hex
from .errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientLiquidity,
    InvalidAddress,
    InvalidConfig,
    ZeroAmount,
)
from .math import isqrt, require_u256, u256_add
from .token.fungible import NOT_ENOUGH_TOKENS, Ledger

log = logging.getLogger(__name__)

MINIMUM_LIQUIDITY: Final[int] = 1000
FEE_NUMERATOR: Final[int] = 997
FEE_DENOMINATOR: Final[int] = 1000

K_TOKEN_A: Final[bytes] = b"pool:token:a"
K_TOKEN_B: Final[bytes] = b"pool:token:b"
K_RESERVE_A: Final[bytes] = b"pool:reserve:a"
K_RESERVE_B: Final[bytes] = b"pool:reserve:b"

EVT_MINT: Final[bytes] = b"Mint"
EVT_SWAP: Final[bytes] = b"Swap"
EVT_SYNC: Final[bytes] = b"Sync"


class ConstantProductPool(Ledger):
    def __init__(
        self,
        address: AddressLike,
        *,
        token_a: AddressLike,
        token_b: AddressLike,
        name: Any = b"Liquidity Pool",
        symbol: Any = b"LP",
        **runtime: Any,
    ) -> None:
        a = to_address(token_a)
        b = to_address(token_b)
        if a == b or is_zero(a) or is_zero(b):
            raise InvalidConfig("pool needs two distinct non-zero tokens")
        # The pool owns its own LP ledger; nobody can mint shares from outside.
        super().__init__(address, name=name, symbol=symbol, owner=address, decimals=18, **runtime)
        self.storage.set(K_TOKEN_A, a)
        self.storage.set(K_TOKEN_B, b)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def token_a(self) -> bytes:
        return self.storage.get(K_TOKEN_A) or b""

    def token_b(self) -> bytes:
        return self.storage.get(K_TOKEN_B) or b""

    def get_reserves(self) -> Tuple[int, int]:
        return self.storage.get_u256(K_RESERVE_A), self.storage.get_u256(K_RESERVE_B)

    def total_liquidity_supply(self) -> int:
        return self.total_supply()

    def reserve_of(self, asset: AddressLike) -> int:
        a = to_address(asset)
        if a == self.token_a():
            return self.storage.get_u256(K_RESERVE_A)
        if a == self.token_b():
            return self.storage.get_u256(K_RESERVE_B)
        raise InvalidAddress("asset is not held by the pool", data={"asset": to_hex(a)})

    def quote_liquidity(self, amount_a: int, amount_b: int) -> int:
        """LP shares a deposit of (amount_a, amount_b) would mint now."""
        require_u256(amount_a, amount_b)
        ra, rb = self.get_reserves()
        supply = self.total_supply()
        if supply == 0:
            root = isqrt(amount_a * amount_b)
            return root - MINIMUM_LIQUIDITY if root > MINIMUM_LIQUIDITY else 0
        return min(amount_a * supply // ra, amount_b * supply // rb)

    def quote_swap(self, token_in: AddressLike, amount_in: int) -> int:
        require_u256(amount_in)
        r_in, r_out = self._reserves_for(to_address(token_in))
        with_fee = amount_in * FEE_NUMERATOR
        denominator = r_in * FEE_DENOMINATOR + with_fee
        return with_fee * r_out // denominator if denominator else 0

    # ------------------------------------------------------------------ #
    # Mutations
    # ------------------------------------------------------------------ #

    def add_liquidity(self, caller: AddressLike, amount_a: int, amount_b: int) -> int:
        """
        Deposit both tokens and mint LP shares to `caller`. Returns the
        number of shares minted.
        """
        who = to_address(caller)
        require_u256(amount_a, amount_b)
        if amount_a == 0 or amount_b == 0:
            raise ZeroAmount("Zero liquidity")
        first = self.total_supply() == 0
        liquidity = self.quote_liquidity(amount_a, amount_b)
        if liquidity == 0:
            raise InsufficientLiquidity("Insufficient liquidity minted")

        tok_a, tok_b = self._tokens()
        self._check_pull(tok_a, who, amount_a)
        self._check_pull(tok_b, who, amount_b)
        tok_a.transfer_from(self.address, who, self.address, amount_a)
        tok_b.transfer_from(self.address, who, self.address, amount_b)

        if first:
            self._mint_to(ZERO_ADDRESS, MINIMUM_LIQUIDITY)
        self._mint_to(who, liquidity)
        ra, rb = self.get_reserves()
        self._sync(u256_add(ra, amount_a), u256_add(rb, amount_b))
        self._emit(EVT_MINT, {"sender": who, "amount_a": amount_a, "amount_b": amount_b, "liquidity": liquidity})
        log.debug("add_liquidity %s: %s a=%d b=%d -> %d LP", to_hex(self.address), to_hex(who), amount_a, amount_b, liquidity)
        return liquidity

    def swap(self, caller: AddressLike, token_in: AddressLike, amount_in: int) -> int:
        """Sell `amount_in` of `token_in` for the other reserve. Returns the output amount."""
        who = to_address(caller)
        t_in = to_address(token_in)
        require_u256(amount_in)
        if amount_in == 0:
            raise ZeroAmount("Zero swap")
        amount_out = self.quote_swap(t_in, amount_in)
        if amount_out == 0:
            raise InsufficientLiquidity("Insufficient output amount")

        tok_a, tok_b = self._tokens()
        src, dst = (tok_a, tok_b) if t_in == tok_a.address else (tok_b, tok_a)
        self._check_pull(src, who, amount_in)
        src.transfer_from(self.address, who, self.address, amount_in)
        dst.transfer(self.address, who, amount_out)

        ra, rb = self.get_reserves()
        if src is tok_a:
            self._sync(ra + amount_in, rb - amount_out)
        else:
            self._sync(ra - amount_out, rb + amount_in)
        self._emit(EVT_SWAP, {"sender": who, "token_in": t_in, "amount_in": amount_in, "amount_out": amount_out})
        log.debug("swap %s: %s in=%d out=%d", to_hex(self.address), to_hex(who), amount_in, amount_out)
        return amount_out

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _tokens(self) -> Tuple[Ledger, Ledger]:
        a = self.resolve(self.token_a())
        b = self.resolve(self.token_b())
        if not isinstance(a, Ledger) or not isinstance(b, Ledger):
            raise InvalidConfig("pool tokens must be ledgers")
        return a, b

    def _reserves_for(self, token_in: bytes) -> Tuple[int, int]:
        ra, rb = self.get_reserves()
        if token_in == self.token_a():
            return ra, rb
        if token_in == self.token_b():
            return rb, ra
        raise InvalidAddress("asset is not held by the pool", data={"asset": to_hex(token_in)})

    def _check_pull(self, token: Ledger, owner: bytes, amount: int) -> None:
        allowed = token.allowance(owner, self.address)
        if allowed < amount:
            raise InsufficientAllowance(allowance=allowed, needed=amount)
        bal = token.balance_of(owner)
        if bal < amount:
            raise InsufficientBalance(NOT_ENOUGH_TOKENS, balance=bal, needed=amount)

    def _sync(self, reserve_a: int, reserve_b: int) -> None:
        self.storage.set_u256(K_RESERVE_A, reserve_a)
        self.storage.set_u256(K_RESERVE_B, reserve_b)
        self._emit(EVT_SYNC, {"reserve_a": reserve_a, "reserve_b": reserve_b})


__all__ = [
    "ConstantProductPool",
    "MINIMUM_LIQUIDITY",
    "FEE_NUMERATOR",
    "FEE_DENOMINATOR",
]
