"""
lpstake.vault: lock LP shares, earn rewards priced against the pool.

A staker deposits liquidity-pool shares; every full `reward_interval` since
their first deposit entitles them to `reward_share` percent of the staked
amount, expressed in LP units and converted to the reward token at the
pool's price *when they claim*:

    intervals     = (now - stake_timestamp) // reward_interval
    cumulative_lp = staked_amount * reward_share // 100 * intervals
    cumulative    = oracle.price_in_reserve(cumulative_lp, reward_token)
    payout        = cumulative - claimed_tokens

`claimed_tokens` is then set to `cumulative`, so the entitlement is
re-priced on every claim rather than summed at historic prices. A price drop
can leave `payout <= 0`, which fails with `NothingToClaim` until enough new
intervals accrue. A claim needs at least one full interval beyond those the
previous claim covered (`claimed_intervals`), otherwise it fails with
`RewardsNotAvailable`.

Positions can be withdrawn in full once `freeze_time` has passed since the
first deposit; the withdrawal resets the position and forfeits anything not
yet claimed.

Administration uses `lpstake.access.roles.Roles`; the deploying admin holds
`DEFAULT_ADMIN_ROLE` permanently.

Storage layout
--------------
    cfg:lp, cfg:reward         -> address bytes
    cfg:interval, cfg:share,
    cfg:freeze                 -> u256
    cfg:set                    -> b"1" once set_up_config ran
    pos:amt:<addr>,
    pos:ts:<addr>,
    pos:claimed:<addr>,
    pos:intervals:<addr>       -> u256
    vault:total                -> u256 sum of staked amounts
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Final

from .access import DEFAULT_ADMIN_ROLE
from .access.roles import Roles
from .address import AddressLike, is_zero, to_address, to_hex
from .config import get_config
from .errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidConfig,
    LpStakeError,
    NotConfigured,
    NothingToClaim,
    NothingToStake,
    RewardsNotAvailable,
    UnstakeNotAvailable,
    ZeroAmount,
)
from .math import require_u256, u256_add, u256_sub
from .oracle import LiquidityPool, PriceOracle
from .runtime.contract import Contract
from .token.fungible import Ledger

log = logging.getLogger(__name__)

K_CFG_LP: Final[bytes] = b"cfg:lp"
K_CFG_REWARD: Final[bytes] = b"cfg:reward"
K_CFG_INTERVAL: Final[bytes] = b"cfg:interval"
K_CFG_SHARE: Final[bytes] = b"cfg:share"
K_CFG_FREEZE: Final[bytes] = b"cfg:freeze"
K_CFG_SET: Final[bytes] = b"cfg:set"
K_TOTAL_STAKED: Final[bytes] = b"vault:total"

POS_AMOUNT: Final[bytes] = b"pos:amt:"
POS_TIMESTAMP: Final[bytes] = b"pos:ts:"
POS_CLAIMED: Final[bytes] = b"pos:claimed:"
POS_INTERVALS: Final[bytes] = b"pos:intervals:"

EVT_STAKED: Final[bytes] = b"Staked"
EVT_CLAIMED: Final[bytes] = b"Claimed"
EVT_UNSTAKED: Final[bytes] = b"Unstaked"
EVT_CONFIG_CHANGED: Final[bytes] = b"ConfigChanged"

PERCENT: Final[int] = 100


@dataclass(frozen=True)
class StakingParams:
    """Numeric part of a staking config."""

    reward_interval: int
    reward_share: int
    freeze_time: int

    @classmethod
    def default(cls) -> "StakingParams":
        cfg = get_config()
        return cls(cfg.reward_interval, cfg.reward_share, cfg.freeze_time)


@dataclass(frozen=True)
class StakingConfig:
    liquidity_token: bytes
    reward_token: bytes
    reward_interval: int
    reward_share: int
    freeze_time: int

    @property
    def params(self) -> StakingParams:
        return StakingParams(self.reward_interval, self.reward_share, self.freeze_time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StakePosition:
    staked_amount: int = 0
    stake_timestamp: int = 0
    claimed_tokens: int = 0
    claimed_intervals: int = 0

    @property
    def active(self) -> bool:
        return self.staked_amount > 0


def _require_param(name: str, value: Any, *, minimum: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
        raise InvalidConfig(f"{name} must be an integer >= {minimum}", data={name: repr(value)[:80]})
    require_u256(value)
    return value


class StakingVault(Contract):
    def __init__(self, address: AddressLike, *, admin: AddressLike, **runtime: Any) -> None:
        super().__init__(address, **runtime)
        self.admin: bytes = to_address(admin)
        self._roles = Roles(self, protected=[self.admin])
        self._roles.setup_role(DEFAULT_ADMIN_ROLE, self.admin)

    # ------------------------------------------------------------------ #
    # Configuration (admin only)
    # ------------------------------------------------------------------ #

    def set_up_config(
        self,
        caller: AddressLike,
        liquidity_token: AddressLike,
        reward_token: AddressLike,
        reward_interval: int,
        reward_share: int,
        freeze_time: int,
    ) -> StakingConfig:
        """Replace the whole staking config. May be called again later."""
        self._roles.require_role(DEFAULT_ADMIN_ROLE, caller)
        lp = to_address(liquidity_token)
        reward = to_address(reward_token)
        if is_zero(lp) or is_zero(reward):
            raise InvalidConfig("token addresses must be non-zero")
        cfg = StakingConfig(
            liquidity_token=lp,
            reward_token=reward,
            reward_interval=_require_param("reward_interval", reward_interval, minimum=1),
            reward_share=_require_param("reward_share", reward_share, minimum=0),
            freeze_time=_require_param("freeze_time", freeze_time, minimum=0),
        )
        self.storage.set(K_CFG_LP, cfg.liquidity_token)
        self.storage.set(K_CFG_REWARD, cfg.reward_token)
        self.storage.set_u256(K_CFG_INTERVAL, cfg.reward_interval)
        self.storage.set_u256(K_CFG_SHARE, cfg.reward_share)
        self.storage.set_u256(K_CFG_FREEZE, cfg.freeze_time)
        self.storage.set(K_CFG_SET, b"1")
        self._emit_config(cfg)
        log.info("vault %s config set: %s", to_hex(self.address), {**cfg.to_dict(), "liquidity_token": to_hex(lp), "reward_token": to_hex(reward)})
        return cfg

    def setup_reward_share(self, caller: AddressLike, share: int) -> None:
        self._roles.require_role(DEFAULT_ADMIN_ROLE, caller)
        self.config()
        self.storage.set_u256(K_CFG_SHARE, _require_param("reward_share", share, minimum=0))
        self._emit_config(self._read_config())
        log.info("vault %s reward share -> %d", to_hex(self.address), share)

    def setup_freeze_time(self, caller: AddressLike, seconds: int) -> None:
        self._roles.require_role(DEFAULT_ADMIN_ROLE, caller)
        self.config()
        self.storage.set_u256(K_CFG_FREEZE, _require_param("freeze_time", seconds, minimum=0))
        self._emit_config(self._read_config())
        log.info("vault %s freeze time -> %d", to_hex(self.address), seconds)

    # ------------------------------------------------------------------ #
    # Staker operations
    # ------------------------------------------------------------------ #

    def stake(self, caller: AddressLike, amount: int) -> StakePosition:
        """
        Pull `amount` LP shares from `caller` into the vault. The first stake
        starts the reward clock; later stakes add to the amount only.
        """
        staker = to_address(caller)
        cfg = self.config()
        require_u256(amount)
        if amount == 0:
            raise ZeroAmount()
        now = self.now()
        lp = self._liquidity_ledger(cfg)

        bal = lp.balance_of(staker)
        if bal < amount:
            raise InsufficientBalance(balance=bal, needed=amount)
        allowed = lp.allowance(staker, self.address)
        if allowed < amount:
            raise InsufficientAllowance(allowance=allowed, needed=amount)
        lp.transfer_from(self.address, staker, self.address, amount)

        pos = self.position(staker)
        new_amount = u256_add(pos.staked_amount, amount)
        self.storage.set_u256(POS_AMOUNT + staker, new_amount)
        if pos.staked_amount == 0:
            self.storage.set_u256(POS_TIMESTAMP + staker, now)
        self.storage.set_u256(K_TOTAL_STAKED, u256_add(self.total_staked(), amount))
        self._emit(EVT_STAKED, {"amount": amount, "staker": staker})
        log.debug("stake %s: %s +%d (total %d)", to_hex(self.address), to_hex(staker), amount, new_amount)
        return self.position(staker)

    def claim(self, caller: AddressLike) -> int:
        """Pay out the re-priced entitlement not yet paid. Returns the payout."""
        staker = to_address(caller)
        cfg = self.config()
        pos = self.position(staker)
        if pos.staked_amount == 0:
            raise NothingToStake("Nothing to claim")
        now = self.now()
        intervals = (now - pos.stake_timestamp) // cfg.reward_interval
        if intervals == 0 or intervals <= pos.claimed_intervals:
            raise RewardsNotAvailable(data={"intervals": intervals, "claimed_intervals": pos.claimed_intervals})

        cumulative_lp = pos.staked_amount * cfg.reward_share // PERCENT * intervals
        quote = self._oracle(cfg).quote(cumulative_lp, cfg.reward_token)
        payout = quote.value - pos.claimed_tokens
        if payout <= 0:
            raise NothingToClaim(data={"cumulative": quote.value, "claimed": pos.claimed_tokens})

        reward = self._reward_ledger(cfg)
        reward.transfer(self.address, staker, payout)
        self.storage.set_u256(POS_CLAIMED + staker, quote.value)
        self.storage.set_u256(POS_INTERVALS + staker, intervals)
        self._emit(EVT_CLAIMED, {"amount": payout, "staker": staker})
        log.debug(
            "claim %s: %s intervals=%d quote=%s payout=%d",
            to_hex(self.address), to_hex(staker), intervals, quote.to_dict(), payout,
        )
        return payout

    def unstake(self, caller: AddressLike) -> int:
        """Return the whole stake after the freeze period and reset the position."""
        staker = to_address(caller)
        cfg = self.config()
        pos = self.position(staker)
        if pos.staked_amount == 0:
            raise NothingToStake()
        now = self.now()
        if now - pos.stake_timestamp < cfg.freeze_time:
            raise UnstakeNotAvailable(data={"unlocks_at": pos.stake_timestamp + cfg.freeze_time, "now": now})

        self._liquidity_ledger(cfg).transfer(self.address, staker, pos.staked_amount)
        self.storage.delete(POS_AMOUNT + staker)
        self.storage.delete(POS_TIMESTAMP + staker)
        self.storage.delete(POS_CLAIMED + staker)
        self.storage.delete(POS_INTERVALS + staker)
        self.storage.set_u256(K_TOTAL_STAKED, u256_sub(self.total_staked(), pos.staked_amount))
        self._emit(EVT_UNSTAKED, {"amount": pos.staked_amount, "staker": staker})
        log.debug("unstake %s: %s -%d", to_hex(self.address), to_hex(staker), pos.staked_amount)
        return pos.staked_amount

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def is_configured(self) -> bool:
        return bool(self.storage.get(K_CFG_SET))

    def config(self) -> StakingConfig:
        if not self.is_configured():
            raise NotConfigured()
        return self._read_config()

    def reward_share(self) -> int:
        return self.storage.get_u256(K_CFG_SHARE)

    def freeze_time(self) -> int:
        return self.storage.get_u256(K_CFG_FREEZE)

    def reward_interval(self) -> int:
        return self.storage.get_u256(K_CFG_INTERVAL)

    def position(self, staker: AddressLike) -> StakePosition:
        who = to_address(staker)
        return StakePosition(
            staked_amount=self.storage.get_u256(POS_AMOUNT + who),
            stake_timestamp=self.storage.get_u256(POS_TIMESTAMP + who),
            claimed_tokens=self.storage.get_u256(POS_CLAIMED + who),
            claimed_intervals=self.storage.get_u256(POS_INTERVALS + who),
        )

    def total_staked(self) -> int:
        return self.storage.get_u256(K_TOTAL_STAKED)

    def pending_reward(self, staker: AddressLike) -> int:
        """What `claim` would pay right now; 0 wherever `claim` would fail."""
        if not self.is_configured():
            return 0
        cfg = self._read_config()
        pos = self.position(staker)
        if pos.staked_amount == 0:
            return 0
        intervals = (self.now() - pos.stake_timestamp) // cfg.reward_interval
        if intervals == 0 or intervals <= pos.claimed_intervals:
            return 0
        cumulative_lp = pos.staked_amount * cfg.reward_share // PERCENT * intervals
        try:
            value = self._oracle(cfg).price_in_reserve(cumulative_lp, cfg.reward_token)
        except LpStakeError:
            # claim reverts on the same pricing failure
            return 0
        return max(value - pos.claimed_tokens, 0)

    # ------------------------------------------------------------------ #
    # Role management
    # ------------------------------------------------------------------ #

    def has_role(self, role: bytes, account: AddressLike) -> bool:
        return self._roles.has_role(role, account)

    def get_role_admin(self, role: bytes) -> bytes:
        return self._roles.get_role_admin(role)

    def grant_role(self, caller: AddressLike, role: bytes, account: AddressLike) -> None:
        self._roles.grant_role(caller, role, account)

    def revoke_role(self, caller: AddressLike, role: bytes, account: AddressLike) -> None:
        self._roles.revoke_role(caller, role, account)

    def renounce_role(self, caller: AddressLike, role: bytes) -> None:
        self._roles.renounce_role(caller, role)

    def set_role_admin(self, caller: AddressLike, role: bytes, admin_role: bytes) -> None:
        self._roles.set_role_admin(caller, role, admin_role)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _read_config(self) -> StakingConfig:
        return StakingConfig(
            liquidity_token=self.storage.get(K_CFG_LP) or b"",
            reward_token=self.storage.get(K_CFG_REWARD) or b"",
            reward_interval=self.reward_interval(),
            reward_share=self.reward_share(),
            freeze_time=self.freeze_time(),
        )

    def _emit_config(self, cfg: StakingConfig) -> None:
        self._emit(EVT_CONFIG_CHANGED, cfg.to_dict())

    def _liquidity_ledger(self, cfg: StakingConfig) -> Ledger:
        lp = self.resolve(cfg.liquidity_token)
        if not isinstance(lp, Ledger):
            raise InvalidConfig("liquidity token is not a ledger", data={"address": to_hex(cfg.liquidity_token)})
        return lp

    def _reward_ledger(self, cfg: StakingConfig) -> Ledger:
        reward = self.resolve(cfg.reward_token)
        if not isinstance(reward, Ledger):
            raise InvalidConfig("reward token is not a ledger", data={"address": to_hex(cfg.reward_token)})
        return reward

    def _pool(self, cfg: StakingConfig) -> LiquidityPool:
        pool = self.resolve(cfg.liquidity_token)
        if not isinstance(pool, LiquidityPool):
            raise InvalidConfig("liquidity token is not a pool", data={"address": to_hex(cfg.liquidity_token)})
        return pool

    def _oracle(self, cfg: StakingConfig) -> PriceOracle:
        return PriceOracle(self._pool(cfg))


__all__ = [
    "StakingVault",
    "StakingConfig",
    "StakingParams",
    "StakePosition",
    "EVT_STAKED",
    "EVT_CLAIMED",
    "EVT_UNSTAKED",
    "EVT_CONFIG_CHANGED",
]
