# -*- coding: utf-8 -*-
"""
Staking vault: configuration, stake, re-priced claims, unstake, admin roles.

Timeline and numbers follow the deployment used in `conftest.build_market`:
a 110/110 pool with 110e18 LP shares, the user holding 10e18 of them.
"""
from __future__ import annotations

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from lpstake.access import DEFAULT_ADMIN_ROLE, derive_role_id
from lpstake.errors import (
    InsufficientAllowance,
    InsufficientBalance,
    InvalidConfig,
    NotConfigured,
    NothingToClaim,
    NothingToStake,
    RewardsNotAvailable,
    Unauthorized,
    UnstakeNotAvailable,
    ZeroAmount,
)
from lpstake.math import MAX_UINT256
from lpstake.token.fungible import Ledger
from lpstake.vault import StakePosition, StakingConfig, StakingParams

from .conftest import ADMIN, E18, FREEZE_TIME, REWARD_SHARE, REWARD_TIME, USER, USER2


def _priced(m, lp_units: int) -> int:
    reserve_a = m.pool.reserve_of(m.token_a.address)
    return lp_units * reserve_a // m.pool.total_supply()


def _stake_all(m, who=USER):
    amount = m.pool.balance_of(who)
    m.host.transact(m.pool, "approve", who, m.vault.address, amount, raise_on_revert=True)
    m.host.transact(m.vault, "stake", who, amount, raise_on_revert=True)
    return amount


# ------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------


def test_market_setup(market):
    m = market
    assert m.lp_amount == 10 * E18
    assert m.pool.total_supply() == 110 * E18
    assert m.pool.get_reserves() == (110 * E18, 110 * E18)
    assert m.vault.config() == StakingConfig(
        liquidity_token=m.pool.address,
        reward_token=m.token_a.address,
        reward_interval=REWARD_TIME,
        reward_share=REWARD_SHARE,
        freeze_time=FREEZE_TIME,
    )


def test_set_up_config_emits_and_is_admin_only(make_market):
    m = make_market(configure=False)
    with pytest.raises(NotConfigured):
        m.vault.config()
    rcpt = m.host.transact(m.vault, "set_up_config", USER, m.pool.address, m.token_a.address, 60, 10, 120)
    assert not rcpt.ok
    assert rcpt.error["code"] == "UNAUTHORIZED"
    assert rcpt.error["message"].startswith("AccessControl: account 0x")
    assert not m.vault.is_configured()

    rcpt = m.host.transact(m.vault, "set_up_config", ADMIN, m.pool.address, m.token_a.address, 60, 10, 120)
    assert rcpt.ok
    assert rcpt.event_names() == [b"ConfigChanged"]
    assert rcpt.events[0].args["reward_interval"] == 60
    assert m.vault.reward_interval() == 60


@pytest.mark.parametrize("interval,share,freeze", [(0, 10, 10), (60, -1, 10), (60, 10, -5), (True, 10, 10)])
def test_set_up_config_validates(market, interval, share, freeze):
    m = market
    with pytest.raises(InvalidConfig):
        m.vault.set_up_config(ADMIN, m.pool.address, m.token_a.address, interval, share, freeze)
    assert m.vault.reward_interval() == REWARD_TIME


def test_stake_before_config(make_market):
    m = make_market(configure=False)
    with pytest.raises(NotConfigured):
        m.vault.stake(USER, 1)
    with pytest.raises(NotConfigured):
        m.vault.setup_reward_share(ADMIN, 5)


def test_default_params_follow_env(monkeypatch):
    from lpstake.config import reset_config_cache

    assert StakingParams.default() == StakingParams(60, 10, 120)
    monkeypatch.setenv("LPSTAKE_FREEZE_TIME", "3600")
    reset_config_cache()
    assert StakingParams.default().freeze_time == 3600


# ------------------------------------------------------------------------------
# Stake
# ------------------------------------------------------------------------------


def test_stake_without_approval(market):
    m = market
    with pytest.raises(InsufficientAllowance) as ei:
        m.vault.stake(USER, m.lp_amount)
    assert ei.value.message == "Insufficient allowance"
    assert m.pool.balance_of(USER) == m.lp_amount


def test_stake_zero_and_more_than_balance(market):
    m = market
    m.host.transact(m.pool, "approve", USER, m.vault.address, m.lp_amount, raise_on_revert=True)
    with pytest.raises(ZeroAmount) as ei:
        m.vault.stake(USER, 0)
    assert ei.value.message == "Zero stake"
    with pytest.raises(InsufficientBalance) as ei:
        m.vault.stake(USER, m.lp_amount + 100)
    assert ei.value.message == "Insufficient balance"
    assert m.pool.balance_of(USER) == m.lp_amount
    assert m.vault.position(USER) == StakePosition()


def test_claim_with_zero_stake(market):
    m = market
    before = m.token_a.balance_of(USER)
    with pytest.raises(NothingToStake) as ei:
        m.vault.claim(USER)
    assert ei.value.message == "Nothing to claim"
    assert m.token_a.balance_of(USER) == before


def test_stake_twice_keeps_first_timestamp(market):
    m = market
    m.host.transact(m.pool, "approve", USER, m.vault.address, MAX_UINT256, raise_on_revert=True)
    t0 = m.host.timestamp
    rcpt = m.host.transact(m.vault, "stake", USER, m.lp_amount - 1)
    assert rcpt.ok
    assert rcpt.event_names() == [b"Transfer", b"Staked"]
    assert rcpt.events[-1].args == {"amount": m.lp_amount - 1, "staker": USER}

    m.host.advance(500)
    m.host.transact(m.vault, "stake", USER, 1, raise_on_revert=True)
    assert m.vault.position(USER) == StakePosition(m.lp_amount, t0, 0)
    assert m.vault.total_staked() == m.lp_amount
    assert m.pool.balance_of(m.vault.address) == m.lp_amount
    assert m.pool.balance_of(USER) == 0


# ------------------------------------------------------------------------------
# Claim
# ------------------------------------------------------------------------------


def test_scenario_c_first_and_second_claim(market):
    m = market
    staked = _stake_all(m)
    before = m.token_a.balance_of(USER)

    m.host.advance(int(REWARD_TIME * 2.8))
    first = _priced(m, staked // 10 * 2)
    rcpt = m.host.transact(m.vault, "claim", USER)
    assert rcpt.ok and rcpt.result == first
    assert rcpt.events[-1].name == b"Claimed"
    assert m.token_a.balance_of(USER) == before + first
    assert m.vault.position(USER).claimed_tokens == first
    assert first == 2 * E18

    m.host.advance(REWARD_TIME)
    second = _priced(m, staked // 10 * 3) - first
    assert m.vault.pending_reward(USER) == second
    assert m.vault.claim(USER) == second
    assert m.token_a.balance_of(USER) == before + first + second
    assert m.vault.position(USER).claimed_tokens == first + second


def test_scenario_d_claim_again_at_same_time(market):
    m = market
    _stake_all(m)
    m.host.advance(REWARD_TIME * 2)
    m.vault.claim(USER)
    before = m.vault.position(USER)
    with pytest.raises(RewardsNotAvailable) as ei:
        m.vault.claim(USER)
    assert ei.value.message == "Rewards are not available"
    assert m.vault.position(USER) == before
    assert before.claimed_intervals == 2


def test_claim_before_first_interval(market):
    m = market
    _stake_all(m)
    m.host.advance(REWARD_TIME - 1)
    with pytest.raises(RewardsNotAvailable) as ei:
        m.vault.claim(USER)
    assert ei.value.message == "Rewards are not available"
    assert m.vault.pending_reward(USER) == 0


def test_claim_is_repriced_after_swap(market):
    m = market
    _stake_all(m)
    m.host.advance(REWARD_TIME * 2)
    first = m.vault.claim(USER)

    # Dump token B into the pool: token A becomes scarce, LP is worth less A.
    m.host.transact(m.token_b, "mint", ADMIN, USER2, 200 * E18, raise_on_revert=True)
    m.host.transact(m.token_b, "approve", USER2, m.pool.address, MAX_UINT256, raise_on_revert=True)
    m.host.transact(m.pool, "swap", USER2, m.token_b.address, 100 * E18, raise_on_revert=True)

    m.host.advance(REWARD_TIME)
    repriced = _priced(m, m.lp_amount // 10 * 3)
    assert repriced < first
    before = m.token_a.balance_of(USER)
    rcpt = m.host.transact(m.vault, "claim", USER)
    assert rcpt.error["code"] == "NOTHING_TO_CLAIM"
    assert m.token_a.balance_of(USER) == before
    assert m.vault.position(USER).claimed_tokens == first
    assert m.vault.pending_reward(USER) == 0


def test_claim_after_price_rise_reprices_paid_intervals(market):
    m = market
    staked = _stake_all(m)
    m.host.advance(REWARD_TIME * 2)
    first = m.vault.claim(USER)
    assert first == 2 * E18

    # Sell token A into the pool: each LP unit now redeems for more A.
    m.host.transact(m.token_a, "mint", ADMIN, USER2, 100 * E18, raise_on_revert=True)
    m.host.transact(m.token_a, "approve", USER2, m.pool.address, MAX_UINT256, raise_on_revert=True)
    m.host.transact(m.pool, "swap", USER2, m.token_a.address, 50 * E18, raise_on_revert=True)
    assert _priced(m, staked // 10) > E18

    with pytest.raises(RewardsNotAvailable):
        m.vault.claim(USER)
    assert m.vault.pending_reward(USER) == 0

    m.host.advance(REWARD_TIME)
    cumulative = _priced(m, staked // 10 * 3)
    one_interval = _priced(m, staked // 10)
    expected = cumulative - first
    assert expected > one_interval
    assert m.vault.pending_reward(USER) == expected
    assert m.vault.claim(USER) == expected
    pos = m.vault.position(USER)
    assert (pos.claimed_tokens, pos.claimed_intervals) == (cumulative, 3)


@pytest.mark.parametrize("gaps", [(1, 1, 1), (2, 5), (3, 1, 4), (7,)])
def test_payout_is_share_times_new_intervals_at_constant_price(market, gaps):
    m = market
    staked = _stake_all(m)
    per_interval = staked * REWARD_SHARE // 100
    paid = 0
    for gap in gaps:
        m.host.advance(REWARD_TIME * gap)
        payout = m.vault.claim(USER)
        assert payout == per_interval * gap
        paid += payout
    assert m.vault.position(USER).claimed_tokens == paid == per_interval * sum(gaps)


def test_restake_after_claim_keeps_claimed_and_reprices_new_amount(market):
    m = market
    m.host.transact(m.pool, "approve", USER, m.vault.address, MAX_UINT256, raise_on_revert=True)
    half = m.lp_amount // 2
    t0 = m.host.timestamp
    m.vault.stake(USER, half)
    m.host.advance(REWARD_TIME * 2)
    first = m.vault.claim(USER)
    assert first == _priced(m, half // 10 * 2)

    m.vault.stake(USER, m.lp_amount - half)
    assert m.vault.position(USER) == StakePosition(m.lp_amount, t0, first, 2)
    with pytest.raises(RewardsNotAvailable):
        m.vault.claim(USER)

    m.host.advance(REWARD_TIME)
    expected = _priced(m, m.lp_amount // 10 * 3) - first
    assert m.vault.claim(USER) == expected
    assert m.vault.position(USER).claimed_tokens == first + expected
    assert m.vault.pending_reward(USER) == 0


def test_claim_with_underfunded_vault_reverts(make_market):
    m = make_market(fund_vault=False)
    _stake_all(m)
    m.host.advance(REWARD_TIME)
    rcpt = m.host.transact(m.vault, "claim", USER)
    assert rcpt.error["code"] == "INSUFFICIENT_BALANCE"
    assert m.vault.position(USER).claimed_tokens == 0


def test_pending_reward_is_zero_when_pool_lacks_reward_token(host, market):
    m = market
    other = host.deploy(Ledger, deployer=ADMIN, name="Other", symbol="OTH", owner=ADMIN,
                        initial_supply=1000 * E18, holder=m.vault.address)
    m.vault.set_up_config(ADMIN, m.pool.address, other.address, REWARD_TIME, REWARD_SHARE, FREEZE_TIME)
    _stake_all(m)
    m.host.advance(REWARD_TIME * 2)
    assert m.vault.pending_reward(USER) == 0
    rcpt = m.host.transact(m.vault, "claim", USER)
    assert rcpt.error["code"] == "INVALID_ADDRESS"
    assert m.vault.position(USER).claimed_tokens == 0


# ------------------------------------------------------------------------------
# Unstake
# ------------------------------------------------------------------------------


def test_scenario_e_unstake_after_freeze(market):
    m = market
    staked = _stake_all(m)
    t0 = m.host.timestamp
    m.host.advance(FREEZE_TIME - 1)
    with pytest.raises(UnstakeNotAvailable) as ei:
        m.vault.unstake(USER)
    assert ei.value.message == "Unstake is not available"
    assert m.pool.balance_of(USER) == 0

    m.host.advance(1)
    rcpt = m.host.transact(m.vault, "unstake", USER)
    assert rcpt.ok and rcpt.result == staked
    assert rcpt.events[-1].args == {"amount": staked, "staker": USER}
    assert m.pool.balance_of(USER) == staked
    assert m.vault.position(USER) == StakePosition()
    assert m.vault.total_staked() == 0
    assert m.host.timestamp == t0 + FREEZE_TIME


def test_unstake_forfeits_unclaimed_and_restarts_clock(market):
    m = market
    staked = _stake_all(m)
    m.host.advance(FREEZE_TIME)
    m.vault.unstake(USER)

    with pytest.raises(NothingToStake):
        m.vault.unstake(USER)
    with pytest.raises(NothingToStake):
        m.vault.claim(USER)

    m.host.transact(m.pool, "approve", USER, m.vault.address, staked, raise_on_revert=True)
    m.host.transact(m.vault, "stake", USER, staked, raise_on_revert=True)
    assert m.vault.position(USER).stake_timestamp == m.host.timestamp
    with pytest.raises(RewardsNotAvailable):
        m.vault.claim(USER)


# ------------------------------------------------------------------------------
# Admin
# ------------------------------------------------------------------------------


def test_scenario_f_non_admin_setters(market):
    m = market
    with pytest.raises(Unauthorized) as ei:
        m.vault.setup_reward_share(USER, 20)
    assert ei.value.message.startswith("AccessControl:")
    with pytest.raises(Unauthorized):
        m.vault.setup_freeze_time(USER, FREEZE_TIME * 2)
    assert m.vault.reward_share() == REWARD_SHARE
    assert m.vault.freeze_time() == FREEZE_TIME


def test_admin_setters(market):
    m = market
    rcpt = m.host.transact(m.vault, "setup_reward_share", ADMIN, 20)
    assert rcpt.ok and rcpt.event_names() == [b"ConfigChanged"]
    assert m.vault.reward_share() == 20
    m.vault.setup_freeze_time(ADMIN, FREEZE_TIME * 2)
    assert m.vault.freeze_time() == FREEZE_TIME * 2
    with pytest.raises(InvalidConfig):
        m.vault.setup_reward_share(ADMIN, -1)


def test_granted_admin_can_configure_but_deployer_stays(market):
    m = market
    assert m.vault.has_role(DEFAULT_ADMIN_ROLE, ADMIN)
    m.vault.grant_role(ADMIN, DEFAULT_ADMIN_ROLE, USER2)
    m.vault.setup_reward_share(USER2, 15)
    assert m.vault.reward_share() == 15

    with pytest.raises(Unauthorized):
        m.vault.revoke_role(USER2, DEFAULT_ADMIN_ROLE, ADMIN)
    with pytest.raises(Unauthorized):
        m.vault.renounce_role(ADMIN, DEFAULT_ADMIN_ROLE)
    assert m.vault.has_role(DEFAULT_ADMIN_ROLE, ADMIN)

    m.vault.revoke_role(ADMIN, DEFAULT_ADMIN_ROLE, USER2)
    assert not m.vault.has_role(DEFAULT_ADMIN_ROLE, USER2)
    assert m.vault.get_role_admin(DEFAULT_ADMIN_ROLE) == DEFAULT_ADMIN_ROLE


def test_vault_role_admin_can_be_delegated(market):
    m = market
    operator = derive_role_id("OPERATOR")
    manager = derive_role_id("MANAGER")
    with pytest.raises(Unauthorized):
        m.vault.set_role_admin(USER, operator, manager)
    m.host.transact(m.vault, "set_role_admin", ADMIN, operator, manager, raise_on_revert=True)
    assert m.vault.get_role_admin(operator) == manager
    m.vault.grant_role(ADMIN, manager, USER2)
    m.vault.grant_role(USER2, operator, USER)
    assert m.vault.has_role(operator, USER)


# ------------------------------------------------------------------------------
# Properties
# ------------------------------------------------------------------------------


@settings(max_examples=25, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(steps=st.lists(st.integers(min_value=0, max_value=5 * REWARD_TIME), min_size=1, max_size=6))
def test_reward_is_monotone_at_constant_price(make_market, steps):
    m = make_market()
    _stake_all(m)
    paid_total = 0
    last_cumulative = 0
    for dt in steps:
        m.host.advance(dt)
        rcpt = m.host.transact(m.vault, "claim", USER)
        cumulative = m.vault.position(USER).claimed_tokens
        assert cumulative >= last_cumulative
        if rcpt.ok:
            assert rcpt.result > 0
            paid_total += rcpt.result
        else:
            assert rcpt.error["code"] in ("REWARDS_NOT_AVAILABLE", "NOTHING_TO_CLAIM")
        last_cumulative = cumulative
    assert paid_total == last_cumulative
