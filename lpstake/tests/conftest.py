# -*- coding: utf-8 -*-
"""
lpstake.tests.conftest
======================

Pytest fixtures for the ledger, pool and vault.

- **Deterministic accounts**: stable 20-byte addresses derived from tags via
  SHA3, so failures reproduce byte-for-byte.
- **Clean configuration**: every test starts with no ``LPSTAKE_*`` variables
  and an empty config cache.
- **A ready market**: two tokens, a seeded constant-product pool, an LP
  position for ``user`` and a configured, funded staking vault, built the same
  way the deployment scripts set things up (100/100 seed, 10/10 user
  deposit, 1200s interval, 10% share, one-day freeze).

Usage:
    def test_stake(market):
        m = market
        m.host.transact(m.pool, "approve", m.user, m.vault.address, m.lp_amount)
        rcpt = m.host.transact(m.vault, "stake", m.user, m.lp_amount)
        assert rcpt.ok
"""
from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from typing import Callable, Dict

import pytest

from lpstake.config import reset_config_cache
from lpstake.math import MAX_UINT256
from lpstake.pool import ConstantProductPool
from lpstake.runtime.host import Host
from lpstake.token.fungible import Ledger
from lpstake.vault import StakingVault

os.environ.setdefault("PYTHONHASHSEED", "0")

E18 = 10**18
INITIAL_SUPPLY = 1000 * E18
REWARD_TIME = 1200
FREEZE_TIME = 86400
REWARD_SHARE = 10


def det_address(tag: str) -> bytes:
    """Stable 20-byte address from a tag."""
    return hashlib.sha3_256(tag.encode("utf-8")).digest()[:20]


ADMIN = det_address("admin")
TOKENS_OWNER = det_address("tokens-owner")
USER = det_address("user")
USER2 = det_address("user2")
USER3 = det_address("user3")


@pytest.fixture(autouse=True)
def _clean_config(monkeypatch):
    for k in list(os.environ):
        if k.startswith("LPSTAKE_"):
            monkeypatch.delenv(k, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


@pytest.fixture
def accounts() -> Dict[str, bytes]:
    return {
        "admin": ADMIN,
        "tokens_owner": TOKENS_OWNER,
        "user": USER,
        "user2": USER2,
        "user3": USER3,
    }


@pytest.fixture
def host() -> Host:
    return Host()


@pytest.fixture
def token(host: Host) -> Ledger:
    """'Test token' with the whole initial supply held by TOKENS_OWNER; ADMIN mints."""
    return host.deploy(
        Ledger,
        deployer=ADMIN,
        name="Test token",
        symbol="TST",
        decimals=18,
        initial_supply=INITIAL_SUPPLY,
        holder=TOKENS_OWNER,
        owner=ADMIN,
    )


@dataclass
class Market:
    host: Host
    token_a: Ledger
    token_b: Ledger
    pool: ConstantProductPool
    vault: StakingVault
    admin: bytes
    user: bytes
    lp_amount: int


def build_market(host: Host, *, configure: bool = True, fund_vault: bool = True) -> Market:
    tx = host.transact
    a = host.deploy(Ledger, deployer=ADMIN, name="Test token A", symbol="TSTA", decimals=18,
                    initial_supply=INITIAL_SUPPLY, owner=ADMIN)
    b = host.deploy(Ledger, deployer=ADMIN, name="Test token B", symbol="TSTB", decimals=18,
                    initial_supply=INITIAL_SUPPLY, owner=ADMIN)
    pool = host.deploy(ConstantProductPool, deployer=ADMIN, token_a=a.address, token_b=b.address)

    # Seed the pair 100/100 from the admin.
    tx(a, "approve", ADMIN, pool.address, MAX_UINT256, raise_on_revert=True)
    tx(b, "approve", ADMIN, pool.address, MAX_UINT256, raise_on_revert=True)
    tx(pool, "add_liquidity", ADMIN, 100 * E18, 100 * E18, raise_on_revert=True)

    # The user gets 50/50 and deposits 10/10.
    tx(a, "mint", ADMIN, USER, 50 * E18, raise_on_revert=True)
    tx(b, "mint", ADMIN, USER, 50 * E18, raise_on_revert=True)
    tx(a, "approve", USER, pool.address, MAX_UINT256, raise_on_revert=True)
    tx(b, "approve", USER, pool.address, MAX_UINT256, raise_on_revert=True)
    lp = tx(pool, "add_liquidity", USER, 10 * E18, 10 * E18, raise_on_revert=True).result

    vault = host.deploy(StakingVault, deployer=ADMIN, admin=ADMIN)
    if configure:
        tx(vault, "set_up_config", ADMIN, pool.address, a.address, REWARD_TIME, REWARD_SHARE, FREEZE_TIME,
           raise_on_revert=True)
    if fund_vault:
        tx(a, "mint", ADMIN, vault.address, 100_000 * E18, raise_on_revert=True)

    return Market(host=host, token_a=a, token_b=b, pool=pool, vault=vault, admin=ADMIN, user=USER, lp_amount=lp)


@pytest.fixture
def market(host: Host) -> Market:
    return build_market(host)


@pytest.fixture
def make_market() -> Callable[..., Market]:
    """Factory for a fresh, independent market (for property tests)."""
    def _make(**kw) -> Market:
        return build_market(Host(), **kw)
    return _make
