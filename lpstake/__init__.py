"""
lpstake: a fungible-token ledger and an LP staking vault as deterministic
Python state machines.

Quick start
-----------
    from lpstake import Host, Ledger, ConstantProductPool, StakingVault

    host = Host()
    a = host.deploy(Ledger, deployer=admin, name="Token A", symbol="TSTA",
                    initial_supply=10**21, owner=admin)
    ...
    vault = host.deploy(StakingVault, deployer=admin, admin=admin)
    host.transact(vault, "set_up_config", admin, pool.address, a.address, 1200, 10, 86400)
"""

from __future__ import annotations

__version__ = "0.1.0"

from .address import ZERO_ADDRESS, derive_address, to_address, to_hex
from .config import configure_logging, get_config
from .errors import LpStakeError
from .math import MAX_UINT256
from .oracle import LiquidityPool, PriceOracle, PriceQuote
from .pool import ConstantProductPool
from .runtime import Host, Receipt, Status
from .token import Ledger
from .vault import StakePosition, StakingConfig, StakingParams, StakingVault

__all__ = [
    "__version__",
    "ZERO_ADDRESS",
    "MAX_UINT256",
    "derive_address",
    "to_address",
    "to_hex",
    "configure_logging",
    "get_config",
    "LpStakeError",
    "LiquidityPool",
    "PriceOracle",
    "PriceQuote",
    "ConstantProductPool",
    "Host",
    "Receipt",
    "Status",
    "Ledger",
    "StakePosition",
    "StakingConfig",
    "StakingParams",
    "StakingVault",
]
