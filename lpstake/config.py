"""
lpstake.config: runtime configuration for the ledger/vault host.

This module centralizes the few knobs the package has:
  • Ledger defaults (decimals)
  • Host clock origin (genesis timestamp)
  • Default staking parameters used by `lpstake.vault.StakingParams.default()`
  • Event sink cap per operation
  • Log level used by `configure_logging()`

It has NO third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (LPSTAKE_*)
  2) Hardcoded safe defaults below

Environment variables (all optional):
  LPSTAKE_DEFAULT_DECIMALS     -> int in [0, 36]            (default: 18)
  LPSTAKE_GENESIS_TIMESTAMP    -> int >= 0                  (default: 0)
  LPSTAKE_REWARD_INTERVAL      -> seconds, >= 1             (default: 60)
  LPSTAKE_REWARD_SHARE         -> percent per interval, >=0 (default: 10)
  LPSTAKE_FREEZE_TIME          -> seconds, >= 0             (default: 120)
  LPSTAKE_MAX_EVENTS_PER_CALL  -> int in [1, 65536]         (default: 256)
  LPSTAKE_LOG_LEVEL            -> logging level name        (default: WARNING)

Programmatic usage:
    from lpstake.config import get_config
    cfg = get_config()
    params = (cfg.reward_interval, cfg.reward_share, cfg.freeze_time)
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

# ----------------------------- helpers -------------------------------------

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        v = int(raw.strip(), 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_level(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    v = raw.strip().upper()
    return v if v in _LEVELS else default


# ------------------------------- config ------------------------------------


@dataclass(frozen=True)
class LpStakeConfig:
    # Ledger
    default_decimals: int

    # Host
    genesis_timestamp: int
    max_events_per_call: int

    # Default staking parameters
    reward_interval: int
    reward_share: int
    freeze_time: int

    # Logging
    log_level: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(env: Optional[Dict[str, str]] = None) -> LpStakeConfig:
    """
    Build a config from the process environment. If `env` is given it is
    overlaid on os.environ for the duration of the call (handy in tests).
    """
    if env:
        saved = {k: os.environ.get(k) for k in env}
        os.environ.update(env)
        try:
            return load_config()
        finally:
            for k, v in saved.items():
                if v is None:
                    os.environ.pop(k, None)
                else:
                    os.environ[k] = v

    return LpStakeConfig(
        default_decimals=_env_int("LPSTAKE_DEFAULT_DECIMALS", 18, min_v=0, max_v=36),
        genesis_timestamp=_env_int("LPSTAKE_GENESIS_TIMESTAMP", 0, min_v=0, max_v=2**63 - 1),
        max_events_per_call=_env_int("LPSTAKE_MAX_EVENTS_PER_CALL", 256, min_v=1, max_v=65_536),
        reward_interval=_env_int("LPSTAKE_REWARD_INTERVAL", 60, min_v=1, max_v=2**63 - 1),
        reward_share=_env_int("LPSTAKE_REWARD_SHARE", 10, min_v=0, max_v=2**63 - 1),
        freeze_time=_env_int("LPSTAKE_FREEZE_TIME", 120, min_v=0, max_v=2**63 - 1),
        log_level=_env_level("LPSTAKE_LOG_LEVEL", "WARNING"),
    )


@lru_cache(maxsize=1)
def get_config() -> LpStakeConfig:
    """Process-wide cached config."""
    return load_config()


def reset_config_cache() -> None:
    """Drop the cached config so the next get_config() re-reads the env."""
    get_config.cache_clear()


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a basic stderr handler at the configured level, unless the root
    logger already has handlers (the embedding application owns logging then).
    """
    lvl = (level or get_config().log_level).upper()
    root = logging.getLogger()
    if root.handlers:
        logging.getLogger("lpstake").setLevel(lvl)
        return
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = [
    "LpStakeConfig",
    "load_config",
    "get_config",
    "reset_config_cache",
    "configure_logging",
]
