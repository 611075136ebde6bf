"""
lpstake.errors: typed failures for the ledger, oracle and staking vault.

Every public operation either completes or raises one of the exceptions below
*before* touching state. Callers (the host, tests, tooling) distinguish them
by class or by the stable ``code`` string; the human-readable ``message``
mirrors the revert strings of the deployed contracts where those exist.

Hierarchy
---------
LpStakeError (base)
 ├─ InvalidAmount          : not an int, outside [0, 2**256-1], or overflow
 ├─ InvalidAddress         : value cannot be coerced to an address
 ├─ InsufficientBalance    : debit larger than the account balance
 ├─ InsufficientAllowance  : spend larger than a finite allowance
 ├─ InvalidRecipient       : zero address used as a destination
 ├─ InvalidOwner           : zero address used as an owner/burner
 ├─ InvalidSpender         : zero address used as a spender
 ├─ Unauthorized           : wrong owner (Ownable) or missing role (AccessControl)
 ├─ ZeroAmount             : zero stake / zero liquidity
 ├─ NothingToStake         : position has no staked amount
 ├─ RewardsNotAvailable    : not a single reward interval has elapsed
 ├─ NothingToClaim         : re-priced entitlement does not exceed what was paid
 ├─ UnstakeNotAvailable    : freeze period still running
 ├─ StalePool              : oracle denominator (LP supply) is zero
 ├─ InsufficientLiquidity  : pool deposit/swap would mint or pay nothing
 ├─ InvalidConfig          : staking config violates its invariants
 ├─ NotConfigured          : vault used before set_up_config
 ├─ UnknownContract        : resolver has no contract at an address
 └─ ClockError             : host time moved backwards
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class LpStakeError(Exception):
    """
    Base error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g. 'INSUFFICIENT_BALANCE').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "operation failed"
    code: str = "LPSTAKE_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for receipts and logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _mk(message: str, code: str, data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {"message": message, "code": code, "data": data or None}


class InvalidAmount(LpStakeError):
    def __init__(self, message: str = "invalid amount", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "INVALID_AMOUNT", data))


class InvalidAddress(LpStakeError):
    def __init__(self, message: str = "invalid address", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "INVALID_ADDRESS", data))


class InsufficientBalance(LpStakeError):
    """
    Debit larger than the balance.

    Optional fields ``balance`` and ``needed`` are folded into ``data``.
    """
    def __init__(
        self,
        message: str = "Insufficient balance",
        *,
        balance: Optional[int] = None,
        needed: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = dict(data or {})
        if balance is not None:
            d.setdefault("balance", balance)
        if needed is not None:
            d.setdefault("needed", needed)
        super().__init__(**_mk(message, "INSUFFICIENT_BALANCE", d))


class InsufficientAllowance(LpStakeError):
    def __init__(
        self,
        message: str = "Insufficient allowance",
        *,
        allowance: Optional[int] = None,
        needed: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = dict(data or {})
        if allowance is not None:
            d.setdefault("allowance", allowance)
        if needed is not None:
            d.setdefault("needed", needed)
        super().__init__(**_mk(message, "INSUFFICIENT_ALLOWANCE", d))


class InvalidRecipient(LpStakeError):
    def __init__(self, message: str = "Transfer to the zero address", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "INVALID_RECIPIENT", data))


class InvalidOwner(LpStakeError):
    def __init__(self, message: str = "Owner is the zero address", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "INVALID_OWNER", data))


class InvalidSpender(LpStakeError):
    def __init__(self, message: str = "Approve to the zero address", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "INVALID_SPENDER", data))


class Unauthorized(LpStakeError):
    """
    Authorization failure.

    ``model`` tells the two access-control schemes apart: "ownable" for the
    ledger's single owner, "roles" for the vault's role set.
    """
    def __init__(
        self,
        message: str = "unauthorized",
        *,
        model: Optional[str] = None,
        account: Optional[str] = None,
        role: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = dict(data or {})
        if model is not None:
            d.setdefault("model", model)
        if account is not None:
            d.setdefault("account", account)
        if role is not None:
            d.setdefault("role", role)
        super().__init__(**_mk(message, "UNAUTHORIZED", d))


class ZeroAmount(LpStakeError):
    def __init__(self, message: str = "Zero stake", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "ZERO_AMOUNT", data))


class NothingToStake(LpStakeError):
    def __init__(self, message: str = "Nothing staked", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "NOTHING_TO_STAKE", data))


class RewardsNotAvailable(LpStakeError):
    def __init__(self, message: str = "Rewards are not available", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "REWARDS_NOT_AVAILABLE", data))


class NothingToClaim(LpStakeError):
    def __init__(self, message: str = "Nothing to claim", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "NOTHING_TO_CLAIM", data))


class UnstakeNotAvailable(LpStakeError):
    def __init__(self, message: str = "Unstake is not available", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "UNSTAKE_NOT_AVAILABLE", data))


class StalePool(LpStakeError):
    def __init__(self, message: str = "pool has no liquidity supply", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "STALE_POOL", data))


class InsufficientLiquidity(LpStakeError):
    def __init__(self, message: str = "insufficient liquidity", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "INSUFFICIENT_LIQUIDITY", data))


class InvalidConfig(LpStakeError):
    def __init__(self, message: str = "invalid staking config", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "INVALID_CONFIG", data))


class NotConfigured(LpStakeError):
    def __init__(self, message: str = "staking config is not set up", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "NOT_CONFIGURED", data))


class UnknownContract(LpStakeError):
    def __init__(
        self,
        message: str = "no contract at address",
        *,
        address: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        d: Dict[str, Any] = dict(data or {})
        if address is not None:
            d.setdefault("address", address)
        super().__init__(**_mk(message, "UNKNOWN_CONTRACT", d))


class ClockError(LpStakeError):
    def __init__(self, message: str = "time cannot move backwards", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(**_mk(message, "CLOCK_ERROR", data))


# -------- helper utilities ---------------------------------------------------


def error_to_receipt_fields(err: LpStakeError) -> Dict[str, Any]:
    """
    Map an LpStakeError to receipt-like fields.

    Returns:
        {"status": "REVERT", "error": {code, message, data?}}
    """
    return {"status": "REVERT", "error": err.to_dict()}


__all__ = [
    "LpStakeError",
    "InvalidAmount",
    "InvalidAddress",
    "InsufficientBalance",
    "InsufficientAllowance",
    "InvalidRecipient",
    "InvalidOwner",
    "InvalidSpender",
    "Unauthorized",
    "ZeroAmount",
    "NothingToStake",
    "RewardsNotAvailable",
    "NothingToClaim",
    "UnstakeNotAvailable",
    "StalePool",
    "InsufficientLiquidity",
    "InvalidConfig",
    "NotConfigured",
    "UnknownContract",
    "ClockError",
    "error_to_receipt_fields",
]
