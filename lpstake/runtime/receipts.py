"""
lpstake.runtime.receipts: operation receipts and their canonical CBOR form.

Receipt = {
  status:    int,           ; 0=SUCCESS, 1=REVERT
  timestamp: uint,          ; host time the operation ran at
  contract:  bytes,         ; target contract address
  method:    text,
  caller:    bytes,
  events:    [ Event ],     ; ordered; empty on revert
  error:     { code, message, data? } / null
}

Event = { address: bytes, name: bytes, args: { text => int / bytes / bool } }

Maps are encoded *canonically* with `cbor2` (canonical=True) so the hash of
a receipt is stable across runs and machines.
"""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import cbor2

from .events import Event


class Status(enum.IntEnum):
    SUCCESS = 0
    REVERT = 1


@dataclass(frozen=True)
class Receipt:
    status: Status
    timestamp: int
    contract: bytes
    method: str
    caller: bytes
    events: Tuple[Event, ...] = field(default_factory=tuple)
    error: Optional[Dict[str, Any]] = None
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.status == Status.SUCCESS

    def event_names(self) -> List[bytes]:
        return [e.name for e in self.events]


# ------------------------------ Helpers -------------------------------------


def _event_to_obj(ev: Event) -> Dict[str, Any]:
    return {"address": bytes(ev.address), "name": bytes(ev.name), "args": dict(ev.args)}


def _obj_to_event(obj: Mapping[str, Any]) -> Event:
    try:
        return Event(address=bytes(obj["address"]), name=bytes(obj["name"]), args=dict(obj["args"]))
    except KeyError as e:
        raise ValueError(f"Missing Event field: {e}") from None


def _receipt_to_obj(rcpt: Receipt) -> Dict[str, Any]:
    return {
        "status": int(rcpt.status),
        "timestamp": int(rcpt.timestamp),
        "contract": bytes(rcpt.contract),
        "method": rcpt.method,
        "caller": bytes(rcpt.caller),
        "events": [_event_to_obj(e) for e in rcpt.events],
        "error": rcpt.error,
    }


# ------------------------------ Public API ----------------------------------


def receipt_to_cbor(receipt: Receipt) -> bytes:
    """Serialize a Receipt to canonical CBOR bytes (the `result` is not encoded)."""
    return cbor2.dumps(_receipt_to_obj(receipt), canonical=True)


def receipt_from_cbor(data: bytes) -> Receipt:
    """Deserialize CBOR bytes into a Receipt, validating required fields."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError("receipt_from_cbor expects a bytes-like object")
    obj = cbor2.loads(bytes(data))
    if not isinstance(obj, Mapping):
        raise ValueError("Receipt CBOR must decode to a map")
    required = ("status", "timestamp", "contract", "method", "caller", "events")
    missing = [k for k in required if k not in obj]
    if missing:
        raise ValueError(f"Receipt missing required fields: {missing}")
    return Receipt(
        status=Status(int(obj["status"])),
        timestamp=int(obj["timestamp"]),
        contract=bytes(obj["contract"]),
        method=str(obj["method"]),
        caller=bytes(obj["caller"]),
        events=tuple(_obj_to_event(e) for e in obj["events"]),
        error=obj.get("error"),
    )


def receipt_hash(receipt: Receipt) -> bytes:
    """SHA3-256 over the canonical CBOR encoding."""
    return hashlib.sha3_256(receipt_to_cbor(receipt)).digest()


__all__ = [
    "Status",
    "Receipt",
    "receipt_to_cbor",
    "receipt_from_cbor",
    "receipt_hash",
]
