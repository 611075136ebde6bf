"""
lpstake.runtime: the execution substrate contracts run on.

- storage:  journaled byte-keyed per-contract storage
- events:   validated, checkpointed event sink
- contract: `Contract` base (address + storage + events + clock + resolver)
- receipts: `Receipt` and its canonical CBOR encoding
- host:     `Host` (clock, deploy, atomic `transact`)
"""

from .contract import Contract
from .events import Event, EventError, EventSink
from .host import Host
from .receipts import Receipt, Status, receipt_from_cbor, receipt_hash, receipt_to_cbor
from .storage import Storage

__all__ = [
    "Contract",
    "Event",
    "EventError",
    "EventSink",
    "Host",
    "Receipt",
    "Status",
    "Storage",
    "receipt_from_cbor",
    "receipt_hash",
    "receipt_to_cbor",
]
