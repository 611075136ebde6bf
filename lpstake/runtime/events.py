from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

# Basic bounds
MAX_EVENT_NAME_BYTES = 64
MAX_KEY_LEN = 64
MAX_BYTES_LEN = 4096
MAX_INT_BITS = 256

# Arg keys are Python identifiers.
_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ArgValue = Any  # constrained at runtime


class EventError(ValueError):
    """Malformed event (bad name, key or argument type)."""


@dataclass(frozen=True)
class Event:
    """A notification emitted by a contract."""

    address: bytes
    name: bytes
    args: Dict[str, ArgValue]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": "0x" + self.address.hex(),
            "name": self.name.decode("ascii", "replace"),
            "args": {
                k: ("0x" + bytes(v).hex()) if isinstance(v, (bytes, bytearray)) else v
                for k, v in self.args.items()
            },
        }


class EventSink:
    """
    Ordered, validated event log.

    Events emitted inside a checkpoint stay pending until the outermost
    checkpoint commits; a revert drops them. Outside any checkpoint events
    are published immediately.
    """

    def __init__(self, max_per_checkpoint: Optional[int] = None) -> None:
        self._events: List[Event] = []
        self._pending: List[List[Event]] = []
        self._max = max_per_checkpoint

    # --- Validation helpers -------------------------------------------------

    def _check_name(self, name: Any) -> bytes:
        if not isinstance(name, (bytes, bytearray)):
            raise EventError("event name must be bytes")
        b = bytes(name)
        if len(b) == 0:
            raise EventError("event name must be non-empty")
        if len(b) > MAX_EVENT_NAME_BYTES:
            raise EventError("event name too long")
        return b

    def _check_key(self, key: Any) -> str:
        if not isinstance(key, str):
            raise EventError("event key must be str")
        if len(key) == 0 or len(key) > MAX_KEY_LEN:
            raise EventError("event key length out of range")
        if not _KEY_RE.match(key):
            # e.g. "amount-in" or "two words"
            raise EventError(f"event key has invalid characters: {key!r}")
        return key

    def _check_value(self, value: Any) -> ArgValue:
        if isinstance(value, (bytes, bytearray)):
            b = bytes(value)
            if len(b) > MAX_BYTES_LEN:
                raise EventError("event bytes arg too long")
            return b

        if isinstance(value, bool):
            # bool before int
            return value

        if isinstance(value, int):
            if value.bit_length() > MAX_INT_BITS:
                raise EventError("event int arg out of range")
            return int(value)

        raise EventError(f"unsupported event arg type: {type(value).__name__}")

    # --- Core sink operations -----------------------------------------------

    def emit(self, address: bytes, name: bytes, args: Mapping[Any, Any]) -> Event:
        bname = self._check_name(name)
        if not isinstance(args, Mapping):
            raise EventError("event args must be a mapping")

        checked: Dict[str, ArgValue] = {}
        for raw_k, raw_v in args.items():
            checked[self._check_key(raw_k)] = self._check_value(raw_v)

        ev = Event(bytes(address), bname, checked)
        if self._pending:
            top = self._pending[-1]
            if self._max is not None and len(top) >= self._max:
                raise EventError(f"too many events in one operation (>{self._max})")
            top.append(ev)
        else:
            self._events.append(ev)
        return ev

    def begin(self) -> None:
        self._pending.append([])

    def commit(self) -> List[Event]:
        """Close the top checkpoint; returns the events it carried."""
        top = self._pending.pop()
        if self._pending:
            self._pending[-1].extend(top)
        else:
            self._events.extend(top)
        return top

    def revert(self) -> None:
        self._pending.pop()

    def iter_events(self) -> Iterable[Event]:
        # copy
        return tuple(self._events)

    def filter(self, name: Optional[bytes] = None, address: Optional[bytes] = None) -> List[Event]:
        out = []
        for ev in self._events:
            if name is not None and ev.name != name:
                continue
            if address is not None and ev.address != address:
                continue
            out.append(ev)
        return out

    def __len__(self) -> int:
        return len(self._events)

    def clear(self) -> None:
        self._events.clear()
        self._pending.clear()


def names(events: Sequence[Event]) -> List[bytes]:
    """Event names in order; convenient for assertions."""
    return [e.name for e in events]


__all__ = [
    "Event",
    "EventError",
    "EventSink",
    "names",
    "MAX_EVENT_NAME_BYTES",
    "MAX_KEY_LEN",
    "MAX_BYTES_LEN",
    "MAX_INT_BITS",
]
