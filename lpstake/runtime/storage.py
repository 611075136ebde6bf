"""
lpstake.runtime.storage: per-contract key/value storage with checkpoints.

Every contract owns one `Storage`. Keys and values are raw bytes; typed
helpers encode unsigned integers as 32-byte big-endian words. Writes can be
grouped under nested checkpoints and reverted, which is how the host makes a
whole operation all-or-nothing across several contracts.

Journal model
-------------
Each checkpoint keeps a *first-write log*: for every key touched inside the
checkpoint, the value it had before the first touch (or a "missing" marker).

- begin()   → push an empty log
- revert()  → restore the logged values of the top log, pop it
- commit()  → fold the top log into its parent (without overwriting the
              parent's earlier entries), or drop it if it was the outermost

Reads always see the latest write; there is no overlay lookup cost.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterator, List, Optional, Tuple

from ..errors import InvalidAmount
from ..math import U256_MAX

_MISSING = object()

MAX_KEY_BYTES = 128


def _check_key(key: bytes) -> bytes:
    if not isinstance(key, (bytes, bytearray)):
        raise TypeError("storage key must be bytes")
    if len(key) == 0:
        raise ValueError("storage key must be non-empty")
    if len(key) > MAX_KEY_BYTES:
        raise ValueError(f"storage key too long (>{MAX_KEY_BYTES} bytes)")
    return bytes(key)


class Storage:
    """Thread-safe in-memory storage with a checkpoint journal."""

    def __init__(self, initial: Optional[Dict[bytes, bytes]] = None) -> None:
        self._store: Dict[bytes, bytes] = dict(initial or {})
        self._logs: List[Dict[bytes, object]] = []
        self._lock = threading.RLock()

    # --------------------------------------------------------------------- #
    # Raw bytes API
    # --------------------------------------------------------------------- #

    def get(self, key: bytes) -> Optional[bytes]:
        """Return the value for `key`, or None if not set."""
        k = _check_key(key)
        with self._lock:
            return self._store.get(k)

    def set(self, key: bytes, value: bytes) -> None:
        """Set `key` to `value` (overwrites existing)."""
        k = _check_key(key)
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError("storage value must be bytes")
        with self._lock:
            self._record(k)
            self._store[k] = bytes(value)

    def delete(self, key: bytes) -> None:
        """Delete `key` if present (no-op otherwise)."""
        k = _check_key(key)
        with self._lock:
            if k in self._store:
                self._record(k)
                del self._store[k]

    def exists(self, key: bytes) -> bool:
        k = _check_key(key)
        with self._lock:
            return k in self._store

    def items(self, prefix: bytes = b"") -> Iterator[Tuple[bytes, bytes]]:
        """Snapshot of (key, value) pairs under `prefix`, sorted by key."""
        with self._lock:
            pairs = sorted((k, v) for k, v in self._store.items() if k.startswith(prefix))
        return iter(pairs)

    def snapshot(self) -> Dict[bytes, bytes]:
        """Copy of the whole store (for assertions and debugging)."""
        with self._lock:
            return dict(self._store)

    # --------------------------------------------------------------------- #
    # Typed helpers
    # --------------------------------------------------------------------- #

    def get_u256(self, key: bytes) -> int:
        """Read a big-endian unsigned integer; missing keys read as 0."""
        raw = self.get(key)
        return int.from_bytes(raw, "big") if raw else 0

    def set_u256(self, key: bytes, value: int) -> None:
        """Store `value` as a 32-byte big-endian word. Enforces 0 <= value <= 2^256-1."""
        if not isinstance(value, int) or isinstance(value, bool) or value < 0 or value > U256_MAX:
            raise InvalidAmount("storage value out of u256 range", data={"key": key.hex()})
        self.set(key, int(value).to_bytes(32, "big"))

    # --------------------------------------------------------------------- #
    # Checkpointing
    # --------------------------------------------------------------------- #

    def depth(self) -> int:
        """Number of open checkpoints."""
        return len(self._logs)

    def begin(self) -> int:
        """Open a checkpoint. Returns the new depth."""
        with self._lock:
            self._logs.append({})
            return len(self._logs)

    def commit(self) -> None:
        """Keep the writes of the top checkpoint."""
        with self._lock:
            if not self._logs:
                raise RuntimeError("commit without an open checkpoint")
            top = self._logs.pop()
            if self._logs:
                parent = self._logs[-1]
                for k, prev in top.items():
                    parent.setdefault(k, prev)

    def revert(self) -> None:
        """Discard the writes of the top checkpoint."""
        with self._lock:
            if not self._logs:
                raise RuntimeError("revert without an open checkpoint")
            top = self._logs.pop()
            for k, prev in top.items():
                if prev is _MISSING:
                    self._store.pop(k, None)
                else:
                    self._store[k] = prev  # type: ignore[assignment]

    def _record(self, key: bytes) -> None:
        if self._logs:
            log = self._logs[-1]
            if key not in log:
                log[key] = self._store.get(key, _MISSING)


__all__ = ["Storage", "MAX_KEY_BYTES"]
