"""
lpstake.runtime.contract: base class shared by the ledger, pool and vault.

A contract is an address plus three host-provided collaborators:

- ``storage``: its private journaled `Storage`
- ``events``:  the `EventSink` notifications go to (shared across a host)
- ``clock``:   a zero-argument callable returning the current timestamp

Contracts can be used standalone (tests, simulations): every collaborator
defaults to a fresh private instance and the clock to a constant zero.
When deployed through `lpstake.runtime.host.Host`, the host wires its own
sink, clock and contract resolver in.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from ..address import AddressLike, to_address, to_hex
from ..errors import UnknownContract
from .events import Event, EventSink
from .storage import Storage

Clock = Callable[[], int]
Resolver = Callable[[bytes], "Contract"]


def _zero_clock() -> int:
    return 0


class Contract:
    """Address-bound state holder with storage, events and a clock."""

    def __init__(
        self,
        address: AddressLike,
        *,
        storage: Optional[Storage] = None,
        events: Optional[EventSink] = None,
        clock: Optional[Clock] = None,
        resolver: Optional[Resolver] = None,
    ) -> None:
        self.address: bytes = to_address(address)
        self.storage: Storage = storage if storage is not None else Storage()
        self.events: EventSink = events if events is not None else EventSink()
        self._clock: Clock = clock or _zero_clock
        self._resolver: Optional[Resolver] = resolver

    def now(self) -> int:
        """Current timestamp as supplied by the host."""
        return int(self._clock())

    def resolve(self, address: AddressLike) -> "Contract":
        """Look up another contract through the host resolver."""
        addr = to_address(address)
        if self._resolver is None:
            raise UnknownContract("contract has no resolver", address=to_hex(addr))
        return self._resolver(addr)

    def _emit(self, name: bytes, args: Mapping[str, Any]) -> Event:
        return self.events.emit(self.address, name, args)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({to_hex(self.address)})"


__all__ = ["Contract", "Clock", "Resolver"]
