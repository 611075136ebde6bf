"""
lpstake.runtime.host: the execution environment contracts run in.

The core contracts are pure state machines; the host supplies what they
cannot provide themselves:

- a monotonic clock (``timestamp``), moved only by `advance` / `set_time`
- a registry of deployed contracts and deterministic deployment addresses
- a shared `EventSink` for notifications
- all-or-nothing application of an operation across *every* contract:
  `transact` opens a checkpoint on each contract's storage and on the event
  sink, runs the call, and commits on success or reverts on failure.

Intended usage
--------------
    host = Host()
    token = host.deploy(Ledger, deployer=admin, name=b"Token", symbol=b"TKN",
                        decimals=18, initial_supply=10**21, holder=admin, owner=admin)
    rcpt = host.transact(token, "transfer", admin, bob, 5)
    assert rcpt.ok
    host.advance(3600)

Calls are serialized by a re-entrant lock; a contract calling into another
contract during an operation runs inside the same checkpoint.
"""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Any, Dict, Iterator, List, Optional, Type, TypeVar

from ..address import AddressLike, derive_address, to_address, to_hex
from ..config import get_config
from ..errors import ClockError, LpStakeError, UnknownContract, error_to_receipt_fields
from .contract import Contract
from .events import Event, EventSink
from .receipts import Receipt, Status

log = logging.getLogger(__name__)

C = TypeVar("C", bound=Contract)


class Host:
    """Deterministic single-process host for lpstake contracts."""

    def __init__(self, *, timestamp: Optional[int] = None) -> None:
        cfg = get_config()
        ts = cfg.genesis_timestamp if timestamp is None else timestamp
        if not isinstance(ts, int) or ts < 0:
            raise ClockError("timestamp must be a non-negative int", data={"timestamp": repr(ts)})
        self._timestamp: int = ts
        self.events = EventSink(max_per_checkpoint=cfg.max_events_per_call)
        self._contracts: Dict[bytes, Contract] = {}
        self._nonces: Dict[bytes, int] = {}
        self._lock = threading.RLock()

    # --------------------------------------------------------------------- #
    # Clock
    # --------------------------------------------------------------------- #

    @property
    def timestamp(self) -> int:
        return self._timestamp

    def now(self) -> int:
        return self._timestamp

    def advance(self, seconds: int) -> int:
        """Move the clock forward by `seconds` (>= 0). Returns the new time."""
        if not isinstance(seconds, int) or seconds < 0:
            raise ClockError("can only advance by a non-negative int", data={"seconds": repr(seconds)})
        with self._lock:
            self._timestamp += seconds
            return self._timestamp

    def set_time(self, timestamp: int) -> None:
        with self._lock:
            if not isinstance(timestamp, int) or timestamp < self._timestamp:
                raise ClockError(data={"current": self._timestamp, "requested": repr(timestamp)})
            self._timestamp = timestamp

    # --------------------------------------------------------------------- #
    # Registry
    # --------------------------------------------------------------------- #

    def next_address(self, deployer: AddressLike) -> bytes:
        """Address the next deployment from `deployer` will receive."""
        d = to_address(deployer)
        nonce = self._nonces.get(d, 0)
        return derive_address(b"deploy|" + d + b"|" + nonce.to_bytes(8, "big"))

    def deploy(self, factory: Type[C], *, deployer: AddressLike, **kwargs: Any) -> C:
        """
        Instantiate `factory` at a fresh deterministic address, wired to this
        host's clock, event sink and resolver. Construction is atomic: a
        constructor that raises leaves no contract and no events behind.
        """
        d = to_address(deployer)
        with self._lock:
            addr = self.next_address(d)
            self.events.begin()
            try:
                contract = factory(
                    addr,
                    events=self.events,
                    clock=self.now,
                    resolver=self.contract_at,
                    **kwargs,
                )
            except BaseException:
                self.events.revert()
                raise
            self.events.commit()
            self._nonces[d] = self._nonces.get(d, 0) + 1
            self._contracts[addr] = contract
        log.info("deployed %s at %s (deployer=%s)", factory.__name__, to_hex(addr), to_hex(d))
        return contract

    def register(self, contract: Contract) -> Contract:
        """Adopt a contract constructed elsewhere (its storage joins host checkpoints)."""
        with self._lock:
            if contract.address in self._contracts and self._contracts[contract.address] is not contract:
                raise ValueError(f"address already taken: {to_hex(contract.address)}")
            self._contracts[contract.address] = contract
        return contract

    def contract_at(self, address: AddressLike) -> Contract:
        addr = to_address(address)
        try:
            return self._contracts[addr]
        except KeyError:
            raise UnknownContract(address=to_hex(addr)) from None

    def contracts(self) -> List[Contract]:
        return list(self._contracts.values())

    # --------------------------------------------------------------------- #
    # Atomic execution
    # --------------------------------------------------------------------- #

    @contextlib.contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Checkpoint every contract's storage and the event sink; commit if the
        block completes, revert everything if it raises.
        """
        with self._lock:
            stores = [c.storage for c in self._contracts.values()]
            for s in stores:
                s.begin()
            self.events.begin()
            try:
                yield
            except BaseException:
                for s in stores:
                    s.revert()
                self.events.revert()
                raise
            else:
                for s in stores:
                    s.commit()
                self.events.commit()

    def transact(
        self,
        contract: Contract,
        method: str,
        caller: AddressLike,
        *args: Any,
        raise_on_revert: bool = False,
        **kwargs: Any,
    ) -> Receipt:
        """
        Run ``contract.<method>(caller, *args, **kwargs)`` atomically and
        return a receipt. Typed failures produce a REVERT receipt (or are
        re-raised when `raise_on_revert`); anything else is a bug and always
        propagates after rolling back.
        """
        fn = getattr(contract, method, None)
        if fn is None or method.startswith("_") or not callable(fn):
            raise AttributeError(f"{type(contract).__name__} has no public method {method!r}")
        who = to_address(caller)
        ts = self._timestamp
        mark = len(self.events)
        try:
            with self.atomic():
                result = fn(who, *args, **kwargs)
        except LpStakeError as err:
            log.warning(
                "revert %s.%s caller=%s: %s",
                type(contract).__name__, method, to_hex(who), err,
            )
            if raise_on_revert:
                raise
            fields = error_to_receipt_fields(err)
            return Receipt(
                status=Status.REVERT,
                timestamp=ts,
                contract=contract.address,
                method=method,
                caller=who,
                events=(),
                error=fields["error"],
            )
        emitted: List[Event] = list(self.events.iter_events())[mark:]
        log.debug("ok %s.%s caller=%s events=%d", type(contract).__name__, method, to_hex(who), len(emitted))
        return Receipt(
            status=Status.SUCCESS,
            timestamp=ts,
            contract=contract.address,
            method=method,
            caller=who,
            events=tuple(emitted),
            result=result,
        )


__all__ = ["Host"]
