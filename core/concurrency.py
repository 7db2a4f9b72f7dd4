"""
Per-Key Concurrency Primitives.

KeyedLock gives single-writer-per-key mutual exclusion without a global
lock held during the work: the table lock is only taken to find or create
the per-key entry, and entries are dropped once nobody holds or waits on
them.

SingleFlight collapses concurrent calls for the same key. While a pass is
running, later callers share ONE follow-up pass that starts after the
current one finishes, so a change that arrived mid-pass is never missed and
N callers never cause N passes.

Exports:
    KeyedLock: Mutex table keyed by any hashable
    SingleFlight: Collapse concurrent calls per key
"""

import threading
from concurrent.futures import Future
from contextlib import contextmanager
from typing import Callable, Dict, Hashable, Optional, TypeVar

T = TypeVar("T")


class _LockEntry:
    __slots__ = ("lock", "refs")

    def __init__(self):
        self.lock = threading.Lock()
        self.refs = 0


class KeyedLock:
    """
    Mutex per key.

    Usage:
        locks = KeyedLock()
        with locks.hold("AtoN-001"):
            ...  # exclusive for AtoN-001, other keys run in parallel
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, _LockEntry] = {}

    @contextmanager
    def hold(self, key: Hashable):
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = _LockEntry()
                self._entries[key] = entry
            entry.refs += 1

        entry.lock.acquire()
        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.refs -= 1
                if entry.refs == 0:
                    del self._entries[key]

    def active_keys(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._entries)


class _Flight:
    __slots__ = ("pending", "pending_fn")

    def __init__(self):
        self.pending: Optional[Future] = None
        self.pending_fn: Optional[Callable] = None


class SingleFlight:
    """
    Collapse concurrent calls per key.

    The first caller for a key (the leader) runs its function. Callers that
    arrive while it runs join a single queued follow-up pass and block until
    that pass completes. The leader runs the queued pass itself before
    returning its own result, and keeps going until nothing is queued.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._flights: Dict[Hashable, _Flight] = {}

    def do(self, key: Hashable, fn: Callable[[], T]) -> T:
        with self._guard:
            flight = self._flights.get(key)
            if flight is None:
                flight = _Flight()
                self._flights[key] = flight
                leader = True
            else:
                if flight.pending is None:
                    flight.pending = Future()
                    flight.pending_fn = fn
                waiter = flight.pending
                leader = False

        if not leader:
            return waiter.result()

        own: Future = Future()
        self._run(fn, own)

        while True:
            with self._guard:
                pending, pending_fn = flight.pending, flight.pending_fn
                flight.pending = None
                flight.pending_fn = None
                if pending is None:
                    del self._flights[key]
                    break
            self._run(pending_fn, pending)

        return own.result()

    def in_flight(self, key: Hashable) -> bool:
        with self._guard:
            return key in self._flights

    @staticmethod
    def _run(fn: Callable, future: Future) -> None:
        try:
            future.set_result(fn())
        except Exception as e:
            future.set_exception(e)
