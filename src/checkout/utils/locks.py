"""Keyed mutual exclusion.

One ``threading.Lock`` per key, created on first use. Used for per-product
stock counters, per-customer order creation and per-order settlement.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class KeyedLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self.lock_for(str(key)):
            yield

    def clear(self) -> None:
        with self._guard:
            self._locks.clear()
