"""Keyed lock table serializing pipeline runs per circuit."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator


class CircuitLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, name: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = threading.Lock()
                self._locks[name] = lock
            return lock

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        """Hold the circuit's lock for the duration of the block."""
        lock = self.get(name)
        with lock:
            yield
