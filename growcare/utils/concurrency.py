"""
Concurrency utilities.

`KeyedLocks` is a lazily populated map of per-key locks used to serialize
writes to one plant's task set.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Hashable, Iterator


class KeyedLocks:
    """One lock per key, created on first use."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def get(self, key: Hashable) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[Any]:
        lock = self.get(key)
        with lock:
            yield lock

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
