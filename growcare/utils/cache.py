"""Small per-process TTL cache with explicit invalidation and metrics."""

from __future__ import annotations

import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Callable, Hashable


class TTLCache:
    """LRU-bounded TTL cache guarded by a lock.

    Entries expire `ttl_seconds` after they were written. `clock` is the
    monotonic time source and may be replaced in tests.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        ttl_seconds: int = 30,
        maxsize: int = 128,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.enabled = enabled and ttl_seconds > 0 and maxsize > 0
        self.ttl = max(1, ttl_seconds) if self.enabled else 0
        self.maxsize = max(1, maxsize) if self.enabled else 0
        self._clock = clock
        self._store: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._lock = Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: Hashable, loader: Callable[[], Any] | None = None) -> Any:
        """Return the cached value for `key`, loading it if missing or expired."""
        if not self.enabled:
            self._misses += 1
            return loader() if loader else None

        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry:
                expires_at, value = entry
                if expires_at > now:
                    self._hits += 1
                    self._store.move_to_end(key)
                    return value
                self._store.pop(key, None)
            self._misses += 1

        if loader is None:
            return None

        value = loader()
        self.set(key, value)
        return value

    def set(self, key: Hashable, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            if value is None:
                self._store.pop(key, None)
                return
            self._store[key] = (self._clock() + self.ttl, value)
            self._store.move_to_end(key)
            if len(self._store) > self.maxsize:
                self._store.popitem(last=False)
                self._evictions += 1

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._store.get(key)
            return bool(entry) and entry[0] > self._clock()

    def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics for monitoring.

        Returns:
            Dictionary with enabled, size, maxsize, ttl_seconds, hits, misses,
            hit_rate (0-100) and evictions.
        """
        with self._lock:
            size = len(self._store)
            hits = self._hits
            misses = self._misses
            evictions = self._evictions

        total_requests = hits + misses
        hit_rate = (hits / total_requests * 100) if total_requests > 0 else 0.0

        return {
            "enabled": self.enabled,
            "size": size,
            "maxsize": self.maxsize,
            "ttl_seconds": self.ttl,
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hit_rate, 2),
            "evictions": evictions,
        }
