"""Per-process LRU cache with TTL for dashboard results."""
from __future__ import annotations

import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Hashable, Tuple


class DashboardCache:
    """Thread-safe LRU cache whose entries also expire after ``ttl_seconds``.

    ``None`` is a valid key and stands for the "all users" dashboard.
    """

    def __init__(self, *, enabled: bool = True, maxsize: int = 256, ttl_seconds: int = 300) -> None:
        self.enabled = enabled and maxsize > 0 and ttl_seconds > 0
        self.maxsize = maxsize if self.enabled else 0
        self.ttl = ttl_seconds if self.enabled else 0
        self._store: OrderedDict[Hashable, Tuple[float, Any]] = OrderedDict()
        self._lock = Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: Hashable) -> Tuple[bool, Any]:
        """Return ``(hit, value)``; expired entries are dropped and count as misses."""
        if not self.enabled:
            return False, None

        now = time.monotonic()
        with self._lock:
            entry = self._store.get(key)
            if entry is not None:
                expires_at, value = entry
                if expires_at > now:
                    self._hits += 1
                    self._store.move_to_end(key)
                    return True, value
                del self._store[key]
            self._misses += 1
        return False, None

    def set(self, key: Hashable, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._store[key] = (time.monotonic() + self.ttl, value)
            self._store.move_to_end(key)
            while len(self._store) > self.maxsize:
                self._store.popitem(last=False)
                self._evictions += 1

    def invalidate(self, key: Hashable) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            size = len(self._store)
            hits, misses, evictions = self._hits, self._misses, self._evictions

        total = hits + misses
        return {
            "enabled": self.enabled,
            "size": size,
            "maxsize": self.maxsize,
            "ttl_seconds": self.ttl,
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / total * 100, 2) if total else 0.0,
            "evictions": evictions,
        }
