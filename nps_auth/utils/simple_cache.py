from __future__ import annotations

import threading
import time
from typing import Generic, TypeVar

from nps_auth.utils.logger import get_logger

K = TypeVar("K")
V = TypeVar("V")

_logger = get_logger(__name__)


class TTLCache(Generic[K, V]):
    """Simple in-memory TTL cache with basic hit/miss counters.

    - Thread-safe via a single RLock
    - No LRU eviction; optional maxsize drops expired entries first,
      then the entry closest to expiry
    """

    def __init__(self, ttl_seconds: int, maxsize: int | None = None) -> None:
        self._ttl = int(max(0, ttl_seconds))
        self._maxsize = maxsize if (isinstance(maxsize, int) and maxsize > 0) else None
        self._data: dict[K, tuple[float, V]] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: K) -> V | None:
        now = time.time()
        with self._lock:
            item = self._data.get(key)
            if not item:
                self.misses += 1
                return None
            exp, val = item
            if exp and exp < now:
                self.misses += 1
                del self._data[key]
                return None
            self.hits += 1
            return val

    def set(self, key: K, value: V, *, ttl: int | None = None) -> None:
        exp_ttl = int(ttl if ttl is not None else self._ttl)
        exp = time.time() + exp_ttl if exp_ttl > 0 else 0.0
        with self._lock:
            if (
                key not in self._data
                and self._maxsize is not None
                and len(self._data) >= self._maxsize
            ):
                self._evict_one()
            self._data[key] = (exp, value)

    def _evict_one(self) -> None:
        now = time.time()
        oldest_key: K | None = None
        oldest_exp = float("inf")
        for k, (e, _v) in self._data.items():
            if e and e < now:
                oldest_key = k
                break
            # entries without expiry (0.0) are evicted last
            rank = e or float("inf")
            if oldest_key is None or rank < oldest_exp:
                oldest_exp = rank
                oldest_key = k
        if oldest_key is not None:
            del self._data[oldest_key]
            self.evictions += 1
            _logger.debug("Evicted cache entry", event="cache.evicted")

    def pop(self, key: K) -> V | None:
        with self._lock:
            item = self._data.pop(key, None)
            return item[1] if item else None

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.hits = 0
            self.misses = 0
            self.evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
