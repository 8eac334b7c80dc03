"""
In-process TTL cache.

Instances are created by the caller and passed to the services that need them,
so each pipeline run (or each test) decides what is shared. Expiry is checked
on read; expired entries are dropped lazily.
"""

import time
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Key/value cache with a per-instance default time-to-live in seconds."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic, max_entries: int = 1000):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[float, V]] = {}
        self.stats = {"hits": 0, "misses": 0, "expired": 0}

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            self.stats["misses"] += 1
            return None

        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.stats["expired"] += 1
            self.stats["misses"] += 1
            return None

        self.stats["hits"] += 1
        return value

    def set(self, key: str, value: V, ttl_seconds: Optional[float] = None) -> None:
        if len(self._entries) >= self.max_entries and key not in self._entries:
            self._evict_oldest()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = (self._clock() + ttl, value)

    def _evict_oldest(self) -> None:
        oldest_key = min(self._entries, key=lambda k: self._entries[k][0])
        del self._entries[oldest_key]
        logger.debug("ttl_cache_evicted", key=oldest_key)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        return {**self.stats, "size": len(self._entries), "ttl_seconds": self.ttl_seconds}
