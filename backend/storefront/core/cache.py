"""
TTL Cache - In-Memory Cache for Catalog Reads
Avoids redundant remote calls for product listings, featured products and lookups.

Eviction is lazy: an expired entry is removed the next time it is read.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry(Generic[T]):
    """A cached value with its creation time and time-to-live, both in seconds."""
    value: T
    created_at: float
    ttl: float

    def is_valid(self, now: float) -> bool:
        return now - self.created_at < self.ttl


class TTLCache:
    """
    Thread-safe key/value cache with per-entry expiry.

    Args:
        default_ttl_minutes: TTL used when ``set`` is called without one
        clock: Returns the current time in seconds. Defaults to ``time.monotonic``;
            tests pass a fake clock to move time deterministically.
    """

    DEFAULT_TTL_MINUTES = 5

    def __init__(self, default_ttl_minutes: float = DEFAULT_TTL_MINUTES, clock: Optional[Clock] = None):
        self._default_ttl = default_ttl_minutes * 60
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._lock = threading.Lock()

        # Stats
        self._cache_hits = 0
        self._cache_misses = 0

    def set(self, key: str, value: Any, ttl_minutes: Optional[float] = None) -> None:
        """Store ``value`` under ``key``; it expires ``ttl_minutes`` from now."""
        ttl = self._default_ttl if ttl_minutes is None else ttl_minutes * 60
        with self._lock:
            self._entries[key] = CacheEntry(value=value, created_at=self._clock(), ttl=ttl)
        logger.debug(f"Cached key {key} for {ttl:.0f}s")

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._cache_misses += 1
                return None

            if not entry.is_valid(self._clock()):
                del self._entries[key]
                self._cache_misses += 1
                logger.debug(f"Cache entry expired: {key}")
                return None

            self._cache_hits += 1
            return entry.value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_by_predicate(self, predicate: Callable[[str], bool]) -> int:
        """Remove every entry whose key satisfies ``predicate``. Returns the count removed."""
        with self._lock:
            doomed = [key for key in self._entries if predicate(key)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def delete_by_prefix(self, *prefixes: str) -> int:
        """Remove every entry whose key starts with any of ``prefixes``."""
        deleted = self.delete_by_predicate(lambda key: key.startswith(prefixes))
        logger.info(f"Invalidated {deleted} cache keys with prefixes {list(prefixes)}")
        return deleted

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("Cache cleared")

    def keys(self) -> Iterable[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total_requests = self._cache_hits + self._cache_misses
            hit_rate = (self._cache_hits / total_requests * 100) if total_requests > 0 else 0
            return {
                "entries": len(self._entries),
                "cache_hits": self._cache_hits,
                "cache_misses": self._cache_misses,
                "hit_rate_percent": round(hit_rate, 2),
                "default_ttl_seconds": self._default_ttl,
            }
