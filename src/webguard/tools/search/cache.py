"""In-memory TTL cache for search results.

This module caches search result lists to avoid repeated provider calls for
the same query. Entries live in a process-local map and are dropped on
restart.
"""

import threading
import time
from collections.abc import Callable

from webguard.logging import get_logger
from webguard.tools.search.models import CacheEntry, SearchResult

logger = get_logger("webguard.tools.search.cache")

DEFAULT_TTL_SECONDS = 20 * 60


class SearchCache:
    """TTL cache mapping a query key to its search results.

    Expired entries are treated as absent and removed when read; a sweep
    via purge_expired() only reclaims memory.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize search cache.

        Args:
            ttl_seconds: Cache TTL in seconds (default: 20 minutes)
            clock: Monotonic time source (time.monotonic by default)
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> list[SearchResult] | None:
        """Get cached results.

        Args:
            key: Cache key

        Returns:
            list[SearchResult] | None: Cached results or None if not found/expired
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None

        logger.debug(f"Cache hit for: {key}")
        return list(entry.results)

    def set(self, key: str, results: list[SearchResult]) -> None:
        """Cache search results.

        Args:
            key: Cache key
            results: Results to cache
        """
        with self._lock:
            now = self._clock()
            self._entries[key] = CacheEntry(
                results=list(results),
                created_at=now,
                expires_at=now + self.ttl_seconds,
            )

    def invalidate(self, key: str) -> None:
        """Remove one cached entry if present."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Invalidate all cached results."""
        with self._lock:
            self._entries.clear()
        logger.info("Search cache cleared")

    def purge_expired(self) -> int:
        """Remove expired cache entries.

        Returns:
            int: Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Cleaned up {len(expired)} expired cache entries")
        return len(expired)

    def stats(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            dict: Cache statistics (total, expired, valid)
        """
        with self._lock:
            now = self._clock()
            total = len(self._entries)
            expired = sum(1 for entry in self._entries.values() if entry.is_expired(now))

        return {
            "total": total,
            "expired": expired,
            "valid": total - expired,
        }

    def __len__(self) -> int:
        return len(self._entries)
