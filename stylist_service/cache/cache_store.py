"""
Cache Store (v1.0.0)
Volatile in-memory TTL cache for pipeline responses.
"""
import time
import threading
import logging
from typing import Dict, Any, Optional, Callable

logger = logging.getLogger(__name__)


class CacheStore:
    """
    In-memory cache with per-entry expiry.

    Safe for concurrent get/set from independent requests.
    """

    def __init__(self, ttl_seconds: int = 21600, clock: Callable[[], float] = time.time):
        """
        Initialize cache store.

        Args:
            ttl_seconds: Default time-to-live (default: 6 hours)
            clock: Time source, injectable for tests
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, cache_key: str) -> Optional[Any]:
        """
        Get cached data if it exists and has not expired.

        Args:
            cache_key: Cache key

        Returns:
            Cached value or None
        """
        with self._lock:
            entry = self._entries.get(cache_key)
            if entry is None:
                self._misses += 1
                return None

            if entry["expires_at"] <= self._clock():
                del self._entries[cache_key]
                self._misses += 1
                logger.info(f"Cache expired: {cache_key}")
                return None

            self._hits += 1

        logger.info(f"Cache hit: {cache_key}")
        return entry["value"]

    def set(self, cache_key: str, value: Any, ttl_seconds: Optional[int] = None):
        """
        Save a value to cache.

        Args:
            cache_key: Cache key
            value: JSON-serializable value
            ttl_seconds: Override of the default TTL
        """
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[cache_key] = {
                "value": value,
                "expires_at": self._clock() + ttl,
            }
        logger.info(f"Cache saved: {cache_key} (TTL: {ttl}s)")

    def clear_expired(self) -> int:
        """
        Remove all expired cache entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e["expires_at"] <= now]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.info(f"Removed {len(expired)} expired cache entries")

        return len(expired)

    def clear(self):
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "ttl_seconds": self.ttl_seconds,
            }
