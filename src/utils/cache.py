"""
Warden - Shared Cache Utilities
===============================

TTL-based cache used to bound recomputation of expensive read views
(statistics rollups polled by the dashboard).
"""

import time
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class TTLCache(Generic[K, V]):
    """
    A simple TTL-based cache with automatic expiration.

    Safe for single-threaded async use: no method awaits, so a get/set pair
    is never interleaved with another coroutine. Concurrent misses may both
    recompute; the last writer wins.
    """

    def __init__(
        self,
        ttl: float,
        max_size: int = 100,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the TTL cache.

        Args:
            ttl: Time-to-live in seconds for cached items.
            max_size: Maximum number of items to store (oldest evicted).
            clock: Time source returning seconds.
        """
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._cache: Dict[K, Tuple[V, float]] = {}

    def get(self, key: K, now: Optional[float] = None) -> Optional[V]:
        """
        Get an item from the cache if it exists and hasn't expired.

        Args:
            key: The cache key.
            now: Current time; defaults to the cache clock.

        Returns:
            The cached value or None if not found/expired.
        """
        entry = self._cache.get(key)
        if entry is None:
            return None

        value, cached_at = entry
        current = self._clock() if now is None else now
        if current - cached_at >= self._ttl:
            self._cache.pop(key, None)
            return None

        return value

    def set(self, key: K, value: V, now: Optional[float] = None) -> None:
        """Set an item in the cache."""
        if len(self._cache) >= self._max_size and key not in self._cache:
            self._evict_oldest()

        self._cache[key] = (value, self._clock() if now is None else now)

    def delete(self, key: K) -> bool:
        """
        Delete an item from the cache.

        Returns:
            True if item was deleted, False if not found.
        """
        return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        """Clear all items from the cache."""
        self._cache.clear()

    def _evict_oldest(self) -> None:
        """Evict the oldest item from the cache."""
        if not self._cache:
            return
        oldest_key = min(self._cache, key=lambda k: self._cache[k][1])
        self._cache.pop(oldest_key, None)

    def cleanup_expired(self, now: Optional[float] = None) -> int:
        """
        Remove all expired items from the cache.

        Returns:
            Number of items removed.
        """
        current = self._clock() if now is None else now
        expired_keys = [
            k for k, (_, cached_at) in self._cache.items()
            if current - cached_at >= self._ttl
        ]
        for key in expired_keys:
            self._cache.pop(key, None)
        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: K) -> bool:
        return self.get(key) is not None


__all__ = ["TTLCache"]
