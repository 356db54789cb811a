"""
Time-boxed memoization for values that are expensive to fetch.

Used by the tier catalog to avoid calling the billing provider on every
request. Instances are constructed explicitly and owned by their caller.
"""

import asyncio
from dataclasses import dataclass
import time
from typing import Any, Awaitable, Callable, TypeVar

from app.core.config import cache_logger

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A cached payload and when it was stored.

    Attributes:
        key: Cache key.
        payload: Cached value. May be empty or falsy.
        stored_at: Clock reading at store time, in seconds.
        ttl: Lifetime in seconds.
    """

    key: str
    payload: Any
    stored_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl


class TTLCache:
    """
    Process-local cache with per-entry TTL and lazy expiry.

    ``get_or_fetch`` stores whatever the fetch returns, including empty
    results. Exceptions raised by the fetch are not cached and propagate to
    the caller. Concurrent misses on the same key share a single fetch.

    Example:
        >>> cache = TTLCache()
        >>> catalog = await cache.get_or_fetch("billing:catalog", 3600, fetch_catalog)
        >>> cache.invalidate("billing:catalog")
    """

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._fresh_entry(key) is not None

    def _fresh_entry(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            # Stale entries are indistinguishable from never-stored ones
            del self._entries[key]
            cache_logger.debug(f"TTLCache expired: {key}")
            return None
        return entry

    async def get_or_fetch(
        self,
        key: str,
        ttl: float,
        fetch_fn: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Return the cached value for ``key`` or fetch, store and return it.

        Args:
            key: Cache key.
            ttl: Lifetime of a newly stored value, in seconds.
            fetch_fn: Coroutine function producing the value on a miss.

        Returns:
            The cached or freshly fetched value.

        Raises:
            Exception: Whatever ``fetch_fn`` raises; nothing is stored in that case.
        """
        entry = self._fresh_entry(key)
        if entry is not None:
            cache_logger.debug(f"TTLCache hit: {key}")
            return entry.payload

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # Another coroutine may have filled the entry while we waited
            entry = self._fresh_entry(key)
            if entry is not None:
                return entry.payload

            cache_logger.debug(f"TTLCache miss: {key}")
            value = await fetch_fn()
            self._entries[key] = CacheEntry(
                key=key,
                payload=value,
                stored_at=self._clock(),
                ttl=ttl,
            )
            return value

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns whether an entry was present."""
        removed = self._entries.pop(key, None) is not None
        self._locks.pop(key, None)
        if removed:
            cache_logger.info(f"TTLCache invalidated: {key}")
        return removed

    def invalidate_all(self) -> None:
        count = len(self._entries)
        self._entries.clear()
        self._locks.clear()
        cache_logger.info(f"TTLCache invalidated all ({count} entries)")


__all__ = ["CacheEntry", "Clock", "TTLCache"]
