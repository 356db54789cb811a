"""
General-purpose response cache with an optional shared Redis store.

A process-local store is always written. When a remote backend is
configured, writes also go to it and reads try it first; any remote failure
is logged and the read falls back to the local store (or a miss).
"""

from abc import ABC, abstractmethod
import json
import time
from typing import Any, Literal

from app.core.config import cache_logger
from app.core.services.redis_service import RedisService
from app.core.services.ttl_cache import CacheEntry, Clock


class ResponseCacheBackend(ABC):
    """
    Abstract base class for response cache backends.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Get a cached value, or None if absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int) -> None:
        """Store a value for ``ttl`` seconds."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove one value."""
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove every value owned by this backend."""
        pass


class MemoryBackend(ResponseCacheBackend):
    """
    In-memory backend with lazy expiry.

    Note:
        Not shared between processes or instances.
    """

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry.payload

    async def set(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = CacheEntry(
            key=key, payload=value, stored_at=self._clock(), ttl=ttl
        )

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()


class RedisBackend(ResponseCacheBackend):
    """
    Redis backend storing JSON under a key namespace.

    Expiry is delegated to Redis (``SET ... EX``). Relies on RedisService,
    which never raises on connection errors.
    """

    def __init__(self, namespace: str = "cache:") -> None:
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    async def get(self, key: str) -> Any | None:
        raw = await RedisService.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            cache_logger.warning(f"Discarding undecodable cache value for {key}")
            await RedisService.delete(self._key(key))
            return None

    async def set(self, key: str, value: Any, ttl: int) -> None:
        await RedisService.set(self._key(key), json.dumps(value, default=str), ttl=ttl)

    async def delete(self, key: str) -> None:
        await RedisService.delete(self._key(key))

    async def clear(self) -> None:
        await RedisService.delete_pattern(f"{self.namespace}*")


class ResponseCache:
    """
    Key/value cache with TTL, local first for writes and remote first for reads.

    Example:
        >>> cache = ResponseCache(remote=RedisBackend("cache:"))
        >>> await cache.set("plugin:products:all", payload, ttl=3600)
        >>> await cache.get("plugin:products:all")
    """

    def __init__(
        self,
        remote: ResponseCacheBackend | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.local = MemoryBackend(clock=clock)
        self.remote = remote

    @classmethod
    def create(
        cls,
        backend: Literal["memory", "redis"] = "memory",
        namespace: str = "cache:",
    ) -> "ResponseCache":
        """Build a cache for the configured backend."""
        remote = RedisBackend(namespace) if backend == "redis" else None
        cache_logger.info(f"Response cache created with backend: {backend}")
        return cls(remote=remote)

    async def get(self, key: str) -> Any | None:
        """
        Get a value, trying the remote store first.

        Returns:
            The cached value, or None on a miss.
        """
        if self.remote is not None:
            try:
                value = await self.remote.get(key)
            except Exception as e:
                cache_logger.warning(f"Remote cache read failed for {key}: {e}")
                value = None
            if value is not None:
                cache_logger.debug(f"Cache hit (remote): {key}")
                return value

        value = await self.local.get(key)
        if value is not None:
            cache_logger.debug(f"Cache hit (memory): {key}")
        else:
            cache_logger.debug(f"Cache miss: {key}")
        return value

    async def set(self, key: str, value: Any, ttl: int = 3600) -> None:
        await self.local.set(key, value, ttl)
        if self.remote is not None:
            try:
                await self.remote.set(key, value, ttl)
            except Exception as e:
                cache_logger.warning(f"Remote cache write failed for {key}: {e}")
        cache_logger.debug(f"Cache set: {key} (TTL: {ttl}s)")

    async def clear(self, key: str) -> None:
        await self.local.delete(key)
        if self.remote is not None:
            try:
                await self.remote.delete(key)
            except Exception as e:
                cache_logger.warning(f"Remote cache delete failed for {key}: {e}")
        cache_logger.info(f"Cache cleared: {key}")

    async def clear_all(self) -> None:
        await self.local.clear()
        if self.remote is not None:
            try:
                await self.remote.clear()
            except Exception as e:
                cache_logger.warning(f"Remote cache clear failed: {e}")
        cache_logger.info("Cache cleared all")

    async def teardown(self) -> None:
        """Drop process-local state. The remote store is left untouched."""
        await self.local.clear()


__all__ = [
    "MemoryBackend",
    "RedisBackend",
    "ResponseCache",
    "ResponseCacheBackend",
]
