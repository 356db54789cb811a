"""
Redis service backing the shared response cache.

Every operation degrades instead of raising: a missing client or a Redis
error is logged on ``redis_logger`` and reported as ``None``/``False``/``0``
so callers can fall back to process-local state.
"""

from __future__ import annotations

from redis.asyncio import Redis

from app.core.config import redis_logger, settings


class RedisService:
    """
    Singleton Redis service for async Redis operations.

    Attributes:
        _client: The async Redis client instance.
        _url: The Redis connection URL.

    Example:
        >>> await RedisService.init("redis://localhost:6379/0")
        >>> await RedisService.set("key", "value", ttl=60)
        >>> value = await RedisService.get("key")
        >>> await RedisService.aclose()
    """

    _client: Redis | None = None
    _url: str = settings.REDIS_URL

    @classmethod
    async def init(cls, url: str | None = None) -> None:
        """
        Initialize the Redis client, closing any previous one first.

        Args:
            url: The Redis connection URL. If None, uses settings.REDIS_URL.
        """
        if url is not None:
            cls._url = url

        await cls.aclose()

        try:
            cls._client = Redis.from_url(
                cls._url,
                encoding="utf-8",
                decode_responses=False,  # We handle decoding manually
            )
            redis_logger.info(f"Redis client initialized with URL: {cls._url}")
        except Exception as e:
            redis_logger.error(f"Failed to initialize Redis client: {str(e)}")
            raise

    @classmethod
    async def aclose(cls) -> None:
        """Close the Redis client. Safe to call when not initialized."""
        if cls._client is not None:
            try:
                await cls._client.aclose()
                redis_logger.info("Redis client closed successfully")
            except Exception as e:
                redis_logger.warning(f"Error closing Redis client: {str(e)}")
            finally:
                cls._client = None

    @classmethod
    def is_connected(cls) -> bool:
        return cls._client is not None

    @classmethod
    def _client_or_warn(cls, operation: str) -> Redis | None:
        if cls._client is None:
            redis_logger.warning(
                f"Redis {operation} attempted but client not initialized"
            )
        return cls._client

    @classmethod
    async def ping(cls) -> bool:
        """
        Ping the Redis server to check connectivity.

        Returns:
            bool: True if ping succeeds, False otherwise.
        """
        client = cls._client_or_warn("ping")
        if client is None:
            return False

        try:
            result = await client.ping()  # type: ignore[misc]
            return bool(result)
        except Exception as e:
            redis_logger.error(f"Redis ping failed: {str(e)}")
            return False

    @classmethod
    async def get(cls, key: str) -> str | None:
        """
        Get a value from Redis by key.

        Returns:
            The value as a string if found, None if missing or on error.
        """
        client = cls._client_or_warn(f"get({key})")
        if client is None:
            return None

        try:
            value = await client.get(key)
            if value is not None:
                return value.decode("utf-8") if isinstance(value, bytes) else value
            return None
        except Exception as e:
            redis_logger.error(f"Redis get({key}) failed: {str(e)}")
            return None

    @classmethod
    async def set(
        cls,
        key: str,
        value: str,
        ttl: int | None = None,
    ) -> bool:
        """
        Set a value in Redis.

        Args:
            key: The key to set.
            value: The value to store.
            ttl: Optional time-to-live in seconds.

        Returns:
            bool: True if set succeeds, False otherwise.
        """
        client = cls._client_or_warn(f"set({key})")
        if client is None:
            return False

        try:
            await client.set(key, value, ex=ttl)
            redis_logger.debug(f"Redis set({key}) successful, TTL: {ttl}")
            return True
        except Exception as e:
            redis_logger.error(f"Redis set({key}) failed: {str(e)}")
            return False

    @classmethod
    async def delete(cls, key: str) -> bool:
        """
        Delete a key from Redis.

        Returns:
            bool: True if key was deleted, False if key didn't exist or error.
        """
        client = cls._client_or_warn(f"delete({key})")
        if client is None:
            return False

        try:
            result = await client.delete(key)
            return result > 0
        except Exception as e:
            redis_logger.error(f"Redis delete({key}) failed: {str(e)}")
            return False

    @classmethod
    async def delete_pattern(cls, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Uses SCAN rather than KEYS so large keyspaces do not block Redis.

        Args:
            pattern: The pattern to match (e.g., "cache:*").

        Returns:
            int: Number of keys deleted.
        """
        client = cls._client_or_warn(f"delete_pattern({pattern})")
        if client is None:
            return 0

        try:
            deleted_count = 0
            cursor = 0

            while True:
                cursor, keys = await client.scan(
                    cursor=cursor, match=pattern, count=100
                )
                if keys:
                    deleted_count += await client.delete(*keys)
                if cursor == 0:
                    break

            redis_logger.debug(
                f"Redis delete_pattern({pattern}) deleted {deleted_count} keys"
            )
            return deleted_count
        except Exception as e:
            redis_logger.error(f"Redis delete_pattern({pattern}) failed: {str(e)}")
            return 0
