from app.core.services.payment.stripe import Stripe
from app.core.services.redis_service import RedisService
from app.core.services.response_cache import (
    MemoryBackend,
    RedisBackend,
    ResponseCache,
    ResponseCacheBackend,
)
from app.core.services.ttl_cache import CacheEntry, TTLCache

__all__ = [
    # Core services
    "RedisService",
    "Stripe",
    # Caching
    "CacheEntry",
    "MemoryBackend",
    "RedisBackend",
    "ResponseCache",
    "ResponseCacheBackend",
    "TTLCache",
]
