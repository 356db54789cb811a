"""
Shared dependencies for FastAPI endpoints.

"""

from app.core.dependencies.auth import (
    bearer_scheme,
    get_current_owner_id,
    CurrentOwnerId,
)
from app.core.dependencies.caches import get_response_cache, ResponseCacheDep
from app.core.dependencies.db import get_async_session
from app.core.dependencies.internal import (
    verify_internal_api_key,
    InternalAPIKeyDep,
    InvalidInternalAPIKeyException,
)

__all__ = [
    "bearer_scheme",
    "get_current_owner_id",
    "CurrentOwnerId",
    # Dependency functions
    "verify_internal_api_key",
    # Type aliases
    "InternalAPIKeyDep",
    # Exceptions
    "InvalidInternalAPIKeyException",
    "get_async_session",
    "get_response_cache",
    "ResponseCacheDep",
]
