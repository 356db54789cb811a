"""
Shared-secret authentication for the plugin-facing endpoints.

The image resizer calls this service with the ``X-Internal-API-Key`` header
set to ``INTERNAL_API_SECRET`` before admitting a caller's key.
"""

from typing import Annotated

from fastapi import Depends, Header

from app.core.config import request_logger, settings
from app.core.exceptions.types import AuthenticationException


class InvalidInternalAPIKeyException(AuthenticationException):
    """Raised when the plugin shared secret is missing or wrong."""

    def __init__(self, message: str = "Invalid or missing internal API key.") -> None:
        super().__init__(message)


async def verify_internal_api_key(
    x_internal_api_key: Annotated[str | None, Header()] = None,
) -> str:
    """
    Check the shared secret sent by the image resizer.

    The header is compared against INTERNAL_API_SECRET. Only the resizer
    workers hold this secret; end users authenticate with their own
    API key, which travels in the request body or query instead.

    Args:
        x_internal_api_key: Value of the X-Internal-API-Key header.

    Returns:
        The accepted secret.

    Raises:
        InvalidInternalAPIKeyException: If the header is absent or does not match.
    """
    if not x_internal_api_key:
        request_logger.warning("Plugin request missing X-Internal-API-Key header")
        raise InvalidInternalAPIKeyException("Missing X-Internal-API-Key header.")

    if x_internal_api_key != settings.INTERNAL_API_SECRET:
        request_logger.warning("Plugin request with wrong internal API key")
        raise InvalidInternalAPIKeyException("Invalid internal API key.")

    return x_internal_api_key


InternalAPIKeyDep = Annotated[str, Depends(verify_internal_api_key)]

__all__ = [
    "verify_internal_api_key",
    "InternalAPIKeyDep",
    "InvalidInternalAPIKeyException",
]
