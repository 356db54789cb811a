"""
Authentication dependencies for FastAPI endpoints.

Owners manage their API keys with a JWT access token issued by the
account service. The owner is identified by the token's ``sub`` claim; no
user table is consulted.

Example usage:
    from app.core.dependencies.auth import CurrentOwnerId

    @router.get("/api-keys")
    async def list_keys(owner_id: CurrentOwnerId):
        ...
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import auth_logger
from app.core.exceptions.types import AuthenticationException
from app.core.utils import decode_jwt_token

# auto_error=False so a missing header goes through AuthenticationException (401)
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_owner_id(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> UUID:
    """
    Extract and validate the JWT access token from the Authorization header.

    Args:
        credentials: The HTTP Bearer credentials containing the access token.

    Returns:
        UUID: The owner id from the ``sub`` claim.

    Raises:
        AuthenticationException: 401 if the token is missing, invalid, expired,
            not an access token, or carries a malformed subject.
    """
    if credentials is None or not credentials.credentials:
        auth_logger.warning("Authentication failed: missing bearer token")
        raise AuthenticationException("Missing access token")

    payload = decode_jwt_token(credentials.credentials)

    if payload is None:
        auth_logger.warning("Authentication failed: invalid or expired token")
        raise AuthenticationException("Invalid or expired access token")

    owner_id_str = payload.get("sub")
    if not owner_id_str:
        auth_logger.warning("Authentication failed: token missing 'sub' claim")
        raise AuthenticationException("Invalid access token")

    token_type = payload.get("type")
    if token_type != "access":
        auth_logger.warning(f"Authentication failed: wrong token type '{token_type}'")
        raise AuthenticationException("Invalid access token")

    try:
        owner_id = UUID(owner_id_str)
    except ValueError:
        auth_logger.warning(
            f"Authentication failed: invalid owner ID format '{owner_id_str}'"
        )
        raise AuthenticationException("Invalid access token")

    auth_logger.debug(f"Owner authenticated: {owner_id}")
    return owner_id


CurrentOwnerId = Annotated[UUID, Depends(get_current_owner_id)]

__all__ = [
    "bearer_scheme",
    "get_current_owner_id",
    "CurrentOwnerId",
]
