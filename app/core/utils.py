"""
Utility functions for the application.

- JWT token creation and decoding
- API key secret generation
- OpenAPI schema export
"""

from datetime import datetime, timedelta, timezone
import json
import secrets
from typing import Any
import uuid

import aiofiles
from fastapi import FastAPI
import jwt

from app.core.config import settings, utils_logger
from app.core.enums import KeyType

API_KEY_PREFIXES: dict[KeyType, str] = {
    KeyType.PRODUCTION: "prod_sk_",
    KeyType.DEVELOPMENT: "dev_sk_",
}
API_KEY_RANDOM_BYTES = 20


def create_jwt_token(
    data: dict[str, Any] | None, expires_delta: timedelta | None = None
) -> str:
    """
    Create a JWT token with the given data and expiration time.

    The token is signed with ``JWT_SECRET_KEY`` using ``JWT_ALGORITHM`` and
    always carries ``exp``, ``iat`` and a unique ``jti`` claim.

    Args:
        data: Dictionary containing the claims to encode. Cannot be None.
        expires_delta: Optional lifetime. Defaults to 15 minutes.
                      Can be negative for immediate expiration (testing only).

    Returns:
        str: Encoded JWT token string.

    Raises:
        ValueError: If data is None.

    Examples:
        >>> token = create_jwt_token({"sub": "123", "type": "access"})
        >>> len(token.split("."))
        3
    """
    if data is None:
        utils_logger.error("Attempted to create JWT token with None data")
        raise ValueError("Data cannot be None")

    to_encode = data.copy()

    if expires_delta is None:
        expires_delta = timedelta(minutes=15)

    now = datetime.now(timezone.utc)
    expire = now + expires_delta
    to_encode["exp"] = expire
    to_encode["iat"] = now
    to_encode["jti"] = str(uuid.uuid4())

    encoded_jwt = jwt.encode(
        to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )

    utils_logger.info(
        f"JWT token created successfully with expiration: {expire.isoformat()}"
    )
    return encoded_jwt


def decode_jwt_token(token: str | None) -> dict[str, Any] | None:
    """
    Decode and validate a JWT token.

    Returns None for any invalid, expired, or tampered token.

    Args:
        token: The JWT token string to decode. Can be None or empty.

    Returns:
        dict[str, Any] | None: The decoded claims, or None if the token is invalid.
    """
    if not token:
        utils_logger.warning(
            f"JWT token decoding attempted with invalid token: "
            f"{'None' if token is None else 'empty string'}"
        )
        return None

    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return payload
    except jwt.ExpiredSignatureError:
        utils_logger.warning("JWT token decoding failed: token has expired")
        return None
    except jwt.InvalidTokenError as e:
        utils_logger.warning(
            f"JWT token decoding failed: invalid token - {type(e).__name__}"
        )
        return None


def generate_api_key(key_type: KeyType | str = KeyType.DEVELOPMENT) -> str:
    """
    Generate a new API key secret.

    Production keys are prefixed ``prod_sk_``; anything else gets ``dev_sk_``.

    Args:
        key_type: The environment the key is issued for.

    Returns:
        str: The prefixed, url-safe random secret.
    """
    try:
        resolved = KeyType(key_type)
    except ValueError:
        resolved = KeyType.DEVELOPMENT
    return API_KEY_PREFIXES[resolved] + secrets.token_urlsafe(API_KEY_RANDOM_BYTES)


def mask_api_key(key: str | None) -> str:
    """Mask an API key for logging, keeping its prefix and last four characters."""
    if not key:
        return "<empty>"
    if len(key) <= 12:
        return key[:2] + "***"
    return f"{key[:8]}***{key[-4:]}"


def generate_openapi_json(app: FastAPI) -> str:
    """
    Generate OpenAPI JSON schema for the given FastAPI application.

    Args:
        app: The FastAPI application instance.

    Returns:
        A pretty-printed JSON string of the OpenAPI schema.
    """
    openapi_schema = app.openapi()

    openapi_json = json.dumps(openapi_schema, indent=4)
    utils_logger.info("OpenAPI JSON schema generated successfully")
    return openapi_json


async def write_to_file_async(file_path: str, data: str) -> None:
    """
    Asynchronously write data to a file.

    Args:
        file_path: Path to the file where data should be written.
        data: The string data to write to the file.
    """
    try:
        async with aiofiles.open(file_path, mode="w", encoding="utf-8") as file:
            await file.write(data)
        utils_logger.info(f"Data written to file {file_path} successfully.")
    except OSError as e:
        utils_logger.error(
            f"Failed to write data to file {file_path}: {type(e).__name__} - {str(e)}"
        )
        raise
