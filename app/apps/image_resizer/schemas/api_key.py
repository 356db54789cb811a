"""
Pydantic schemas for API key management endpoints.
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from app.core.enums import KeyType


class APIKeyCreate(BaseModel):
    """Schema for issuing a new API key.

    ``name`` is checked by the service so a missing name is a 400, not a 422.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Figma plugin",
                "description": "Key used by the resizer plugin",
                "permissions": ["resize"],
                "key_type": "development",
                "monthly_limit": 5,
            }
        }
    )

    name: Annotated[
        str | None,
        StringConstraints(max_length=255),
        Field(description="Label for the API key"),
    ] = None
    description: str | None = None
    permissions: list[str] | None = None
    key_type: KeyType = KeyType.DEVELOPMENT
    monthly_limit: Annotated[
        int | None,
        Field(description="Requested monthly limit; clamped to the allowed range"),
    ] = None


class APIKeyUpdate(BaseModel):
    """Schema for replacing the editable fields of an API key."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Figma plugin (prod)",
                "description": "",
                "permissions": [],
                "key_type": "production",
                "limit_usage": True,
                "monthly_limit": 10,
            }
        }
    )

    name: Annotated[str | None, StringConstraints(max_length=255)] = None
    description: str | None = None
    permissions: list[str] | None = None
    key_type: KeyType | None = None
    limit_usage: bool | None = None
    monthly_limit: int | None = None


class APIKeyResponse(BaseModel):
    """Schema for API key response. Includes the secret."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    description: str
    key: str
    permissions: list[str]
    key_type: KeyType
    limit_usage: bool
    monthly_limit: int | None
    current_usage: int
    last_reset_month: str | None
    created_at: datetime
    updated_at: datetime


class APIKeyListResponse(BaseModel):
    api_keys: list[APIKeyResponse]


class APIKeyDeleteResponse(BaseModel):
    message: str = "API key deleted successfully"
    deleted_key: APIKeyResponse


__all__ = [
    "APIKeyCreate",
    "APIKeyDeleteResponse",
    "APIKeyListResponse",
    "APIKeyResponse",
    "APIKeyUpdate",
]
