"""
Pydantic schemas for admission, usage and key validation endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field

from app.apps.image_resizer.schemas.api_key import APIKeyResponse
from app.core.enums import AdmissionDenial


class UsageCheckRequest(BaseModel):
    """Schema for an admission check."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"api_key": "dev_sk_xxxxxxxxxxxxxxxxxxxxxxxxxxx"}}
    )

    api_key: str | None = Field(default=None, description="The presented API key")


class AdmissionResponse(BaseModel):
    """Schema for an admission decision."""

    admitted: bool
    usage: int | None = None
    limit: int | None = None
    reason: str | None = None
    kind: AdmissionDenial | None = None


class UsageInfoResponse(BaseModel):
    usage: int
    limit: int
    month: str = Field(description="YYYY-MM month the usage belongs to")
    limit_usage: bool


class ValidateKeyRequest(BaseModel):
    api_key: str | None = None


class ValidateKeyResponse(BaseModel):
    valid: bool = True
    api_key_data: APIKeyResponse


__all__ = [
    "AdmissionResponse",
    "UsageCheckRequest",
    "UsageInfoResponse",
    "ValidateKeyRequest",
    "ValidateKeyResponse",
]
