from app.apps.image_resizer.schemas.api_key import (
    APIKeyCreate,
    APIKeyDeleteResponse,
    APIKeyListResponse,
    APIKeyResponse,
    APIKeyUpdate,
)
from app.apps.image_resizer.schemas.tier import (
    ProductInfoResponse,
    ResizeLimitResponse,
    TierResponse,
)
from app.apps.image_resizer.schemas.usage import (
    AdmissionResponse,
    UsageCheckRequest,
    UsageInfoResponse,
    ValidateKeyRequest,
    ValidateKeyResponse,
)

__all__ = [
    "AdmissionResponse",
    "APIKeyCreate",
    "APIKeyDeleteResponse",
    "APIKeyListResponse",
    "APIKeyResponse",
    "APIKeyUpdate",
    "ProductInfoResponse",
    "ResizeLimitResponse",
    "TierResponse",
    "UsageCheckRequest",
    "UsageInfoResponse",
    "ValidateKeyRequest",
    "ValidateKeyResponse",
]
