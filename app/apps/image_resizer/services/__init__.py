from app.apps.image_resizer.services.api_key import APIKeyService, api_key_service
from app.apps.image_resizer.services.key_validator import (
    KeyValidation,
    KeyValidator,
    key_validator,
)
from app.apps.image_resizer.services.tier_catalog import (
    ALL_TIERS,
    BillingCatalog,
    ProductInfo,
    ResizeLimit,
    TierCatalog,
    TierConfig,
    format_price,
    get_resize_limit,
    get_tier_by_id,
)
from app.apps.image_resizer.services.usage_meter import (
    AdmissionResult,
    UsageInfo,
    UsageMeter,
    clamp_monthly_limit,
    current_month_key,
    usage_meter,
)

__all__ = [
    "AdmissionResult",
    "ALL_TIERS",
    "APIKeyService",
    "api_key_service",
    "BillingCatalog",
    "clamp_monthly_limit",
    "current_month_key",
    "format_price",
    "get_resize_limit",
    "get_tier_by_id",
    "KeyValidation",
    "KeyValidator",
    "key_validator",
    "ProductInfo",
    "ResizeLimit",
    "TierCatalog",
    "TierConfig",
    "UsageInfo",
    "UsageMeter",
    "usage_meter",
]
