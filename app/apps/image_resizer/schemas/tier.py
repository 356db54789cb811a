"""
Pydantic schemas for plugin product and tier endpoints.
"""

from pydantic import BaseModel

from app.apps.image_resizer.services.tier_catalog import (
    ProductInfo,
    TierConfig,
    format_price,
    get_resize_limit,
)
from app.core.enums import ResizeLimitType, SupportLevel


class ResizeLimitResponse(BaseModel):
    type: ResizeLimitType
    limit: int | None = None


class TierResponse(BaseModel):
    """A service tier as served to the plugin and the pricing page."""

    id: str
    name: str
    display_name: str
    resizes_per_day: int | None = None
    resizes_one_time: int | None = None
    max_batch_size: int
    supported_formats: list[str]
    max_image_size: int
    has_watermark: bool
    has_api_access: bool
    has_team_support: bool
    has_analytics: bool
    support_level: SupportLevel
    billing_product_id: str | None = None
    billing_price_id: str | None = None
    monthly_price: int | None = None
    yearly_price: int | None = None
    resize_limit: ResizeLimitResponse
    formatted_price: str

    @classmethod
    def from_tier(cls, tier: TierConfig) -> "TierResponse":
        limit = get_resize_limit(tier)
        return cls(
            id=tier.id,
            name=tier.name,
            display_name=tier.display_name,
            resizes_per_day=tier.resizes_per_day,
            resizes_one_time=tier.resizes_one_time,
            max_batch_size=tier.max_batch_size,
            supported_formats=list(tier.supported_formats),
            max_image_size=tier.max_image_size,
            has_watermark=tier.has_watermark,
            has_api_access=tier.has_api_access,
            has_team_support=tier.has_team_support,
            has_analytics=tier.has_analytics,
            support_level=tier.support_level,
            billing_product_id=tier.billing_product_id,
            billing_price_id=tier.billing_price_id,
            monthly_price=tier.monthly_price,
            yearly_price=tier.yearly_price,
            resize_limit=ResizeLimitResponse(type=limit.type, limit=limit.limit),
            formatted_price=format_price(tier.monthly_price),
        )


class ProductInfoResponse(BaseModel):
    tiers: list[TierResponse]
    stripe_publishable_key: str

    @classmethod
    def from_product_info(cls, info: ProductInfo) -> "ProductInfoResponse":
        return cls(
            tiers=[TierResponse.from_tier(tier) for tier in info.tiers],
            stripe_publishable_key=info.stripe_publishable_key,
        )


__all__ = ["ProductInfoResponse", "ResizeLimitResponse", "TierResponse"]
