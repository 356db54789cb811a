"""
Public product and tier endpoints used by the Figma plugin and the pricing page.

No authentication. Responses are cached server-side in the response cache
and client-side through Cache-Control headers.
"""

from typing import Annotated

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from app.apps.image_resizer.dependencies import TierCatalogDep
from app.apps.image_resizer.schemas.tier import ProductInfoResponse, TierResponse
from app.core.config import settings, tier_logger
from app.core.dependencies import ResponseCacheDep
from app.core.exceptions.types import TierNotFoundException


router = APIRouter(prefix="/plugin", tags=["Plugin"])


PRODUCTS_CACHE_KEY = "plugin:products:all"
CACHE_CONTROL_PUBLIC = "public, max-age=3600, s-maxage=1800"
CACHE_CONTROL_NO_STORE = "no-cache, no-store, must-revalidate"


@router.get(
    "/products",
    response_model=ProductInfoResponse,
    summary="List service tiers and pricing",
    description="""
    Return every service tier with its quota, features and Stripe linkage,
    plus the Stripe publishable key.

    Tiers fall back to the built-in configuration when Stripe is
    unavailable or has no image-resizer products.

    **Caching**:
    - Server-side response cache (1 hour)
    - `Cache-Control: public, max-age=3600, s-maxage=1800`
    - `refresh=true` clears the server-side caches and disables client caching
    - `X-Cache-Hit` reports whether the body came from the response cache
    """,
)
async def list_products(
    response_cache: ResponseCacheDep,
    tier_catalog: TierCatalogDep,
    refresh: Annotated[
        bool, Query(description="Clear caches and fetch fresh data from Stripe")
    ] = False,
) -> JSONResponse:
    if refresh:
        tier_logger.info("Cache bypass requested, clearing product caches")
        await response_cache.clear(PRODUCTS_CACHE_KEY)
        tier_catalog.invalidate()

    content = await response_cache.get(PRODUCTS_CACHE_KEY)
    cache_hit = content is not None

    if content is None:
        info = await tier_catalog.get_product_info()
        content = ProductInfoResponse.from_product_info(info).model_dump(mode="json")
        await response_cache.set(
            PRODUCTS_CACHE_KEY, content, ttl=settings.PLUGIN_PRODUCTS_CACHE_TTL
        )

    return JSONResponse(
        content=content,
        status_code=status.HTTP_200_OK,
        headers={
            "Cache-Control": CACHE_CONTROL_NO_STORE if refresh else CACHE_CONTROL_PUBLIC,
            "X-Cache-Hit": "true" if cache_hit else "false",
        },
    )


@router.get(
    "/tiers/{tier_id}",
    response_model=TierResponse,
    summary="Get a service tier",
    description="""
    Return one tier. A paid tier whose Stripe product has been removed is
    reported as not found.
    """,
    responses={404: {"description": "Tier not found"}},
)
async def get_tier(tier_id: str, tier_catalog: TierCatalogDep) -> JSONResponse:
    tier = await tier_catalog.resolve_tier_by_id(tier_id)
    if tier is None:
        raise TierNotFoundException()

    response_data = TierResponse.from_tier(tier)
    return JSONResponse(
        content=response_data.model_dump(mode="json"),
        status_code=status.HTTP_200_OK,
    )


__all__ = ["router", "PRODUCTS_CACHE_KEY"]
