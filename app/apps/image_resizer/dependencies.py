"""
Dependencies for image_resizer routers.

Example usage:
    from app.apps.image_resizer.dependencies import TierCatalogDep

    @router.get("/plugin/tiers/{tier_id}")
    async def get_tier(tier_id: str, catalog: TierCatalogDep):
        return await catalog.resolve_tier_by_id(tier_id)
"""

from typing import Annotated

from fastapi import Depends, Request

from app.apps.image_resizer.services.tier_catalog import TierCatalog


def get_tier_catalog(request: Request) -> TierCatalog:
    """Return the TierCatalog created in the application lifespan."""
    return request.app.state.tier_catalog


TierCatalogDep = Annotated[TierCatalog, Depends(get_tier_catalog)]

__all__ = ["get_tier_catalog", "TierCatalogDep"]
