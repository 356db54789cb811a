"""
HTTP tests for the public plugin product and tier endpoints.

Run tests:
    pytest tests/apps/image_resizer/routers/test_plugin.py -v
"""

import pytest
from fastapi import status

from app.apps.image_resizer.routers.plugin import PRODUCTS_CACHE_KEY
from app.core.exceptions.types import AppException


class TestListProducts:

    @pytest.mark.asyncio
    async def test_static_tiers(self, client):
        response = await client.get("/plugin/products")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["stripe_publishable_key"] == "pk_test_123"
        assert [t["id"] for t in data["tiers"]] == ["free", "basic", "pro", "enterprise"]

        free = data["tiers"][0]
        assert free["formatted_price"] == "Free"
        assert free["resize_limit"] == {"type": "oneTime", "limit": 10}
        assert free["billing_product_id"] is None

        enterprise = data["tiers"][3]
        assert enterprise["resize_limit"] == {"type": "unlimited", "limit": None}
        assert enterprise["formatted_price"] == "$24.99/month"

    @pytest.mark.asyncio
    async def test_cache_headers(self, client, stripe_client):
        first = await client.get("/plugin/products")
        second = await client.get("/plugin/products")

        assert first.headers["Cache-Control"] == "public, max-age=3600, s-maxage=1800"
        assert first.headers["X-Cache-Hit"] == "false"
        assert second.headers["X-Cache-Hit"] == "true"
        assert second.json() == first.json()
        stripe_client.list_products.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_bypasses_caches(
        self, client, response_cache, set_stripe_catalog, make_product, make_price
    ):
        await client.get("/plugin/products")
        set_stripe_catalog(
            [make_product("prod_pro", "Image Resizer Pro")],
            [make_price("price_pro", "prod_pro", 999)],
        )

        response = await client.get("/plugin/products", params={"refresh": "true"})

        assert response.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"
        assert response.headers["X-Cache-Hit"] == "false"
        pro = next(t for t in response.json()["tiers"] if t["id"] == "pro")
        assert pro["billing_product_id"] == "prod_pro"
        assert pro["billing_price_id"] == "price_pro"
        assert await response_cache.get(PRODUCTS_CACHE_KEY) is not None

    @pytest.mark.asyncio
    async def test_stripe_outage_serves_static_tiers(self, client, stripe_client):
        stripe_client.list_products.side_effect = AppException(
            "Unable to connect to Stripe.", status_code=503
        )

        response = await client.get("/plugin/products")

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["tiers"]) == 4


class TestGetTier:

    @pytest.mark.asyncio
    async def test_known_tier(self, client):
        response = await client.get("/plugin/tiers/basic")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["display_name"] == "Basic"
        assert data["resize_limit"] == {"type": "daily", "limit": 25}
        assert data["formatted_price"] == "$4.99/month"
        assert data["supported_formats"] == ["jpg", "png", "webp"]

    @pytest.mark.asyncio
    async def test_unknown_tier(self, client):
        response = await client.get("/plugin/tiers/platinum")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Tier not found"

    @pytest.mark.asyncio
    async def test_removed_stripe_product(
        self, client, tier_catalog, set_stripe_catalog, make_product
    ):
        set_stripe_catalog([make_product("prod_pro", "Image Resizer Pro")])
        assert (await client.get("/plugin/tiers/pro")).status_code == status.HTTP_200_OK

        set_stripe_catalog([])
        tier_catalog.invalidate()

        response = await client.get("/plugin/tiers/pro")

        assert response.status_code == status.HTTP_404_NOT_FOUND
