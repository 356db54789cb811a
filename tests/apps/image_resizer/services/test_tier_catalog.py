"""
Tests for the tier table and its reconciliation with the Stripe catalog.

Stripe is replaced by the ``stripe_client`` double from conftest; the
catalog is filled with ``set_stripe_catalog``.

Run tests:
    pytest tests/apps/image_resizer/services/test_tier_catalog.py -v

Run with coverage:
    pytest tests/apps/image_resizer/services/test_tier_catalog.py --cov=app.apps.image_resizer.services.tier_catalog --cov-report=term-missing -v
"""

import pytest

from app.apps.image_resizer.services.tier_catalog import (
    ALL_TIERS,
    BASIC_TIER,
    BillingCatalog,
    ENTERPRISE_TIER,
    format_price,
    FREE_TIER,
    get_resize_limit,
    get_tier_by_id,
    is_image_resizer_product,
    match_product_for_tier,
    overlay_tier,
    PRO_TIER,
    select_monthly_price,
    select_yearly_price,
    TierConfig,
)
from app.core.enums import ResizeLimitType, SupportLevel
from app.core.exceptions.types import AppException


RESIZER = {"category": "image-resizer"}


class TestStaticTiers:

    def test_order_is_free_first(self):
        assert [t.id for t in ALL_TIERS] == ["free", "basic", "pro", "enterprise"]

    def test_get_tier_by_id(self):
        assert get_tier_by_id("pro") is PRO_TIER
        assert get_tier_by_id("platinum") is None

    def test_free_tier_is_unlinked(self):
        assert FREE_TIER.is_free
        assert FREE_TIER.billing_product_id is None
        assert FREE_TIER.monthly_price == 0

    def test_both_quota_shapes_rejected(self):
        with pytest.raises(ValueError):
            TierConfig(
                id="broken",
                name="broken",
                display_name="Broken",
                max_batch_size=1,
                supported_formats=("jpg",),
                max_image_size=1,
                has_watermark=False,
                has_api_access=False,
                has_team_support=False,
                has_analytics=False,
                support_level=SupportLevel.COMMUNITY,
                resizes_per_day=5,
                resizes_one_time=5,
            )


class TestResizeLimit:

    def test_one_time(self):
        limit = get_resize_limit(FREE_TIER)
        assert limit.type == ResizeLimitType.ONE_TIME
        assert limit.limit == 10

    def test_daily(self):
        limit = get_resize_limit(PRO_TIER)
        assert limit.type == ResizeLimitType.DAILY
        assert limit.limit == 100

    def test_unlimited(self):
        limit = get_resize_limit(ENTERPRISE_TIER)
        assert limit.type == ResizeLimitType.UNLIMITED
        assert limit.limit is None


class TestFormatPrice:

    @pytest.mark.parametrize(
        "cents, expected",
        [(None, "Free"), (0, "Free"), (499, "$4.99/month"), (2499, "$24.99/month")],
    )
    def test_format(self, cents, expected):
        assert format_price(cents) == expected


class TestProductMatching:

    def test_metadata_beats_name(self, make_product):
        by_name = make_product("prod_a", "Pro Plan (legacy)", metadata=RESIZER)
        by_metadata = make_product(
            "prod_b", "Image Resizer Premium", metadata={**RESIZER, "tier": "pro"}
        )

        matched = match_product_for_tier(PRO_TIER, [by_name, by_metadata])

        assert matched is by_metadata

    def test_name_match_is_case_insensitive(self, make_product):
        product = make_product("prod_basic", "IMAGE RESIZER BASIC")

        assert match_product_for_tier(BASIC_TIER, [product]) is product

    def test_first_product_in_listing_order_wins(self, make_product):
        first = make_product("prod_1", "Basic monthly")
        second = make_product("prod_2", "Basic plus")

        assert match_product_for_tier(BASIC_TIER, [first, second]) is first

    def test_no_match(self, make_product):
        product = make_product("prod_x", "Something else")

        assert match_product_for_tier(ENTERPRISE_TIER, [product]) is None


class TestPriceSelection:

    def test_monthly_prefers_tier_metadata(self, make_product, make_price):
        product = make_product("prod_pro", "Image Resizer Pro")
        other = make_price("price_other", "prod_pro", 1999, metadata={"tier": "enterprise"})
        own = make_price("price_own", "prod_pro", 999, metadata={"tier": "pro"})

        assert select_monthly_price(PRO_TIER, product, [other, own]) is own

    def test_monthly_falls_back_to_first(self, make_product, make_price):
        product = make_product("prod_pro", "Image Resizer Pro")
        other = make_price("price_other", "prod_pro", 1999, metadata={"tier": "basic"})

        assert select_monthly_price(PRO_TIER, product, [other]) is other

    def test_monthly_ignores_yearly_and_foreign(self, make_product, make_price):
        product = make_product("prod_pro", "Image Resizer Pro")
        yearly = make_price("price_y", "prod_pro", 8990, interval="year")
        foreign = make_price("price_f", "prod_other", 999)

        assert select_monthly_price(PRO_TIER, product, [yearly, foreign]) is None

    def test_yearly(self, make_product, make_price):
        product = make_product("prod_pro", "Image Resizer Pro")
        monthly = make_price("price_m", "prod_pro", 999)
        yearly = make_price("price_y", "prod_pro", 9990, interval="year")

        assert select_yearly_price(PRO_TIER, product, [monthly, yearly]) is yearly


class TestOverlayTier:

    def test_free_tier_unchanged(self, make_product):
        catalog = BillingCatalog(products=[make_product("prod_free", "Free")])

        assert overlay_tier(FREE_TIER, catalog) is FREE_TIER

    def test_no_product_returns_static(self):
        assert overlay_tier(PRO_TIER, BillingCatalog()) is PRO_TIER

    def test_links_product_and_prices(self, make_product, make_price):
        product = make_product("prod_pro", "Image Resizer Pro")
        monthly = make_price("price_pro_m", "prod_pro", 999)
        yearly = make_price("price_pro_y", "prod_pro", 9990, interval="year")

        tier = overlay_tier(
            PRO_TIER, BillingCatalog(products=[product], prices=[monthly, yearly])
        )

        assert tier.billing_product_id == "prod_pro"
        assert tier.billing_price_id == "price_pro_m"
        assert tier.yearly_price == 9990
        # Identity and quota come from the static table
        assert tier.monthly_price == PRO_TIER.monthly_price
        assert tier.resizes_per_day == PRO_TIER.resizes_per_day
        assert PRO_TIER.billing_product_id is None

    def test_product_without_prices(self, make_product):
        product = make_product("prod_pro", "Image Resizer Pro")

        tier = overlay_tier(PRO_TIER, BillingCatalog(products=[product]))

        assert tier.billing_product_id == "prod_pro"
        assert tier.billing_price_id is None
        assert tier.yearly_price == PRO_TIER.yearly_price


class TestIsImageResizerProduct:

    def test_tag(self, make_product):
        assert is_image_resizer_product(
            make_product("p", "Pro", tags=["image-resizer"])
        )

    def test_category(self, make_product):
        assert is_image_resizer_product(make_product("p", "Pro", metadata=RESIZER))

    @pytest.mark.parametrize("name", ["Image Resizer Pro", "image-resizer basic"])
    def test_name(self, make_product, name):
        assert is_image_resizer_product(make_product("p", name))

    def test_unrelated(self, make_product):
        assert not is_image_resizer_product(make_product("p", "Video Converter Pro"))


class TestResolveTiers:

    @pytest.mark.asyncio
    async def test_empty_catalog_uses_static_tiers(self, tier_catalog):
        tiers = await tier_catalog.resolve_tiers()

        assert tiers == list(ALL_TIERS)

    @pytest.mark.asyncio
    async def test_overlays_live_catalog(
        self, tier_catalog, set_stripe_catalog, make_product, make_price
    ):
        set_stripe_catalog(
            [
                make_product("prod_basic", "Image Resizer Basic"),
                make_product("prod_pro", "Image Resizer Pro"),
                make_product("prod_video", "Video Converter Pro"),
            ],
            [
                make_price("price_basic", "prod_basic", 499),
                make_price("price_pro", "prod_pro", 999),
                make_price("price_video", "prod_video", 999),
            ],
        )

        tiers = {t.id: t for t in await tier_catalog.resolve_tiers()}

        assert tiers["free"] is FREE_TIER
        assert tiers["basic"].billing_price_id == "price_basic"
        assert tiers["pro"].billing_product_id == "prod_pro"
        assert tiers["enterprise"].billing_product_id is None

    @pytest.mark.asyncio
    async def test_lists_active_products_and_prices(self, tier_catalog, stripe_client):
        await tier_catalog.resolve_tiers()

        stripe_client.list_products.assert_awaited_once_with(active=True, limit=100)
        stripe_client.list_prices.assert_awaited_once_with(active=True, limit=100)

    @pytest.mark.asyncio
    async def test_catalog_is_cached(self, tier_catalog, stripe_client):
        await tier_catalog.resolve_tiers()
        await tier_catalog.resolve_tiers()

        stripe_client.list_products.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stripe_failure_falls_back_and_is_not_cached(
        self, tier_catalog, stripe_client
    ):
        stripe_client.list_products.side_effect = AppException(
            "Unable to connect to Stripe.", status_code=503
        )

        tiers = await tier_catalog.resolve_tiers()

        assert tiers == list(ALL_TIERS)

        stripe_client.list_products.side_effect = None
        await tier_catalog.resolve_tiers()

        assert stripe_client.list_products.await_count == 2

    @pytest.mark.asyncio
    async def test_invalidate_refetches(self, tier_catalog, stripe_client):
        await tier_catalog.resolve_tiers()
        tier_catalog.invalidate()
        await tier_catalog.resolve_tiers()

        assert stripe_client.list_products.await_count == 2


class TestResolveTierById:

    @pytest.mark.asyncio
    async def test_unknown_tier(self, tier_catalog, stripe_client):
        assert await tier_catalog.resolve_tier_by_id("platinum") is None
        stripe_client.list_products.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_static_tier_without_product(self, tier_catalog):
        assert await tier_catalog.resolve_tier_by_id("basic") == BASIC_TIER

    @pytest.mark.asyncio
    async def test_linked_tier(
        self, tier_catalog, set_stripe_catalog, make_product, make_price
    ):
        set_stripe_catalog(
            [make_product("prod_pro", "Image Resizer Pro")],
            [make_price("price_pro", "prod_pro", 999)],
        )

        tier = await tier_catalog.resolve_tier_by_id("pro")

        assert tier.billing_product_id == "prod_pro"
        assert tier.billing_price_id == "price_pro"

    @pytest.mark.asyncio
    async def test_removed_product_is_not_found(
        self, tier_catalog, set_stripe_catalog, make_product
    ):
        set_stripe_catalog([make_product("prod_pro", "Image Resizer Pro")])
        assert (await tier_catalog.resolve_tier_by_id("pro")).billing_product_id

        set_stripe_catalog([])
        tier_catalog.invalidate()

        assert await tier_catalog.resolve_tier_by_id("pro") is None
        assert await tier_catalog.resolve_tier_by_id("basic") == BASIC_TIER

    @pytest.mark.asyncio
    async def test_outage_returns_static_tier(
        self, tier_catalog, set_stripe_catalog, stripe_client, make_product
    ):
        set_stripe_catalog([make_product("prod_pro", "Image Resizer Pro")])
        await tier_catalog.resolve_tier_by_id("pro")

        tier_catalog.invalidate()
        stripe_client.list_products.side_effect = AppException("down", status_code=503)

        assert await tier_catalog.resolve_tier_by_id("pro") == PRO_TIER


class TestLookups:

    @pytest.mark.asyncio
    async def test_get_tier_by_billing_product_id(
        self, tier_catalog, set_stripe_catalog, make_product
    ):
        set_stripe_catalog([make_product("prod_pro", "Image Resizer Pro")])

        tier = await tier_catalog.get_tier_by_billing_product_id("prod_pro")

        assert tier.id == "pro"
        assert await tier_catalog.get_tier_by_billing_product_id("prod_x") is None

    @pytest.mark.asyncio
    async def test_get_product_info(self, tier_catalog):
        info = await tier_catalog.get_product_info()

        assert len(info.tiers) == 4
        assert info.stripe_publishable_key == "pk_test_123"

    @pytest.mark.asyncio
    async def test_teardown_forgets_links(
        self, tier_catalog, set_stripe_catalog, make_product
    ):
        set_stripe_catalog([make_product("prod_pro", "Image Resizer Pro")])
        await tier_catalog.resolve_tier_by_id("pro")

        tier_catalog.teardown()
        set_stripe_catalog([])

        assert await tier_catalog.resolve_tier_by_id("pro") == PRO_TIER
