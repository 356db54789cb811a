"""
Service tiers and their reconciliation with the Stripe catalog.

The static tier table defines identity, quota shape and feature flags. Live
Stripe products and prices only refresh the billing linkage
(``billing_product_id``, ``billing_price_id``, ``yearly_price``); a Stripe
outage or an empty catalog leaves the static data in place.

Example:
    >>> catalog = TierCatalog(Stripe, TTLCache(), ttl=3600)
    >>> tiers = await catalog.resolve_tiers()
    >>> pro = await catalog.resolve_tier_by_id("pro")
"""

from dataclasses import dataclass, field, replace
from typing import Any, Callable

from pydantic import ValidationError

from app.core.config import settings, tier_logger
from app.core.enums import BillingInterval, ResizeLimitType, SupportLevel
from app.core.exceptions.types import AppException
from app.core.services.payment.stripe.types import Price, Product
from app.core.services.ttl_cache import TTLCache


CATALOG_CACHE_KEY = "billing:catalog"
STRIPE_LIST_LIMIT = 100


@dataclass(frozen=True)
class TierConfig:
    """A service tier.

    Exactly one quota shape applies: ``resizes_per_day``, ``resizes_one_time``,
    or unlimited when both are None. Prices are in cents.
    """

    id: str
    name: str
    display_name: str
    max_batch_size: int
    supported_formats: tuple[str, ...]
    max_image_size: int  # MB
    has_watermark: bool
    has_api_access: bool
    has_team_support: bool
    has_analytics: bool
    support_level: SupportLevel
    resizes_per_day: int | None = None
    resizes_one_time: int | None = None
    billing_product_id: str | None = None
    billing_price_id: str | None = None
    monthly_price: int | None = None
    yearly_price: int | None = None

    def __post_init__(self) -> None:
        if self.resizes_per_day is not None and self.resizes_one_time is not None:
            raise ValueError(
                f"Tier {self.id!r} cannot have both a daily and a one-time quota"
            )

    @property
    def is_free(self) -> bool:
        return self.id == "free"


FREE_TIER = TierConfig(
    id="free",
    name="free",
    display_name="Free",
    resizes_one_time=10,
    max_batch_size=1,
    supported_formats=("jpg", "png"),
    max_image_size=5,
    has_watermark=True,
    has_api_access=False,
    has_team_support=False,
    has_analytics=False,
    support_level=SupportLevel.COMMUNITY,
    monthly_price=0,
)

BASIC_TIER = TierConfig(
    id="basic",
    name="basic",
    display_name="Basic",
    resizes_per_day=25,
    max_batch_size=5,
    supported_formats=("jpg", "png", "webp"),
    max_image_size=10,
    has_watermark=False,
    has_api_access=True,
    has_team_support=False,
    has_analytics=True,
    support_level=SupportLevel.EMAIL,
    monthly_price=499,
    yearly_price=4490,
)

PRO_TIER = TierConfig(
    id="pro",
    name="pro",
    display_name="Pro",
    resizes_per_day=100,
    max_batch_size=25,
    supported_formats=("jpg", "png", "webp", "svg", "pdf"),
    max_image_size=25,
    has_watermark=False,
    has_api_access=True,
    has_team_support=True,
    has_analytics=True,
    support_level=SupportLevel.PRIORITY,
    monthly_price=999,
    yearly_price=8990,
)

ENTERPRISE_TIER = TierConfig(
    id="enterprise",
    name="enterprise",
    display_name="Enterprise",
    max_batch_size=100,
    supported_formats=("jpg", "png", "webp", "svg", "pdf", "avif"),
    max_image_size=50,
    has_watermark=False,
    has_api_access=True,
    has_team_support=True,
    has_analytics=True,
    support_level=SupportLevel.PRIORITY,
    monthly_price=2499,
    yearly_price=22490,
)

# Free first, then ascending paid tiers
ALL_TIERS: tuple[TierConfig, ...] = (FREE_TIER, BASIC_TIER, PRO_TIER, ENTERPRISE_TIER)


@dataclass(frozen=True)
class ResizeLimit:
    type: ResizeLimitType
    limit: int | None = None


@dataclass
class BillingCatalog:
    """Image-resizer products and their recurring prices, as listed by Stripe."""

    products: list[Product] = field(default_factory=list)
    prices: list[Price] = field(default_factory=list)

    def has_product(self, product_id: str) -> bool:
        return any(p.id == product_id for p in self.products)


@dataclass
class ProductInfo:
    tiers: list[TierConfig]
    stripe_publishable_key: str


def get_tier_by_id(tier_id: str) -> TierConfig | None:
    """Look up a tier in the static table."""
    return next((tier for tier in ALL_TIERS if tier.id == tier_id), None)


def get_resize_limit(tier: TierConfig) -> ResizeLimit:
    if tier.resizes_one_time is not None:
        return ResizeLimit(type=ResizeLimitType.ONE_TIME, limit=tier.resizes_one_time)
    if tier.resizes_per_day is None:
        return ResizeLimit(type=ResizeLimitType.UNLIMITED)
    return ResizeLimit(type=ResizeLimitType.DAILY, limit=tier.resizes_per_day)


def format_price(cents: int | None) -> str:
    """
    Format a monthly price for display.

    Example:
        >>> format_price(499)
        '$4.99/month'
        >>> format_price(0)
        'Free'
    """
    if not cents:
        return "Free"
    return f"${cents / 100:.2f}/month"


# Product matching

ProductMatcher = Callable[[TierConfig, Product], bool]


def _matches_metadata_tier(tier: TierConfig, product: Product) -> bool:
    return product.metadata.get("tier") == tier.id


def _matches_tier_name(tier: TierConfig, product: Product) -> bool:
    return tier.name.lower() in (product.name or "").lower()


def _matches_display_name(tier: TierConfig, product: Product) -> bool:
    return tier.display_name.lower() in (product.name or "").lower()


# Highest rank first
PRODUCT_MATCH_STRATEGIES: list[tuple[str, ProductMatcher]] = [
    ("metadata_tier", _matches_metadata_tier),
    ("tier_name", _matches_tier_name),
    ("display_name", _matches_display_name),
]


def match_product_for_tier(
    tier: TierConfig,
    products: list[Product],
) -> Product | None:
    """
    Find the Stripe product backing a tier.

    Strategies in ``PRODUCT_MATCH_STRATEGIES`` are tried in rank order; the
    first strategy that matches any product decides, and within it the first
    matching product (in Stripe's listing order) wins.
    """
    for strategy_name, matches in PRODUCT_MATCH_STRATEGIES:
        for product in products:
            if matches(tier, product):
                tier_logger.debug(
                    f"Matched tier '{tier.id}' to product '{product.name}' "
                    f"({product.id}) by {strategy_name}"
                )
                return product
    return None


def _recurring_prices(
    product: Product,
    prices: list[Price],
    interval: BillingInterval,
) -> list[Price]:
    return [
        price
        for price in prices
        if price.product_id == product.id
        and price.recurring is not None
        and price.recurring.interval == interval.value
    ]


def _names_tier_or_unset(price: Price, tier: TierConfig) -> bool:
    price_tier = price.metadata.get("tier")
    return not price_tier or price_tier == tier.id


def select_monthly_price(
    tier: TierConfig,
    product: Product,
    prices: list[Price],
) -> Price | None:
    """
    Pick the monthly recurring price of ``product`` for ``tier``.

    Prefers a price whose metadata names the tier (or names no tier), then
    falls back to the first monthly recurring price of the product.
    """
    monthly = _recurring_prices(product, prices, BillingInterval.MONTH)
    preferred = next((p for p in monthly if _names_tier_or_unset(p, tier)), None)
    if preferred is not None:
        return preferred
    return monthly[0] if monthly else None


def select_yearly_price(
    tier: TierConfig,
    product: Product,
    prices: list[Price],
) -> Price | None:
    yearly = _recurring_prices(product, prices, BillingInterval.YEAR)
    return next((p for p in yearly if _names_tier_or_unset(p, tier)), None)


def overlay_tier(tier: TierConfig, catalog: BillingCatalog) -> TierConfig:
    """
    Return ``tier`` with billing linkage refreshed from ``catalog``.

    The free tier is never linked. Without a matching product the static tier
    is returned unchanged.
    """
    if tier.is_free:
        return tier

    product = match_product_for_tier(tier, catalog.products)
    if product is None:
        tier_logger.warning(
            f"No Stripe product found for tier '{tier.id}', using local configuration"
        )
        return tier

    monthly = select_monthly_price(tier, product, catalog.prices)
    yearly = select_yearly_price(tier, product, catalog.prices)

    if monthly is None:
        tier_logger.warning(
            f"No monthly price found for tier '{tier.id}' (product: {product.name})"
        )

    yearly_price = tier.yearly_price
    if yearly is not None and yearly.unit_amount is not None:
        yearly_price = yearly.unit_amount

    return replace(
        tier,
        billing_product_id=product.id,
        billing_price_id=monthly.id if monthly is not None else None,
        yearly_price=yearly_price,
    )


def is_image_resizer_product(product: Product, tag: str = "image-resizer") -> bool:
    """Whether a product belongs to the image resizer (tag, category or name)."""
    name = (product.name or "").lower()
    return (
        tag in product.tags
        or product.metadata.get("category") == tag
        or "image resizer" in name
        or "image-resizer" in name
    )


class TierCatalog:
    """
    Resolves the tier table against the live Stripe catalog.

    The Stripe listing is cached in the given TTLCache. Upstream failures are
    not cached; resolution falls back to the static tiers instead.

    Attributes:
        stripe_client: Object exposing ``list_products`` and ``list_prices``.
        cache: Cache holding the billing catalog.
        ttl: Catalog lifetime in seconds.
    """

    def __init__(
        self,
        stripe_client: Any,
        cache: TTLCache,
        ttl: float | None = None,
        product_tag: str | None = None,
        publishable_key: str | None = None,
    ) -> None:
        self.stripe_client = stripe_client
        self.cache = cache
        self.ttl = ttl if ttl is not None else settings.PRODUCT_CACHE_TTL
        self.product_tag = product_tag or settings.STRIPE_PRODUCT_TAG
        self.publishable_key = (
            publishable_key
            if publishable_key is not None
            else settings.STRIPE_PUBLISHABLE_KEY
        )
        # Last product each paid tier was linked to
        self._linked_products: dict[str, str] = {}

    async def fetch_catalog(self) -> BillingCatalog:
        """
        Return the cached billing catalog, listing it from Stripe on a miss.

        Raises:
            AppException: If Stripe is unreachable or rejects the request.
        """
        return await self.cache.get_or_fetch(
            CATALOG_CACHE_KEY, self.ttl, self._list_from_stripe
        )

    async def _list_from_stripe(self) -> BillingCatalog:
        product_page = await self.stripe_client.list_products(
            active=True, limit=STRIPE_LIST_LIMIT
        )
        tier_logger.info(
            f"Fetched {len(product_page.data)} active products from Stripe"
        )
        products = [
            p for p in product_page.data if is_image_resizer_product(p, self.product_tag)
        ]
        if products:
            for product in products:
                tier_logger.info(
                    f"  - {product.name} ({product.id}) tags={product.tags} "
                    f"category={product.metadata.get('category', 'N/A')} "
                    f"tier={product.metadata.get('tier', 'N/A')}"
                )
        else:
            tier_logger.warning(
                f"No image-resizer products found. Tag products with "
                f"'{self.product_tag}' or set metadata.category='{self.product_tag}'"
            )

        price_page = await self.stripe_client.list_prices(
            active=True, limit=STRIPE_LIST_LIMIT
        )
        product_ids = {p.id for p in products}
        prices = [
            price
            for price in price_page.data
            if price.recurring is not None and price.product_id in product_ids
        ]
        tier_logger.info(
            f"Found {len(prices)} recurring prices for image-resizer products"
        )
        return BillingCatalog(products=products, prices=prices)

    async def _catalog_or_empty(self) -> BillingCatalog:
        try:
            return await self.fetch_catalog()
        except (AppException, ValidationError) as e:
            tier_logger.error(
                f"Error fetching Stripe catalog, using local tier configuration: {e}"
            )
            return BillingCatalog()

    def _remember_links(self, tiers: list[TierConfig]) -> None:
        for tier in tiers:
            if tier.billing_product_id:
                self._linked_products[tier.id] = tier.billing_product_id

    async def resolve_tiers(self) -> list[TierConfig]:
        """
        Return every tier, free first, with billing linkage where Stripe has it.

        Never fails: without a catalog the static tiers are returned.
        """
        catalog = await self._catalog_or_empty()
        tiers = [overlay_tier(tier, catalog) for tier in ALL_TIERS]
        if not catalog.products:
            tier_logger.warning(
                "No image-resizer products found in Stripe - using local tier configuration"
            )
        self._remember_links(tiers)
        return tiers

    async def resolve_tier_by_id(self, tier_id: str) -> TierConfig | None:
        """
        Resolve one tier.

        Returns None for an unknown id, and for a tier whose previously linked
        Stripe product is no longer in the catalog. When Stripe cannot be
        reached the static tier is returned.
        """
        tier = get_tier_by_id(tier_id)
        if tier is None:
            return None

        try:
            catalog = await self.fetch_catalog()
        except (AppException, ValidationError) as e:
            tier_logger.error(
                f"Error fetching Stripe catalog for tier '{tier_id}': {e}"
            )
            return tier

        resolved = overlay_tier(tier, catalog)
        if resolved.billing_product_id:
            self._remember_links([resolved])
            return resolved

        previous = self._linked_products.get(tier.id)
        if previous and not catalog.has_product(previous):
            tier_logger.warning(
                f"Stripe product {previous} for tier '{tier_id}' no longer exists"
            )
            return None
        return resolved

    async def get_tier_by_billing_product_id(
        self, product_id: str
    ) -> TierConfig | None:
        tiers = await self.resolve_tiers()
        return next((t for t in tiers if t.billing_product_id == product_id), None)

    async def get_product_info(self) -> ProductInfo:
        """All tiers plus the publishable key, as served to the plugin."""
        return ProductInfo(
            tiers=await self.resolve_tiers(),
            stripe_publishable_key=self.publishable_key,
        )

    def invalidate(self) -> None:
        """Drop the cached catalog so the next call lists Stripe again."""
        self.cache.invalidate(CATALOG_CACHE_KEY)

    def teardown(self) -> None:
        self.cache.invalidate(CATALOG_CACHE_KEY)
        self._linked_products.clear()


__all__ = [
    "ALL_TIERS",
    "BASIC_TIER",
    "BillingCatalog",
    "CATALOG_CACHE_KEY",
    "ENTERPRISE_TIER",
    "format_price",
    "FREE_TIER",
    "get_resize_limit",
    "get_tier_by_id",
    "is_image_resizer_product",
    "match_product_for_tier",
    "overlay_tier",
    "PRO_TIER",
    "PRODUCT_MATCH_STRATEGIES",
    "ProductInfo",
    "ResizeLimit",
    "select_monthly_price",
    "select_yearly_price",
    "TierCatalog",
    "TierConfig",
]
