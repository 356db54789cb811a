from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator


def coerce_timestamp_to_datetime(ts: int) -> datetime:
    """Converts a Unix timestamp (in seconds) to a datetime object."""
    if isinstance(ts, int):
        return datetime.fromtimestamp(ts)
    return ts


class ListResponse(BaseModel):
    has_more: bool
    url: str


class Product(BaseModel):
    id: str
    name: str
    description: str | None = None
    active: bool
    default_price: str | None = None
    metadata: dict[str, Any] = {}
    # Not part of Stripe's typed schema but returned for tagged products
    tags: list[str] = []
    tax_code: str | None = None
    created: Annotated[datetime, BeforeValidator(coerce_timestamp_to_datetime)]
    updated: Annotated[datetime, BeforeValidator(coerce_timestamp_to_datetime)]


class ProductListResponse(ListResponse):
    data: list[Product]


class Recurring(BaseModel):
    interval: Literal["day", "week", "month", "year"]
    interval_count: int = 1
    meter: str | None = None
    usage_type: Literal["licensed", "metered"] = "licensed"


class Price(BaseModel):
    id: str
    active: bool
    currency: str
    metadata: dict[str, Any] = {}
    nickname: str | None = None
    product: str | Product
    recurring: Recurring | None = None
    type: Literal["one_time", "recurring"]
    unit_amount: int | None = None
    created: Annotated[datetime, BeforeValidator(coerce_timestamp_to_datetime)]
    livemode: bool = False
    lookup_key: str | None = None

    @property
    def product_id(self) -> str:
        return self.product if isinstance(self.product, str) else self.product.id


class PriceListResponse(ListResponse):
    data: list[Price]


__all__ = [
    "ListResponse",
    "Price",
    "PriceListResponse",
    "Product",
    "ProductListResponse",
    "Recurring",
]
