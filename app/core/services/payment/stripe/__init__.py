from app.core.services.payment.stripe.main import Stripe
from app.core.services.payment.stripe.types import (
    Price,
    PriceListResponse,
    Product,
    ProductListResponse,
    Recurring,
)

__all__ = [
    "Price",
    "PriceListResponse",
    "Product",
    "ProductListResponse",
    "Recurring",
    "Stripe",
]
