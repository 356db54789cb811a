"""
Pytest configuration and core fixtures.

Provides a per-test database session with outer-transaction rollback, an
HTTP client with the session and cache dependencies overridden, and factories
for API keys and Stripe catalog objects.

By default tests run against an in-memory SQLite database (aiosqlite). Set
TEST_DATABASE_URL to run against PostgreSQL instead.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool


def pytest_configure(config):
    """Configure pytest with custom settings."""
    os.environ["ENVIRONMENT"] = "test"
    os.environ.setdefault("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

    # Point DATABASE_URL to TEST_DATABASE_URL so the app uses the test database
    os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]

    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (require a database)",
    )


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let pysqlite/aiosqlite emit BEGIN and SAVEPOINT as SQLAlchemy asks."""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Engine on the test database with every table created."""
    from app.apps.image_resizer.db.models import ApiKey  # noqa: F401
    from app.core.config import settings
    from app.core.db import Base

    url = settings.TEST_DATABASE_URL
    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        _enable_sqlite_savepoints(engine)
    else:
        engine = create_async_engine(url, echo=False, pool_pre_ping=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session with transaction rollback.

    Strategy:
    1. Create connection and start an outer transaction (for final rollback)
    2. Create session bound to that connection
    3. When routers call `async with session.begin():`, we intercept it to use
       begin_nested() which creates a savepoint within our outer transaction
    4. `session.commit()` (the usage meter commits its own debit) leaves the
       outer transaction alone because the session joined it
    5. After the test, we rollback the outer transaction
    """
    connection = await db_engine.connect()
    outer_transaction = await connection.begin()

    session = AsyncSession(
        bind=connection,
        expire_on_commit=False,
        autobegin=True,
    )

    def _patched_begin():
        return session.begin_nested()

    session.begin = _patched_begin

    try:
        yield session
    finally:
        await session.close()
        await outer_transaction.rollback()
        await connection.close()


@pytest.fixture
def app():
    """Create FastAPI application for testing."""
    from app.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
def response_cache():
    """Fresh in-memory response cache."""
    from app.core.services import ResponseCache

    return ResponseCache()


@pytest.fixture
def stripe_client() -> MagicMock:
    """Stripe client double; lists an empty catalog unless a test says otherwise."""
    from app.core.services.payment.stripe.types import (
        PriceListResponse,
        ProductListResponse,
    )

    client = MagicMock()
    client.list_products = AsyncMock(
        return_value=ProductListResponse(has_more=False, url="/v1/products", data=[])
    )
    client.list_prices = AsyncMock(
        return_value=PriceListResponse(has_more=False, url="/v1/prices", data=[])
    )
    return client


@pytest.fixture
def tier_catalog(stripe_client: MagicMock):
    """TierCatalog over the Stripe double with its own cache."""
    from app.apps.image_resizer.services.tier_catalog import TierCatalog
    from app.core.services import TTLCache

    return TierCatalog(
        stripe_client=stripe_client,
        cache=TTLCache(),
        ttl=3600,
        product_tag="image-resizer",
        publishable_key="pk_test_123",
    )


@pytest.fixture
async def client(
    app, db_session: AsyncSession, response_cache, tier_catalog
) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client with session and cache overrides.

    ASGITransport does not run the lifespan, so the caches it would put on
    app.state are injected through their dependencies instead.
    """
    from app.apps.image_resizer.dependencies import get_tier_catalog
    from app.core.dependencies import get_async_session, get_response_cache

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session
    app.dependency_overrides[get_response_cache] = lambda: response_cache
    app.dependency_overrides[get_tier_catalog] = lambda: tier_catalog

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def auth_headers(owner_id: UUID) -> dict[str, str]:
    """Bearer access token for ``owner_id``."""
    from app.core.utils import create_jwt_token

    access_token = create_jwt_token(
        data={"sub": str(owner_id), "type": "access"},
        expires_delta=timedelta(minutes=15),
    )
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def internal_api_headers() -> dict[str, str]:
    """Return headers with valid internal API key."""
    from app.core.config import settings

    return {"X-Internal-API-Key": settings.INTERNAL_API_SECRET}


@pytest.fixture
def make_api_key(db_session: AsyncSession, owner_id: UUID):
    """Factory persisting an ApiKey row in the test transaction.

    Example:
        api_key = await make_api_key(monthly_limit=5, current_usage=2,
                                     last_reset_month="2025-12")
    """
    from app.apps.image_resizer.db.models import ApiKey
    from app.core.enums import KeyType

    async def _make(**overrides) -> ApiKey:
        data = {
            "id": uuid4(),
            "user_id": owner_id,
            "name": "Test Key",
            "description": "",
            "key": f"dev_sk_{uuid4().hex}",
            "permissions": [],
            "key_type": KeyType.DEVELOPMENT,
            "limit_usage": True,
            "monthly_limit": 5,
            "current_usage": 0,
            "last_reset_month": None,
        }
        data.update(overrides)
        api_key = ApiKey(**data)
        db_session.add(api_key)
        await db_session.flush()
        return api_key

    return _make


@pytest.fixture
def make_product():
    """Factory for Stripe Product models."""
    from app.core.services.payment.stripe.types import Product

    def _make(product_id: str, name: str, **overrides) -> Product:
        now = int(datetime.now(timezone.utc).timestamp())
        data = {
            "id": product_id,
            "name": name,
            "active": True,
            "metadata": {},
            "tags": [],
            "created": now,
            "updated": now,
        }
        data.update(overrides)
        return Product.model_validate(data)

    return _make


@pytest.fixture
def make_price():
    """Factory for recurring Stripe Price models."""
    from app.core.services.payment.stripe.types import Price

    def _make(
        price_id: str,
        product_id: str,
        unit_amount: int,
        interval: str | None = "month",
        **overrides,
    ) -> Price:
        data = {
            "id": price_id,
            "active": True,
            "currency": "usd",
            "metadata": {},
            "product": product_id,
            "recurring": {"interval": interval} if interval else None,
            "type": "recurring" if interval else "one_time",
            "unit_amount": unit_amount,
            "created": int(datetime.now(timezone.utc).timestamp()),
        }
        data.update(overrides)
        return Price.model_validate(data)

    return _make


@pytest.fixture
def set_stripe_catalog(stripe_client: MagicMock):
    """Make the Stripe double list the given products and prices."""
    from app.core.services.payment.stripe.types import (
        PriceListResponse,
        ProductListResponse,
    )

    def _set(products: list, prices: list | None = None) -> None:
        stripe_client.list_products.return_value = ProductListResponse(
            has_more=False, url="/v1/products", data=products
        )
        stripe_client.list_prices.return_value = PriceListResponse(
            has_more=False, url="/v1/prices", data=prices or []
        )

    return _set
