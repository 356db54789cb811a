from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.cors import CORSMiddleware

from app.apps.image_resizer.routers import (
    api_keys_router,
    internal_router,
    plugin_router,
    validation_router,
)
from app.apps.image_resizer.services.tier_catalog import TierCatalog
from app.core.config import app_logger, settings
from app.core.dependencies import get_async_session
from app.core.exceptions.handlers import (
    authentication_exception_handler,
    bad_request_exception_handler,
    database_exception_handler,
    exception_schema,
    general_exception_handler,
    not_found_exception_handler,
    stripe_api_exception_handler,
    stripe_rate_limit_exception_handler,
    upstream_unavailable_exception_handler,
)
from app.core.exceptions.types import (
    AppException,
    AuthenticationException,
    BadRequestException,
    DatabaseException,
    NotFoundException,
    RateLimitException,
    StripeAPIException,
    UpstreamUnavailableException,
)
from app.core.services import RedisService, ResponseCache, Stripe, TTLCache
from app.core.utils import generate_openapi_json, write_to_file_async


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_logger.info("Starting application...")

    # Initialize Redis service (only backs the shared response cache)
    if settings.RESPONSE_CACHE_BACKEND == "redis":
        app_logger.info("Initializing Redis service...")
        await RedisService.init(settings.REDIS_URL)
        app_logger.info("Redis service initialized successfully.")

    # Initialize caches
    app_logger.info("Initializing caches...")
    app.state.response_cache = ResponseCache.create(
        backend=settings.RESPONSE_CACHE_BACKEND,
        namespace=settings.RESPONSE_CACHE_NAMESPACE,
    )
    app.state.tier_catalog = TierCatalog(
        stripe_client=Stripe,
        cache=TTLCache(),
        ttl=settings.PRODUCT_CACHE_TTL,
    )
    app_logger.info("Caches initialized successfully.")

    # Generate and write OpenAPI schema to file
    app_logger.info("Generating OpenAPI schema...")
    openapi_schema = generate_openapi_json(app)
    await write_to_file_async("openapi.json", openapi_schema)

    # Yield control back to the application
    yield

    # Cleanup on shutdown
    app_logger.info("Shutting down application...")

    await app.state.response_cache.teardown()
    app.state.tier_catalog.teardown()

    app_logger.info("Closing Stripe client...")
    await Stripe.aclose()

    app_logger.info("Closing Redis service...")
    await RedisService.aclose()
    app_logger.info("Redis service closed successfully.")


app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=settings.APP_DESCRIPTION,
    debug=settings.DEBUG,
    openapi_url="/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    responses=exception_schema,
    root_path_in_servers=False,
    servers=[
        {
            "url": f"{settings.API_DOMAIN}",
        },
    ],
)

# Register exception handlers (order matters - more specific first)
app.add_exception_handler(
    UpstreamUnavailableException, upstream_unavailable_exception_handler
)
app.add_exception_handler(AuthenticationException, authentication_exception_handler)
app.add_exception_handler(NotFoundException, not_found_exception_handler)
app.add_exception_handler(BadRequestException, bad_request_exception_handler)
app.add_exception_handler(DatabaseException, database_exception_handler)
# Stripe-specific exception handlers
app.add_exception_handler(RateLimitException, stripe_rate_limit_exception_handler)
app.add_exception_handler(StripeAPIException, stripe_api_exception_handler)
# Generic fallback
app.add_exception_handler(AppException, general_exception_handler)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(api_keys_router)
app.include_router(validation_router)
app.include_router(internal_router)
app.include_router(plugin_router)


@app.get("/", include_in_schema=False)
async def root(request: Request):
    base_url = request.base_url._url.rstrip("/")
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "documentations": {
            "swagger": f"{base_url}/docs",
            "redoc": f"{base_url}/redoc",
        },
        "version": settings.APP_VERSION,
    }


@app.head("/health", include_in_schema=False)
@app.get("/health")
async def health_check(session: Annotated[AsyncSession, Depends(get_async_session)]):
    """
    Health check endpoint to verify if the API is running.

    Checks:
        - Database connectivity
        - Redis connectivity (only when the response cache uses Redis)
    """
    redis_enabled = settings.RESPONSE_CACHE_BACKEND == "redis"
    health_status = {
        "status": "ok",
        "message": f"{settings.APP_NAME} is running.",
        "checks": {
            "database": "ok",
            "redis": "ok" if redis_enabled else "disabled",
        },
    }

    # Check database connectivity
    try:
        async with session.begin():
            result = await session.execute(text("SELECT 1"))
            if result.scalar() != 1:
                health_status["checks"]["database"] = "unhealthy"
                health_status["status"] = "degraded"
    except Exception as e:
        app_logger.error(f"Database health check failed: {e}")
        health_status["checks"]["database"] = "unhealthy"
        health_status["status"] = "degraded"

    # Check Redis connectivity
    if redis_enabled and not await RedisService.ping():
        health_status["checks"]["redis"] = "unhealthy"
        health_status["status"] = "degraded"

    # Return 503 if any check failed
    if health_status["status"] != "ok":
        raise AppException(
            "One or more health checks failed.",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=health_status,
        )

    return health_status
