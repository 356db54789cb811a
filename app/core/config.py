from functools import lru_cache
import logging
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.logger import setup_logger, init_sentry


class Settings(BaseSettings):
    # Application settings
    ENVIRONMENT: str = "development"  # Options: development, production
    API_DOMAIN: str = "http://localhost:8000"
    APP_NAME: str = "Image Resizer Keys"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = """
Key issuance, admission and tier resolution for the Image Resizer plugin and API.

## Key Capabilities

| Area | Description |
|------|-------------|
| **API Keys** | Owners create, list, update and revoke API keys scoped to their account. |
| **Admission** | Downstream services check a presented key and consume one unit of its monthly quota. |
| **Tiers** | Static service tiers reconciled with the live Stripe product catalog, cached for an hour. |
| **Plugin** | Public product listing for the Figma plugin and the pricing page. |

## Authentication

Owner endpoints require a **Bearer JWT** access token. Internal service-to-service endpoints use an
**API key** header (`X-Internal-API-Key`).
"""
    DEBUG: bool = False

    # CORS settings
    CORS_ALLOW_ORIGINS: list[str] = ["http://localhost:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True

    # JWT settings
    JWT_SECRET_KEY: str = "another_supersecret_key"
    JWT_ALGORITHM: str = "HS256"

    # Database settings
    DATABASE_URL: str
    TEST_DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"

    # Redis settings
    REDIS_URL: str = "redis://localhost:6379/0"

    # Cache settings
    RESPONSE_CACHE_BACKEND: Literal["memory", "redis"] = "memory"
    RESPONSE_CACHE_NAMESPACE: str = "cache:"
    PRODUCT_CACHE_TTL: int = 3600  # seconds
    PLUGIN_PRODUCTS_CACHE_TTL: int = 3600  # seconds

    # Monthly quota policy
    # Admission clamps every stored monthly_limit into [MIN, MAX].
    MONTHLY_LIMIT_MIN: int = 1
    MONTHLY_LIMIT_MAX: int = 10
    MONTHLY_LIMIT_FALLBACK: int = 10  # used when a row has no monthly_limit
    DEFAULT_MONTHLY_LIMIT: int = 5  # new keys
    UPDATE_DEFAULT_MONTHLY_LIMIT: int = 1000  # edits without an explicit limit
    USAGE_UPDATE_MAX_RETRIES: int = 3

    # Sentry settings
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    # Stripe settings
    STRIPE_API_KEY: str = "your_stripe_api_key"
    STRIPE_PUBLISHABLE_KEY: str = ""
    STRIPE_API_BASE_URL: str = "https://api.stripe.com"
    STRIPE_PRODUCT_TAG: str = "image-resizer"

    # Internal API settings (for downstream service communication)
    INTERNAL_API_SECRET: str = "internal_api_secret_change_in_production"

    model_config: SettingsConfigDict = SettingsConfigDict(  # type: ignore
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _validate_monthly_limit_range(self) -> "Settings":
        """Ensure the monthly limit clamp range is usable."""
        if self.MONTHLY_LIMIT_MIN < 1:
            raise ValueError("MONTHLY_LIMIT_MIN must be at least 1.")
        if self.MONTHLY_LIMIT_MIN > self.MONTHLY_LIMIT_MAX:
            raise ValueError(
                f"MONTHLY_LIMIT_MIN ({self.MONTHLY_LIMIT_MIN}) cannot exceed "
                f"MONTHLY_LIMIT_MAX ({self.MONTHLY_LIMIT_MAX})."
            )
        return self

    @model_validator(mode="after")
    def _validate_usage_retries(self) -> "Settings":
        """Ensure the usage debit is attempted at least once."""
        if self.USAGE_UPDATE_MAX_RETRIES < 1:
            raise ValueError("USAGE_UPDATE_MAX_RETRIES must be at least 1.")
        return self

    @model_validator(mode="after")
    def _validate_production_secrets(self) -> "Settings":
        """Ensure insecure default secrets are overridden in production."""
        if self.ENVIRONMENT != "production":
            return self

        insecure_defaults: dict[str, str] = {
            "JWT_SECRET_KEY": "another_supersecret_key",
            "INTERNAL_API_SECRET": "internal_api_secret_change_in_production",
            "STRIPE_API_KEY": "your_stripe_api_key",
        }

        still_default = [
            name
            for name, default_val in insecure_defaults.items()
            if getattr(self, name) == default_val
        ]

        if still_default:
            raise ValueError(
                f"ENVIRONMENT is 'production' but the following secrets still "
                f"have their insecure default values: {', '.join(still_default)}. "
                f"Set them via environment variables or .env file."
            )

        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()  # type: ignore


settings = get_settings()

# Initialize Sentry once globally (non-blocking, runs in background threads)
if not settings.DEBUG:
    init_sentry(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

# Each logger gets its own log file and Sentry tag for easy filtering
app_logger = setup_logger(
    name="app_logger",
    log_file="logs/app.log",
    level=logging.INFO,
    sentry_tag="app",
)
database_logger = setup_logger(
    name="database_logger",
    log_file="logs/database.log",
    level=logging.INFO,
    sentry_tag="database",
)
request_logger = setup_logger(
    name="request_logger",
    log_file="logs/requests.log",
    level=logging.INFO,
    sentry_tag="request",
)
auth_logger = setup_logger(
    name="auth_logger",
    log_file="logs/auth.log",
    level=logging.INFO,
    sentry_tag="auth",
)
redis_logger = setup_logger(
    name="redis_logger",
    log_file="logs/redis.log",
    level=logging.INFO,
    sentry_tag="redis",
)
stripe_logger = setup_logger(
    name="stripe_logger",
    log_file="logs/stripe.log",
    level=logging.INFO,
    sentry_tag="stripe",
)
usage_logger = setup_logger(
    name="usage_logger",
    log_file="logs/usage.log",
    level=logging.INFO,
    sentry_tag="usage",
)
tier_logger = setup_logger(
    name="tier_logger",
    log_file="logs/tier.log",
    level=logging.INFO,
    sentry_tag="tier",
)
cache_logger = setup_logger(
    name="cache_logger",
    log_file="logs/cache.log",
    level=logging.INFO,
    sentry_tag="cache",
)
api_key_logger = setup_logger(
    name="api_key_logger",
    log_file="logs/api_key.log",
    level=logging.INFO,
    sentry_tag="api_key",
)
utils_logger = setup_logger(
    name="utils_logger",
    log_file="logs/utils.log",
    level=logging.INFO,
    sentry_tag="utils",
)

__all__ = [
    "settings",
    "get_settings",
    "app_logger",
    "database_logger",
    "request_logger",
    "auth_logger",
    "redis_logger",
    "stripe_logger",
    "usage_logger",
    "tier_logger",
    "cache_logger",
    "api_key_logger",
    "utils_logger",
]
