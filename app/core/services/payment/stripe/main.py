import asyncio
import random
from typing import Any

import httpx
from fastapi import status as http_status

from app.core.config import settings, stripe_logger
from app.core.exceptions.types import (
    AppException,
    RateLimitException,
    StripeAPIException,
)
from app.core.services.payment.stripe.types import (
    PriceListResponse,
    ProductListResponse,
)


class Stripe:
    """Read-only Stripe REST client for the product and price catalog."""

    _api_key: str = settings.STRIPE_API_KEY or ""
    _base_url: str = settings.STRIPE_API_BASE_URL or "https://api.stripe.com"
    _client: httpx.AsyncClient | None = None

    # Bounded retries + backoff
    _BACKOFF_BASE: float = 1.0
    _BACKOFF_MAX: float = 8.0
    _JITTER: float = 0.2  # +/-20%

    @classmethod
    def _check_api_key(cls) -> None:
        """Validate that a Stripe API key has been configured.

        Raises
        ------
            AppException
                503 when STRIPE_API_KEY is missing or blank, so catalog
                callers can treat it like any other upstream outage.
        """
        if not cls._api_key.strip():
            raise AppException(
                message="Stripe API key is not set. Please set STRIPE_API_KEY in the environment variables or .env file.",
                status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            )

    @classmethod
    def _init_client(cls) -> None:
        """Lazily construct the httpx client used to talk to Stripe.

        Idempotent. The caller is responsible for ``aclose()`` at shutdown.
        """
        cls._check_api_key()
        if cls._client is None:
            cls._client = httpx.AsyncClient(
                base_url=cls._base_url,
                timeout=httpx.Timeout(30.0),
                auth=httpx.BasicAuth(cls._api_key, ""),
            )
            stripe_logger.info("Stripe HTTP client initialized")

    @classmethod
    def _compute_backoff(cls, attempt: int) -> float:
        """
        Compute the backoff time with jitter for a given retry attempt.

        Parameters
        ----------
            attempt : int
                The current retry attempt number (1-based).

        Returns
        -------
            float
                The computed backoff time in seconds.
        """
        base = min(cls._BACKOFF_BASE * (2 ** (attempt - 1)), cls._BACKOFF_MAX)
        jitter = random.uniform(1 - cls._JITTER, 1 + cls._JITTER)
        return base * jitter

    @classmethod
    async def _request(
        cls,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        max_attempts: int = 3,
    ) -> dict[str, Any] | str:
        """
        Makes an asynchronous HTTP request to the Stripe API with retry logic.

        - Retries 5xx and 429 responses and network errors with exponential backoff
        - Does NOT retry other 4xx errors
        - Logs Stripe's Request-Id for debugging

        Raises
        ------
            RateLimitException
                For rate limiting errors after all retries exhausted
            StripeAPIException
                For other Stripe API errors with structured error details
            AppException
                For network errors after all retries exhausted (503)
        """
        if cls._client is None:
            cls._init_client()

        assert cls._client is not None, "HTTP client should be initialized"

        for attempt in range(1, max_attempts + 1):
            try:
                resp: httpx.Response = await cls._client.request(
                    method, endpoint, params=params
                )
                resp.raise_for_status()

                try:
                    body = resp.json()
                except ValueError:
                    body = resp.text

                stripe_logger.info(
                    f"Stripe {method} {endpoint} succeeded (Request-Id: {resp.headers.get('Request-Id', 'N/A')})"
                )
                return body

            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                request_id = exc.response.headers.get("Request-Id")

                try:
                    err_body = exc.response.json()
                except ValueError:
                    err_body = {"error": {"message": exc.response.text}}

                error_data = err_body.get("error", {})
                error_type = error_data.get("type")
                error_code = error_data.get("code")
                error_message = error_data.get("message", f"Stripe API error {status}")
                error_param = error_data.get("param")

                stripe_logger.error(
                    f"Stripe error: {status} {error_type or 'unknown'} | "
                    f"Code: {error_code or 'N/A'} | Request-Id: {request_id or 'N/A'} | "
                    f"Message: {error_message}"
                )

                if 500 <= status < 600:
                    wait = cls._compute_backoff(attempt)
                    stripe_logger.warning(
                        f"5xx from Stripe; attempt {attempt}/{max_attempts}; "
                        f"wait={wait:.1f}s; Request-Id={request_id}"
                    )
                    if attempt < max_attempts:
                        await asyncio.sleep(wait)
                        continue

                    raise StripeAPIException(
                        message=error_message,
                        status_code=status,
                        stripe_code=error_code,
                        error_type=error_type or "api_error",
                        request_id=request_id,
                        details=err_body,
                    ) from exc

                elif status == 429:
                    wait = cls._compute_backoff(attempt)
                    stripe_logger.warning(
                        f"Rate limited by Stripe; attempt {attempt}/{max_attempts}; "
                        f"wait={wait:.1f}s; Request-Id={request_id}"
                    )
                    if attempt < max_attempts:
                        await asyncio.sleep(wait)
                        continue

                    raise RateLimitException(
                        message=error_message or "Too many requests to Stripe API",
                        details={
                            "code": error_code,
                            "type": error_type or "rate_limit_error",
                            "request_id": request_id,
                        },
                    ) from exc

                raise StripeAPIException(
                    message=error_message,
                    status_code=status,
                    stripe_code=error_code,
                    error_type=error_type or "api_error",
                    param=error_param,
                    request_id=request_id,
                    details=err_body,
                ) from exc

            except httpx.RequestError as exc:
                wait = cls._compute_backoff(attempt)
                stripe_logger.warning(
                    f"Network error; attempt {attempt}/{max_attempts}; "
                    f"wait={wait:.1f}s; error={exc.__class__.__name__}: {exc}"
                )
                if attempt < max_attempts:
                    await asyncio.sleep(wait)
                    continue

                stripe_logger.error(
                    f"Network error after {max_attempts} attempts: {exc}"
                )
                raise AppException(
                    message="Unable to connect to Stripe. Please try again later.",
                    status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
                    details={"error": str(exc), "type": "network_error"},
                ) from exc

        raise AppException(
            message="Unexpected error in Stripe request loop",
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @classmethod
    async def aclose(cls) -> None:
        """Close the underlying HTTP client if it was initialized."""
        if cls._client is not None:
            await cls._client.aclose()
            cls._client = None
            stripe_logger.info("Stripe HTTP client closed")

    @classmethod
    async def list_products(
        cls,
        *,
        active: bool | None = None,
        limit: int = 10,
        starting_after: str | None = None,
    ) -> ProductListResponse:
        """
        Retrieve a page of products (GET /v1/products).

        Parameters
        ----------
        active : bool | None
            If set, filter products by their active status.
        limit : int
            Maximum number of products to return, 1 to 100.
        starting_after : str | None
            Pagination cursor.
        """
        params: dict[str, Any] = {"limit": limit}
        if active is not None:
            params["active"] = str(active).lower()
        if starting_after is not None:
            params["starting_after"] = starting_after
        body = await cls._request("GET", "/v1/products", params=params)
        return ProductListResponse.model_validate(body)

    @classmethod
    async def list_prices(
        cls,
        *,
        active: bool | None = None,
        product: str | None = None,
        limit: int = 10,
        starting_after: str | None = None,
    ) -> PriceListResponse:
        """
        Retrieve a page of prices (GET /v1/prices).

        Parameters
        ----------
        active : bool | None
            If set, filter prices by their active status.
        product : str | None
            If set, only prices of this product.
        limit : int
            Maximum number of prices to return, 1 to 100.
        starting_after : str | None
            Pagination cursor.
        """
        params: dict[str, Any] = {"limit": limit}
        if active is not None:
            params["active"] = str(active).lower()
        if product is not None:
            params["product"] = product
        if starting_after is not None:
            params["starting_after"] = starting_after
        body = await cls._request("GET", "/v1/prices", params=params)
        return PriceListResponse.model_validate(body)


__all__ = ["Stripe"]
