from fastapi import Request, status
from fastapi.responses import JSONResponse

from app.core.config import request_logger
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


async def general_exception_handler(request: Request, exc: AppException):
    """
    Handles general exceptions by returning a JSON response with the error message.

    Args:
        request: The request object.
        exc (AppException): The exception instance.

    Returns:
        JSONResponse: A response containing the error message and the exception's status code.
    """
    request_logger.error(f"GeneralException: {exc}")
    content: dict = {"detail": f"An unexpected error occurred.\n{str(exc)}"}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


async def database_exception_handler(request: Request, exc: DatabaseException):
    """
    Handles database exceptions by returning a JSON response with the error message.

    Args:
        request: The request object.
        exc (DatabaseException): The database exception instance.

    Returns:
        JSONResponse: A response containing the error message and status code 500.
    """
    request_logger.error(f"DatabaseException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": f"A database error occurred.\n{str(exc)}"},
    )


async def authentication_exception_handler(
    request: Request, exc: AuthenticationException
):
    """
    Handles authentication exceptions, including invalid API keys.

    Args:
        request: The request object.
        exc (AuthenticationException): The authentication exception instance.

    Returns:
        JSONResponse: A response containing the error message and status code 401.
    """
    request_logger.warning(f"AuthenticationException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def not_found_exception_handler(request: Request, exc: NotFoundException):
    request_logger.info(f"NotFoundException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
    )


async def bad_request_exception_handler(request: Request, exc: BadRequestException):
    request_logger.info(f"BadRequestException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
    )


async def upstream_unavailable_exception_handler(
    request: Request, exc: UpstreamUnavailableException
):
    """
    Handles upstream unavailability (key store or billing provider).

    Args:
        request: The request object.
        exc (UpstreamUnavailableException): The exception instance.

    Returns:
        JSONResponse: A response with status code 503 and a Retry-After hint.
    """
    request_logger.error(f"UpstreamUnavailableException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
        headers={"Retry-After": "30"},
    )


async def stripe_api_exception_handler(request: Request, exc: StripeAPIException):
    request_logger.error(
        f"StripeAPIException: {exc} (code={exc.stripe_code}, request_id={exc.request_id})"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
    )


async def stripe_rate_limit_exception_handler(
    request: Request, exc: RateLimitException
):
    request_logger.warning(f"Stripe RateLimitException: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc)},
    )


exception_schema = {
    status.HTTP_500_INTERNAL_SERVER_ERROR: {
        "description": "Internal Server Error",
        "content": {
            "application/json": {
                "example": {"detail": "Some internal server error message"},
            }
        },
    },
    status.HTTP_401_UNAUTHORIZED: {
        "description": "Authentication Error",
        "content": {
            "application/json": {
                "example": {"detail": "unknown credential"},
            }
        },
    },
    status.HTTP_429_TOO_MANY_REQUESTS: {
        "description": "Quota Exceeded",
        "content": {
            "application/json": {
                "example": {
                    "detail": "Rate limit exceeded. Usage: 5/5 requests this month",
                    "usage": 5,
                    "limit": 5,
                },
            }
        },
    },
    status.HTTP_503_SERVICE_UNAVAILABLE: {
        "description": "Upstream Unavailable",
        "content": {
            "application/json": {
                "example": {"detail": "lookup failed"},
            }
        },
    },
}


__all__ = [
    "general_exception_handler",
    "database_exception_handler",
    "authentication_exception_handler",
    "not_found_exception_handler",
    "bad_request_exception_handler",
    "upstream_unavailable_exception_handler",
    "stripe_api_exception_handler",
    "stripe_rate_limit_exception_handler",
    "exception_schema",
]
