from fastapi import status


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code or status.HTTP_500_INTERNAL_SERVER_ERROR
        self.details = details
        super().__init__(message)


class DatabaseException(AppException):
    """Exception raised for database-related errors."""

    def __init__(self, message: str = "A database error occurred."):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class AuthenticationException(AppException):
    """Exception raised for authentication-related errors."""

    def __init__(self, message: str = "Authentication failed."):
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class InvalidCredentialException(AuthenticationException):
    """Raised when a presented API key is missing or unknown. Not retryable."""

    def __init__(self, message: str = "unknown credential"):
        super().__init__(message)


class UpstreamUnavailableException(AppException):
    """Raised when the key store or the billing provider cannot be reached."""

    def __init__(
        self,
        message: str = "An upstream service is unavailable.",
        details: dict | None = None,
    ):
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE, details)


class NotFoundException(AppException):
    """Exception raised when a resource is not found."""

    def __init__(self, message: str = "Resource not found."):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class APIKeyNotFoundException(NotFoundException):
    def __init__(self, message: str = "API key not found"):
        super().__init__(message)


class TierNotFoundException(NotFoundException):
    def __init__(self, message: str = "Tier not found"):
        super().__init__(message)


class BadRequestException(AppException):
    """Exception raised for bad request errors."""

    def __init__(self, message: str = "Bad request."):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class StripeAPIException(AppException):
    """Exception raised for Stripe API errors."""

    def __init__(
        self,
        message: str = "A Stripe API error occurred.",
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        stripe_code: str | None = None,
        error_type: str = "api_error",
        param: str | None = None,
        request_id: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, status_code, details)
        self.stripe_code = stripe_code
        self.error_type = error_type
        self.param = param
        self.request_id = request_id


class RateLimitException(AppException):
    """Exception raised when Stripe rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Stripe rate limit exceeded. Please try again later.",
        details: dict | None = None,
    ):
        super().__init__(message, status.HTTP_429_TOO_MANY_REQUESTS, details)


__all__ = [
    "AppException",
    "DatabaseException",
    "AuthenticationException",
    "InvalidCredentialException",
    "UpstreamUnavailableException",
    "NotFoundException",
    "APIKeyNotFoundException",
    "TierNotFoundException",
    "BadRequestException",
    "StripeAPIException",
    "RateLimitException",
]
