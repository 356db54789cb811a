from enum import Enum


class KeyType(str, Enum):
    """Environment an API key is issued for. Drives the key prefix."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class AdmissionDenial(str, Enum):
    """Why an admission check was denied."""

    INVALID_CREDENTIAL = "invalid_credential"  # missing or unknown key
    QUOTA_EXCEEDED = "quota_exceeded"  # resets next calendar month
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"  # key store unreachable
    PERSISTENCE_WRITE_FAILED = "persistence_write_failed"


class SupportLevel(str, Enum):
    COMMUNITY = "community"
    EMAIL = "email"
    PRIORITY = "priority"


class ResizeLimitType(str, Enum):
    """Quota shape of a service tier."""

    ONE_TIME = "oneTime"
    DAILY = "daily"
    UNLIMITED = "unlimited"


class BillingInterval(str, Enum):
    MONTH = "month"
    YEAR = "year"
