"""
API key validation.

Resolves a presented secret to its ``ApiKey`` row. Validation never raises:
every failure, including an unreachable key store, comes back as an invalid
``KeyValidation`` so admission fails closed.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.apps.image_resizer.db.crud import api_key_db
from app.apps.image_resizer.db.models import ApiKey
from app.core.config import usage_logger
from app.core.enums import AdmissionDenial
from app.core.exceptions.types import DatabaseException
from app.core.utils import mask_api_key


MISSING_CREDENTIAL = "missing credential"
UNKNOWN_CREDENTIAL = "unknown credential"
LOOKUP_FAILED = "lookup failed"


@dataclass
class KeyValidation:
    """Outcome of validating a presented secret.

    A validation is valid exactly when it carries the matched row.

    Attributes:
        record: The matched row when valid.
        reason: Human-readable reason when invalid.
        kind: Failure category when invalid.
    """

    record: ApiKey | None = None
    reason: str | None = None
    kind: AdmissionDenial | None = None

    @property
    def valid(self) -> bool:
        return self.record is not None

    @classmethod
    def accepted(cls, record: ApiKey) -> "KeyValidation":
        return cls(record=record)

    @classmethod
    def rejected(cls, reason: str, kind: AdmissionDenial) -> "KeyValidation":
        return cls(reason=reason, kind=kind)


class KeyValidator:
    """Looks up presented secrets in the key store."""

    async def validate(
        self,
        session: AsyncSession,
        secret: str | None,
    ) -> KeyValidation:
        """
        Validate a presented API key.

        Args:
            session: Database session. Only read from.
            secret: The raw presented secret, possibly missing or blank.

        Returns:
            KeyValidation: Valid with the matching record, or invalid with one
            of ``"missing credential"``, ``"unknown credential"`` or
            ``"lookup failed"``.
        """
        if secret is None or not secret.strip():
            return KeyValidation.rejected(
                MISSING_CREDENTIAL, AdmissionDenial.INVALID_CREDENTIAL
            )

        try:
            record = await api_key_db.get_by_key(session, secret)
        except DatabaseException as e:
            usage_logger.error(
                f"API key lookup failed for {mask_api_key(secret)}: {e.message}"
            )
            return KeyValidation.rejected(
                LOOKUP_FAILED, AdmissionDenial.UPSTREAM_UNAVAILABLE
            )

        if record is None:
            usage_logger.info(f"Unknown API key presented: {mask_api_key(secret)}")
            return KeyValidation.rejected(
                UNKNOWN_CREDENTIAL, AdmissionDenial.INVALID_CREDENTIAL
            )

        return KeyValidation.accepted(record)


key_validator = KeyValidator()


__all__ = [
    "KeyValidation",
    "KeyValidator",
    "key_validator",
    "LOOKUP_FAILED",
    "MISSING_CREDENTIAL",
    "UNKNOWN_CREDENTIAL",
]
