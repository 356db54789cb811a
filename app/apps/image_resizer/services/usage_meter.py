"""
Monthly usage metering for API keys.

Usage flow:
1. A caller presents an API key to /internal/usage/check
2. UsageMeter validates the key and computes the effective usage for the
   current calendar month (UTC)
3. If the request fits in the clamped monthly limit, the counter is debited
   with a conditional update on the values that were read
4. The caller receives an AdmissionResult; denials never raise

Counters reset lazily: a row whose ``last_reset_month`` is not the current
month counts as 0 usage, and the first admitted request of a month rewrites
``last_reset_month``.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.apps.image_resizer.db.crud import api_key_db
from app.apps.image_resizer.db.models import ApiKey
from app.apps.image_resizer.services.key_validator import (
    KeyValidation,
    KeyValidator,
    key_validator,
)
from app.core.config import settings, usage_logger
from app.core.enums import AdmissionDenial
from app.core.exceptions.types import DatabaseException
from app.core.utils import mask_api_key


UPDATE_FAILED = "failed to update usage"


def current_month_key(now: datetime) -> str:
    """Return the ``YYYY-MM`` key of ``now`` in UTC. Naive datetimes are taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m")


def clamp_monthly_limit(monthly_limit: int | None) -> int:
    """
    Clamp a stored monthly limit into the configured operating range.

    A missing limit resolves to ``MONTHLY_LIMIT_FALLBACK`` first. The result
    always lies in ``[MONTHLY_LIMIT_MIN, MONTHLY_LIMIT_MAX]``.

    Example:
        >>> clamp_monthly_limit(0)
        1
        >>> clamp_monthly_limit(500)
        10
    """
    if monthly_limit is None:
        monthly_limit = settings.MONTHLY_LIMIT_FALLBACK
    return max(
        settings.MONTHLY_LIMIT_MIN,
        min(settings.MONTHLY_LIMIT_MAX, monthly_limit),
    )


def effective_usage(record: ApiKey, month: str) -> int:
    """Usage counted against ``month``; a counter from another month counts as 0."""
    if record.last_reset_month is None or record.last_reset_month != month:
        return 0
    return record.current_usage or 0


@dataclass
class AdmissionResult:
    """Outcome of an admission check.

    Attributes:
        admitted: Whether the request may proceed.
        usage: Counter after the debit when admitted; the stored counter on a
            quota denial; 0 when usage is not tracked.
        limit: Clamped monthly limit; 0 when usage is not tracked.
        reason: Human-readable reason when denied.
        kind: Denial category when denied.
    """

    admitted: bool
    usage: int | None = None
    limit: int | None = None
    reason: str | None = None
    kind: AdmissionDenial | None = None

    @classmethod
    def admit(cls, usage: int, limit: int) -> "AdmissionResult":
        return cls(admitted=True, usage=usage, limit=limit)

    @classmethod
    def deny(
        cls,
        reason: str,
        kind: AdmissionDenial,
        usage: int | None = None,
        limit: int | None = None,
    ) -> "AdmissionResult":
        return cls(admitted=False, usage=usage, limit=limit, reason=reason, kind=kind)


@dataclass
class UsageInfo:
    """Read-only view of a key's usage for the current month."""

    usage: int
    limit: int
    month: str
    limit_usage: bool


class UsageMeter:
    """Service for monthly quota checks and debits."""

    def __init__(self, validator: KeyValidator = key_validator) -> None:
        self.validator = validator

    async def check_and_consume(
        self,
        session: AsyncSession,
        secret: str | None,
        now: datetime | None = None,
        commit_self: bool = True,
    ) -> AdmissionResult:
        """
        Validate a key and debit one request from its monthly quota.

        The debit is a compare-and-swap on ``(last_reset_month, current_usage)``
        as read. When a concurrent request wins the swap, the whole decision is
        re-run against the fresh row, up to ``USAGE_UPDATE_MAX_RETRIES`` times.

        Args:
            session: Database session.
            secret: The presented API key.
            now: Current time. Defaults to ``datetime.now(timezone.utc)``.
            commit_self: Whether each debit commits the transaction.

        Returns:
            AdmissionResult: Never raises; failures are denials.
        """
        now = now or datetime.now(timezone.utc)
        month = current_month_key(now)
        max_attempts = settings.USAGE_UPDATE_MAX_RETRIES

        for attempt in range(1, max_attempts + 1):
            validation = await self.validator.validate(session, secret)
            record = validation.record
            if record is None:
                return AdmissionResult.deny(validation.reason, validation.kind)

            if not record.limit_usage:
                return AdmissionResult.admit(usage=0, limit=0)

            limit = clamp_monthly_limit(record.monthly_limit)
            tentative = effective_usage(record, month) + 1

            if tentative > limit:
                stored = record.current_usage or 0
                usage_logger.info(
                    f"Quota exceeded for {mask_api_key(secret)}: {stored}/{limit} in {month}"
                )
                return AdmissionResult.deny(
                    f"Rate limit exceeded. Usage: {stored}/{limit} requests this month",
                    AdmissionDenial.QUOTA_EXCEEDED,
                    usage=stored,
                    limit=limit,
                )

            try:
                updated = await api_key_db.update_usage_if_unchanged(
                    session,
                    key=record.key,
                    expected_month=record.last_reset_month,
                    expected_usage=record.current_usage,
                    new_usage=tentative,
                    new_month=month,
                    updated_at=now,
                    commit_self=commit_self,
                )
            except DatabaseException as e:
                usage_logger.error(
                    f"Usage debit failed for {mask_api_key(secret)}: {e.message}"
                )
                await self._rollback(session)
                return AdmissionResult.deny(
                    UPDATE_FAILED, AdmissionDenial.PERSISTENCE_WRITE_FAILED
                )

            if updated:
                usage_logger.debug(
                    f"Admitted {mask_api_key(secret)}: {tentative}/{limit} in {month}"
                )
                return AdmissionResult.admit(usage=tentative, limit=limit)

            usage_logger.warning(
                f"Usage debit conflict for {mask_api_key(secret)}; "
                f"attempt {attempt}/{max_attempts}"
            )

        usage_logger.error(
            f"Usage debit for {mask_api_key(secret)} gave up after {max_attempts} conflicts"
        )
        return AdmissionResult.deny(
            UPDATE_FAILED, AdmissionDenial.PERSISTENCE_WRITE_FAILED
        )

    async def get_usage_info(
        self,
        session: AsyncSession,
        secret: str | None,
        now: datetime | None = None,
    ) -> UsageInfo | KeyValidation:
        """
        Report a key's effective usage for the current month without writing.

        Returns:
            UsageInfo for a valid key, otherwise the invalid KeyValidation.
        """
        validation = await self.validator.validate(session, secret)
        record = validation.record
        if record is None:
            return validation

        month = current_month_key(now or datetime.now(timezone.utc))
        return UsageInfo(
            usage=effective_usage(record, month),
            limit=clamp_monthly_limit(record.monthly_limit),
            month=month,
            limit_usage=record.limit_usage,
        )

    @staticmethod
    async def _rollback(session: AsyncSession) -> None:
        try:
            await session.rollback()
        except SQLAlchemyError as e:
            usage_logger.warning(f"Rollback after failed usage debit failed: {e}")


usage_meter = UsageMeter()


__all__ = [
    "AdmissionResult",
    "clamp_monthly_limit",
    "current_month_key",
    "effective_usage",
    "UsageInfo",
    "UsageMeter",
    "usage_meter",
    "UPDATE_FAILED",
]
