"""
CRUD operations for API keys.

Two groups of callers use this module: the admission path (lookup by secret
and the conditional usage update) and the owner-facing key management
endpoints (every query scoped by ``user_id``).
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import SQLColumnExpression
from sqlalchemy.ext.asyncio import AsyncSession

from app.apps.image_resizer.db.models import ApiKey
from app.core.config import database_logger
from app.core.db.crud import BaseDB


class APIKeyDB(BaseDB[ApiKey]):
    """CRUD operations for ApiKey model."""

    def __init__(self):
        super().__init__(ApiKey)

    async def get_by_key(
        self,
        session: AsyncSession,
        key: str,
    ) -> ApiKey | None:
        """
        Get an API key by exact match on its secret.

        Args:
            session: Database session.
            key: The presented secret.

        Returns:
            ApiKey or None if no row matches.

        Raises:
            DatabaseException: If the lookup fails.
        """
        # Always re-read: a conditional update may have changed the row behind
        # an instance already held by this session
        return await self.get_one_by_filters(
            session,
            {"key": key, "is_deleted": False},
            populate_existing=True,
        )

    async def update_usage_if_unchanged(
        self,
        session: AsyncSession,
        key: str,
        expected_month: str | None,
        expected_usage: int | None,
        new_usage: int,
        new_month: str,
        updated_at: datetime,
        commit_self: bool = True,
    ) -> bool:
        """
        Compare-and-swap the usage fields of a key.

        The row is only written if ``(last_reset_month, current_usage)`` still
        holds the values the caller read, so two concurrent admissions cannot
        both debit the same prior usage.

        Args:
            session: Database session.
            key: The secret identifying the row.
            expected_month: ``last_reset_month`` as read (None for never reset).
            expected_usage: ``current_usage`` as read.
            new_usage: Counter value to store.
            new_month: ``YYYY-MM`` month the new counter belongs to.
            updated_at: Timestamp of the debit.
            commit_self: Whether to commit the transaction.

        Returns:
            bool: True if the row was updated, False if a concurrent writer won.

        Raises:
            DatabaseException: If the update fails.
        """
        conditions: list[SQLColumnExpression] = [
            ApiKey.key == key,
            ApiKey.is_deleted.is_(False),
        ]
        if expected_month is None:
            conditions.append(ApiKey.last_reset_month.is_(None))
        else:
            conditions.append(ApiKey.last_reset_month == expected_month)
        if expected_usage is None:
            conditions.append(ApiKey.current_usage.is_(None))
        else:
            conditions.append(ApiKey.current_usage == expected_usage)

        updated = await self.update_by_conditions(
            session,
            conditions,
            {
                "current_usage": new_usage,
                "last_reset_month": new_month,
                "updated_at": updated_at,
            },
            commit_self=commit_self,
        )
        if updated == 0:
            database_logger.info(
                f"Usage update lost a race (expected {expected_usage} @ {expected_month})"
            )
        return updated > 0

    async def list_for_owner(
        self,
        session: AsyncSession,
        user_id: UUID,
    ) -> Sequence[ApiKey]:
        """List an owner's keys, newest first."""
        return await self.get_by_conditions(
            session,
            [ApiKey.user_id == user_id, ApiKey.is_deleted.is_(False)],
            order_by=[ApiKey.created_at.desc()],
        )

    async def get_for_owner(
        self,
        session: AsyncSession,
        key_id: UUID,
        user_id: UUID,
    ) -> ApiKey | None:
        return await self.get_one_by_conditions(
            session,
            [
                ApiKey.id == key_id,
                ApiKey.user_id == user_id,
                ApiKey.is_deleted.is_(False),
            ],
        )

    async def update_for_owner(
        self,
        session: AsyncSession,
        key_id: UUID,
        user_id: UUID,
        updates: dict,
        commit_self: bool = True,
    ) -> ApiKey | None:
        """
        Update an owner's key.

        Returns:
            The updated ApiKey, or None if the owner has no such key.
        """
        return await self.update_one_by_conditions(
            session,
            [
                ApiKey.id == key_id,
                ApiKey.user_id == user_id,
                ApiKey.is_deleted.is_(False),
            ],
            updates,
            commit_self=commit_self,
        )

    async def delete_for_owner(
        self,
        session: AsyncSession,
        key_id: UUID,
        user_id: UUID,
        commit_self: bool = True,
    ) -> ApiKey | None:
        """
        Permanently delete (revoke) an owner's key.

        Returns:
            The deleted ApiKey, or None if the owner has no such key.
        """
        return await self.delete_one_by_conditions(
            session,
            [ApiKey.id == key_id, ApiKey.user_id == user_id],
            commit_self=commit_self,
        )


__all__ = ["APIKeyDB"]
