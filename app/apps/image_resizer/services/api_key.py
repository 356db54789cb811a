"""
API key management for key owners.

- Issuing keys (always usage-limited, monthly limit clamped)
- Listing, reading and updating an owner's keys
- Revoking keys (permanent delete)
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.apps.image_resizer.db.crud import api_key_db
from app.apps.image_resizer.db.models import ApiKey
from app.apps.image_resizer.services.usage_meter import clamp_monthly_limit
from app.core.config import api_key_logger, settings
from app.core.enums import KeyType
from app.core.exceptions.types import APIKeyNotFoundException, BadRequestException
from app.core.utils import generate_api_key as _generate_secret, mask_api_key


class APIKeyService:
    """Service for owner-facing API key management."""

    def generate_api_key(self, key_type: KeyType | str = KeyType.DEVELOPMENT) -> str:
        """Generate a new ``prod_sk_``/``dev_sk_`` secret."""
        return _generate_secret(key_type)

    @staticmethod
    def _require_name(name: str | None) -> str:
        if name is None or not name.strip():
            raise BadRequestException("Name is required")
        return name

    async def create_key(
        self,
        session: AsyncSession,
        owner_id: UUID,
        name: str | None,
        description: str | None = None,
        permissions: list[str] | None = None,
        key_type: KeyType = KeyType.DEVELOPMENT,
        monthly_limit: int | None = None,
        commit_self: bool = True,
    ) -> ApiKey:
        """
        Issue a new API key.

        Created keys always have ``limit_usage`` enabled. The monthly limit
        defaults to ``DEFAULT_MONTHLY_LIMIT`` and is clamped to the configured
        range.

        Args:
            session: Database session.
            owner_id: Owner of the new key.
            name: Label for the key. Required.
            description: Optional description.
            permissions: Optional permission labels.
            key_type: development or production.
            monthly_limit: Requested monthly limit.
            commit_self: Whether to commit the transaction.

        Returns:
            ApiKey: The created key, including its secret.

        Raises:
            BadRequestException: If name is missing.
            DatabaseException: If the insert fails.
        """
        name = self._require_name(name)
        if monthly_limit is None:
            monthly_limit = settings.DEFAULT_MONTHLY_LIMIT

        api_key = await api_key_db.create(
            session,
            {
                "user_id": owner_id,
                "name": name,
                "description": description or "",
                "key": self.generate_api_key(key_type),
                "permissions": permissions or [],
                "key_type": key_type,
                "limit_usage": True,
                "monthly_limit": clamp_monthly_limit(monthly_limit),
            },
            commit_self=commit_self,
        )
        api_key_logger.info(
            f"API key created: {api_key.id} ({mask_api_key(api_key.key)}) for owner {owner_id}"
        )
        return api_key

    async def list_keys(
        self,
        session: AsyncSession,
        owner_id: UUID,
    ) -> Sequence[ApiKey]:
        return await api_key_db.list_for_owner(session, owner_id)

    async def get_key(
        self,
        session: AsyncSession,
        owner_id: UUID,
        key_id: UUID,
    ) -> ApiKey:
        """
        Get one of an owner's keys.

        Raises:
            APIKeyNotFoundException: If the owner has no such key.
        """
        api_key = await api_key_db.get_for_owner(session, key_id, owner_id)
        if api_key is None:
            raise APIKeyNotFoundException()
        return api_key

    async def update_key(
        self,
        session: AsyncSession,
        owner_id: UUID,
        key_id: UUID,
        name: str | None,
        description: str | None = None,
        permissions: list[str] | None = None,
        key_type: KeyType | None = None,
        limit_usage: bool | None = None,
        monthly_limit: int | None = None,
        commit_self: bool = True,
    ) -> ApiKey:
        """
        Replace the editable fields of an owner's key.

        Omitted fields reset to their defaults: ``limit_usage`` to False and
        ``monthly_limit`` to ``UPDATE_DEFAULT_MONTHLY_LIMIT``. The monthly limit
        is stored as given; admission clamps it.

        Raises:
            BadRequestException: If name is missing.
            APIKeyNotFoundException: If the owner has no such key.
        """
        name = self._require_name(name)
        updates = {
            "name": name,
            "description": description or "",
            "permissions": permissions or [],
            "key_type": key_type or KeyType.DEVELOPMENT,
            "limit_usage": bool(limit_usage),
            "monthly_limit": monthly_limit or settings.UPDATE_DEFAULT_MONTHLY_LIMIT,
        }
        api_key = await api_key_db.update_for_owner(
            session, key_id, owner_id, updates, commit_self=commit_self
        )
        if api_key is None:
            raise APIKeyNotFoundException()
        api_key_logger.info(f"API key updated: {key_id} for owner {owner_id}")
        return api_key

    async def delete_key(
        self,
        session: AsyncSession,
        owner_id: UUID,
        key_id: UUID,
        commit_self: bool = True,
    ) -> ApiKey:
        """
        Revoke (permanently delete) an owner's key.

        Returns:
            ApiKey: The deleted row.

        Raises:
            APIKeyNotFoundException: If the owner has no such key.
        """
        api_key = await api_key_db.delete_for_owner(
            session, key_id, owner_id, commit_self=commit_self
        )
        if api_key is None:
            raise APIKeyNotFoundException()
        api_key_logger.info(f"API key deleted: {key_id} for owner {owner_id}")
        return api_key


api_key_service = APIKeyService()


__all__ = ["APIKeyService", "api_key_service"]
