"""
API key model for image_resizer.

Column names are the wire/storage contract shared with the existing key
store: ``key``, ``limit_usage``, ``monthly_limit``, ``current_usage`` and
``last_reset_month``.
"""

from uuid import UUID

from sqlalchemy import (
    Boolean,
    Enum,
    Integer,
    JSON,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db.models import BaseModel
from app.core.enums import KeyType


class ApiKey(BaseModel):
    """
    An API key issued to an owner.

    ``current_usage`` is only meaningful relative to ``last_reset_month``: a
    row whose ``last_reset_month`` is not the current calendar month has an
    effective usage of 0, whatever ``current_usage`` holds.

    Attributes:
        user_id: Owner of the key.
        name: Owner-defined label.
        description: Free-form description.
        key: The secret presented by callers. Unique.
        permissions: Owner-defined permission labels.
        key_type: development or production; drives the key prefix.
        limit_usage: Whether admission enforces the monthly quota.
        monthly_limit: Configured monthly quota (clamped at admission time).
        current_usage: Requests admitted during ``last_reset_month``.
        last_reset_month: ``YYYY-MM`` month the counter belongs to.
    """

    __tablename__ = "api_keys"

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        index=True,
        comment="Owner of the key",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="User-defined label for the API key",
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Secret presented by callers",
    )

    permissions: Mapped[list] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    key_type: Mapped[KeyType] = mapped_column(
        Enum(
            KeyType,
            name="key_type",
            native_enum=False,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=KeyType.DEVELOPMENT,
    )

    limit_usage: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    monthly_limit: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        default=5,
    )

    current_usage: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    last_reset_month: Mapped[str | None] = mapped_column(
        String(7),
        nullable=True,
        comment="YYYY-MM month that current_usage belongs to",
    )

    def __repr__(self) -> str:
        return (
            f"<ApiKey(id={self.id}, name={self.name!r}, limit_usage={self.limit_usage}, "
            f"usage={self.current_usage}/{self.monthly_limit} @ {self.last_reset_month})>"
        )


__all__ = ["ApiKey"]
