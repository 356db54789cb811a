"""create_api_keys_table

Revision ID: 5e2a91c4d7b3
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5e2a91c4d7b3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the api_keys table."""
    op.create_table(
        "api_keys",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "user_id", sa.Uuid(), nullable=False, comment="Owner of the key"
        ),
        sa.Column(
            "name",
            sa.String(length=255),
            nullable=False,
            comment="User-defined label for the API key",
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "key",
            sa.String(length=255),
            nullable=False,
            comment="Secret presented by callers",
        ),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column(
            "key_type",
            sa.Enum(
                "development",
                "production",
                name="key_type",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("limit_usage", sa.Boolean(), nullable=False),
        sa.Column("monthly_limit", sa.Integer(), nullable=True),
        sa.Column("current_usage", sa.Integer(), nullable=False),
        sa.Column(
            "last_reset_month",
            sa.String(length=7),
            nullable=True,
            comment="YYYY-MM month that current_usage belongs to",
        ),
        sa.Column("is_deleted", sa.Boolean(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_api_keys_user_id"), "api_keys", ["user_id"], unique=False
    )
    op.create_index(op.f("ix_api_keys_key"), "api_keys", ["key"], unique=True)


def downgrade() -> None:
    """Drop the api_keys table."""
    op.drop_index(op.f("ix_api_keys_key"), table_name="api_keys")
    op.drop_index(op.f("ix_api_keys_user_id"), table_name="api_keys")
    op.drop_table("api_keys")
