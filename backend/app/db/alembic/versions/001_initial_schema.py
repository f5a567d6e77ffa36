"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates:
- account (identity + entitlement ledger state)
- itinerary (generated documents as JSON)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create account and itinerary tables."""
    op.create_table(
        "account",
        sa.Column("account_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.Text(), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("photo_url", sa.Text(), nullable=True),
        sa.Column("provider_id", sa.Text(), nullable=True),
        sa.Column("uid", sa.Text(), nullable=True),
        sa.Column("stripe_customer_id", sa.Text(), nullable=True),
        sa.Column("package_tier", sa.Text(), nullable=False, server_default="free"),
        sa.Column("credits_remaining", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("credits_unlimited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("credits_remaining >= 0", name="ck_account_credits_non_negative"),
    )
    op.create_index("idx_account_provider", "account", ["provider_id", "uid"])
    op.create_index("idx_account_username_lower", "account", [sa.text("lower(username)")], unique=True)

    op.create_table(
        "itinerary",
        sa.Column("itinerary_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("account.account_id"), nullable=False),
        sa.Column(
            "data",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_itinerary_account", "itinerary", ["account_id", "created_at"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index("idx_itinerary_account", table_name="itinerary")
    op.drop_table("itinerary")
    op.drop_index("idx_account_username_lower", table_name="account")
    op.drop_index("idx_account_provider", table_name="account")
    op.drop_table("account")
