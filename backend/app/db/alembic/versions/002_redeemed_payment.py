"""Redeemed payments

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

Creates:
- redeemed_payment (one row per provider payment already turned into credits or an itinerary)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create redeemed_payment table."""
    op.create_table(
        "redeemed_payment",
        sa.Column("payment_id", sa.Text(), primary_key=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("account.account_id"), nullable=False),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )


def downgrade() -> None:
    """Drop redeemed_payment table."""
    op.drop_table("redeemed_payment")
