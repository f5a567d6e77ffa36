"""SQLAlchemy ORM models for accounts, itineraries and redeemed payments."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JsonDocument = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Account(Base):
    """Account table - identity plus entitlement ledger state."""

    __tablename__ = "account"
    __table_args__ = (
        CheckConstraint("credits_remaining >= 0", name="ck_account_credits_non_negative"),
        Index("idx_account_provider", "provider_id", "uid"),
    )

    account_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    uid: Mapped[str | None] = mapped_column(Text, nullable=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    package_tier: Mapped[str] = mapped_column(Text, nullable=False, default="free")
    credits_remaining: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    credits_unlimited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    itineraries: Mapped[list["Itinerary"]] = relationship("Itinerary", back_populates="account")


class Itinerary(Base):
    """Itinerary table - generated travel plans stored as JSON documents."""

    __tablename__ = "itinerary"
    __table_args__ = (Index("idx_itinerary_account", "account_id", "created_at"),)

    itinerary_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("account.account_id"), nullable=False
    )
    data: Mapped[dict[str, Any]] = mapped_column(JsonDocument, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    account: Mapped["Account"] = relationship("Account", back_populates="itineraries")


class RedeemedPayment(Base):
    """Redeemed payment table - each provider payment funds at most one purchase."""

    __tablename__ = "redeemed_payment"

    payment_id: Mapped[str] = mapped_column(Text, primary_key=True)
    account_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("account.account_id"), nullable=False
    )
    redeemed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
