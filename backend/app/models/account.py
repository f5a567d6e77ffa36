"""Account models - identity plus entitlement state."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from backend.app.models.common import (
    Credits,
    FiniteCredits,
    PackageTier,
    UnlimitedCredits,
    credits_display,
)


class Account(BaseModel):
    """User account with package tier and remaining generation credits."""

    id: int
    username: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    provider_id: str | None = None
    uid: str | None = None
    stripe_customer_id: str | None = None
    tier: PackageTier = PackageTier.free
    credits: Credits = Field(default_factory=lambda: FiniteCredits(remaining=0))
    created_at: datetime

    @model_validator(mode="after")
    def validate_unlimited_matches_tier(self) -> "Account":
        """Ensure tier=ultimate if and only if credits are unlimited."""
        unlimited = isinstance(self.credits, UnlimitedCredits)
        if unlimited != (self.tier == PackageTier.ultimate):
            raise ValueError("unlimited credits are reserved for the ultimate tier")
        return self


class NewAccount(BaseModel):
    """Fields supplied when registering an account."""

    username: str
    password_hash: str
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = None
    provider_id: str | None = None
    uid: str | None = None


class AccountView(BaseModel):
    """Account as returned by the API (no credential material)."""

    id: int
    username: str
    email: str | None
    display_name: str | None
    photo_url: str | None
    tier: PackageTier
    remaining_credits: int | str
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountView":
        """Render an account for API responses."""
        return cls(
            id=account.id,
            username=account.username,
            email=account.email,
            display_name=account.display_name,
            photo_url=account.photo_url,
            tier=account.tier,
            remaining_credits=credits_display(account.credits),
            created_at=account.created_at,
        )
