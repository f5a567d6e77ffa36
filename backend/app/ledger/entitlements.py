"""Entitlement ledger - credit accounting for itinerary generation.

Pure functions over Account values; persistence (and the atomic decrement)
lives in the account repositories.
"""

from dataclasses import dataclass

from backend.app.models.account import Account
from backend.app.models.common import (
    FiniteCredits,
    PackageTier,
    UnlimitedCredits,
    credits_display,
)


@dataclass(frozen=True)
class Entitlement:
    """Result of an entitlement check."""

    allowed: bool
    remaining: int | str


def check_entitlement(account: Account) -> Entitlement:
    """Allowed iff credits are unlimited or a finite balance above zero."""
    credits = account.credits
    allowed = isinstance(credits, UnlimitedCredits) or credits.remaining > 0
    return Entitlement(allowed=allowed, remaining=credits_display(credits))


def consume_credit(account: Account) -> Account:
    """Spend one credit, floored at zero; unlimited accounts are returned unchanged."""
    credits = account.credits
    if isinstance(credits, UnlimitedCredits):
        return account
    return account.model_copy(
        update={"credits": FiniteCredits(remaining=max(0, credits.remaining - 1))}
    )


def apply_package(account: Account, tier: PackageTier, credits_to_add: int | None) -> Account:
    """Upgrade the tier and top up credits.

    The ultimate tier sets credits to unlimited regardless of the prior balance.
    Other tiers stack credits_to_add onto the existing finite balance.

    Raises:
        ValueError: If a finite tier is applied to an unlimited account, or
            credits_to_add is missing/negative for a finite tier
    """
    if tier == PackageTier.ultimate:
        return account.model_copy(update={"tier": tier, "credits": UnlimitedCredits()})

    if credits_to_add is None or credits_to_add < 0:
        raise ValueError(f"credits_to_add must be a non-negative integer for tier '{tier.value}'")

    credits = account.credits
    if isinstance(credits, UnlimitedCredits):
        raise ValueError("Cannot apply a finite package to an unlimited account")

    return account.model_copy(
        update={
            "tier": tier,
            "credits": FiniteCredits(remaining=credits.remaining + credits_to_add),
        }
    )
