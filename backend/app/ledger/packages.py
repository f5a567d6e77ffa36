"""Package catalog - prices and credit grants per tier."""

from dataclasses import dataclass

from backend.app.models.common import PackageTier

# Single pay-per-itinerary purchase (cents)
ITINERARY_PRICE_CENTS = 300


@dataclass(frozen=True)
class Package:
    """Purchasable package definition.

    credits_to_add is None for the unlimited tier.
    """

    tier: PackageTier
    display_name: str
    price_cents: int
    credits_to_add: int | None


PACKAGES: dict[PackageTier, Package] = {
    PackageTier.basic: Package(PackageTier.basic, "Basic Plan", 1499, 10),
    PackageTier.premium: Package(PackageTier.premium, "Premium Plan", 2499, 20),
    PackageTier.ultimate: Package(PackageTier.ultimate, "Ultimate Plan", 4999, None),
}

DISPLAY_NAMES: dict[PackageTier, str] = {
    PackageTier.free: "Free Plan",
    **{tier: package.display_name for tier, package in PACKAGES.items()},
}


def get_package(tier: PackageTier) -> Package:
    """Look up a purchasable package.

    Raises:
        ValueError: If the tier cannot be purchased (free)
    """
    package = PACKAGES.get(tier)
    if package is None:
        raise ValueError(f"Package tier '{tier.value}' is not purchasable")
    return package
