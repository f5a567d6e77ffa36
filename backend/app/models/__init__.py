"""Models package - re-exports for convenience."""

from backend.app.models.account import Account, AccountView, NewAccount
from backend.app.models.common import (
    Credits,
    FiniteCredits,
    PackageTier,
    TimeSlot,
    UnlimitedCredits,
    credits_display,
)
from backend.app.models.itinerary import (
    Activity,
    DayPlan,
    FoodRecommendation,
    GeneratedItinerary,
    ItineraryDocument,
    TransportTip,
    VideoRecommendation,
)
from backend.app.models.trip import TripRequest

__all__ = [
    # Common
    "Credits",
    "FiniteCredits",
    "UnlimitedCredits",
    "PackageTier",
    "TimeSlot",
    "credits_display",
    # Account
    "Account",
    "AccountView",
    "NewAccount",
    # Trip
    "TripRequest",
    # Itinerary
    "Activity",
    "DayPlan",
    "TransportTip",
    "FoodRecommendation",
    "VideoRecommendation",
    "GeneratedItinerary",
    "ItineraryDocument",
]
