"""Common types and enums shared across all models."""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class TimeSlot(str, Enum):
    """Canonical time of day within a day plan."""

    morning = "Morning"
    afternoon = "Afternoon"
    evening = "Evening"

    @property
    def order(self) -> int:
        """Canonical sort position (Morning < Afternoon < Evening)."""
        return _SLOT_ORDER[self]

    @classmethod
    def parse(cls, label: str) -> "TimeSlot | None":
        """Case-insensitive lookup; None for labels outside the canonical three."""
        normalized = label.strip().lower()
        for slot in cls:
            if slot.value.lower() == normalized:
                return slot
        return None


_SLOT_ORDER = {TimeSlot.morning: 0, TimeSlot.afternoon: 1, TimeSlot.evening: 2}


class PackageTier(str, Enum):
    """Account package level."""

    free = "free"
    basic = "basic"
    premium = "premium"
    ultimate = "ultimate"

    @classmethod
    def _missing_(cls, value: object) -> "PackageTier | None":
        # Legacy rows stored "none" for accounts that never purchased
        if value == "none":
            return cls.free
        return None


class FiniteCredits(BaseModel):
    """A countable generation balance, never negative."""

    kind: Literal["finite"] = "finite"
    remaining: int = Field(..., ge=0)


class UnlimitedCredits(BaseModel):
    """Unlimited generation; a distinct state, not a large number."""

    kind: Literal["unlimited"] = "unlimited"


Credits = Annotated[Union[FiniteCredits, UnlimitedCredits], Field(discriminator="kind")]


def credits_display(credits: FiniteCredits | UnlimitedCredits) -> int | str:
    """Render credits for API views: integer balance or "unlimited"."""
    if isinstance(credits, UnlimitedCredits):
        return "unlimited"
    return credits.remaining
