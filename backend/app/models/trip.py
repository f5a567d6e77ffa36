"""Trip request models - user input for itinerary generation."""

from datetime import date, timedelta
from typing import Annotated

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class TripRequest(BaseModel):
    """Trip parameters submitted for itinerary generation."""

    destination: Annotated[str, Field(min_length=1)]
    from_date: date
    to_date: date
    budget: Annotated[int, Field(gt=0, description="Total budget in USD")]
    trip_type: Annotated[str, Field(min_length=1)]
    number_of_travelers: Annotated[int, Field(ge=1)] = 2
    additional_notes: str | None = None

    @field_validator("to_date")
    @classmethod
    def validate_end_after_start(cls, v: date, info: ValidationInfo) -> date:
        """Ensure to_date >= from_date."""
        if "from_date" in info.data and v < info.data["from_date"]:
            raise ValueError("to_date must be >= from_date")
        return v

    @property
    def num_days(self) -> int:
        """Inclusive day span between from_date and to_date."""
        return (self.to_date - self.from_date).days + 1

    def trip_dates(self) -> list[date]:
        """Calendar dates covered by the trip, in order."""
        return [self.from_date + timedelta(days=offset) for offset in range(self.num_days)]
