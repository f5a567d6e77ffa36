"""Itinerary models - generated day-by-day plans."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from backend.app.models.trip import TripRequest


class Activity(BaseModel):
    """Single activity occupying one time slot of a day."""

    time: str = Field(..., description="Slot label, normally Morning/Afternoon/Evening")
    title: str
    description: str
    location: str | None = None
    duration: str | None = None
    cost: str | None = None


class DayPlan(BaseModel):
    """Plan for a single calendar day."""

    day: int = Field(..., ge=1)
    date: date
    title: str
    activities: list[Activity]


class TransportTip(BaseModel):
    """Practical getting-around advice."""

    icon: str
    title: str
    description: str


class FoodRecommendation(BaseModel):
    """Local food or drink worth trying."""

    type: str
    name: str
    description: str


class VideoRecommendation(BaseModel):
    """Travel video suggestion (YouTube search link)."""

    title: str
    description: str
    youtube_url: str


class GeneratedItinerary(BaseModel):
    """Full itinerary payload returned by the generation provider."""

    overview: str
    days: list[DayPlan]
    transportation_tips: list[TransportTip] = Field(default_factory=list)
    food_recommendations: list[FoodRecommendation] = Field(default_factory=list)
    video_recommendations: list[VideoRecommendation] | None = None


class ItineraryDocument(TripRequest):
    """Persisted itinerary owned by one account."""

    id: int | None = None
    account_id: int
    overview: str
    days: list[DayPlan]
    transportation_tips: list[TransportTip] = Field(default_factory=list)
    food_recommendations: list[FoodRecommendation] = Field(default_factory=list)
    video_recommendations: list[VideoRecommendation] | None = None
    created_at: datetime

    @property
    def trip(self) -> TripRequest:
        """Trip parameters this document was generated from."""
        return TripRequest.model_validate(self.model_dump(include=set(TripRequest.model_fields)))

    @classmethod
    def from_generated(
        cls,
        account_id: int,
        trip: TripRequest,
        itinerary: GeneratedItinerary,
        created_at: datetime,
    ) -> "ItineraryDocument":
        """Combine trip parameters with a provider payload into an unsaved document."""
        return cls(
            account_id=account_id,
            created_at=created_at,
            **trip.model_dump(),
            **itinerary.model_dump(),
        )

