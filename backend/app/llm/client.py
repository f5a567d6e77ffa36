"""Generation provider clients with OpenAI integration.

Security: Reads API key from settings (environment) only, never hardcoded.
Provides a deterministic stub when no key is present for local runs and tests.
"""

import json
import logging
from typing import Any, Protocol
from urllib.parse import quote

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from backend.app.config import Settings, get_settings
from backend.app.llm.prompts import (
    ACTIVITY_SYSTEM_PROMPT,
    ITINERARY_SYSTEM_PROMPT,
    PROMPT_VERSION,
    VIDEO_SYSTEM_PROMPT,
    build_activity_prompt,
    build_itinerary_prompt,
    build_video_prompt,
)
from backend.app.models.common import TimeSlot
from backend.app.models.itinerary import (
    Activity,
    DayPlan,
    FoodRecommendation,
    GeneratedItinerary,
    TransportTip,
    VideoRecommendation,
)
from backend.app.models.trip import TripRequest

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Generation provider failed (network, refusal, malformed payload)."""

    pass


class GenerationProvider(Protocol):
    """Protocol for itinerary generation providers."""

    async def generate_itinerary(self, trip: TripRequest) -> GeneratedItinerary:
        """Generate a full day-by-day itinerary.

        Args:
            trip: Trip parameters

        Returns:
            Provider payload (video recommendations not included)

        Raises:
            ProviderError: If the call fails or the payload is malformed
        """
        ...

    async def generate_activity(
        self, *, trip: TripRequest, day: DayPlan, day_index: int, slot: str
    ) -> Activity:
        """Generate one replacement activity for a slot of a day.

        Raises:
            ProviderError: If the call fails or the payload is malformed
        """
        ...

    async def recommend_videos(
        self, destination: str, trip_type: str
    ) -> list[VideoRecommendation]:
        """Recommend travel videos for the destination.

        Raises:
            ProviderError: If the call fails or the payload is malformed
        """
        ...


def youtube_search_url(query: str) -> str:
    """YouTube search URL for a free-text query."""
    return f"https://www.youtube.com/results?search_query={quote(query, safe='')}"


def fallback_video_recommendations(destination: str, trip_type: str) -> list[VideoRecommendation]:
    """Deterministic search-link recommendations used when the provider cannot supply any."""
    return [
        VideoRecommendation(
            title=f"{destination} Travel Guide",
            description=(
                f"Comprehensive travel guide covering the best attractions, activities, "
                f"and tips for {trip_type} travelers visiting {destination}."
            ),
            youtube_url=youtube_search_url(f"{destination} travel guide {trip_type}"),
        ),
        VideoRecommendation(
            title=f"Best Places to Visit in {destination}",
            description=(
                f"A curated list of must-visit locations in {destination} perfect for "
                f"{trip_type} travelers looking for authentic experiences."
            ),
            youtube_url=youtube_search_url(f"best places to visit in {destination}"),
        ),
        VideoRecommendation(
            title=f"{destination} Food Guide",
            description=(
                f"Delicious local cuisine and dining experiences in {destination} that "
                f"every {trip_type} traveler should try."
            ),
            youtube_url=youtube_search_url(f"{destination} food guide"),
        ),
    ]


class DeterministicStubClient:
    """Deterministic stub provider for testing (no API key required)."""

    async def generate_itinerary(self, trip: TripRequest) -> GeneratedItinerary:
        """Generate a placeholder itinerary with all three slots every day."""
        destination = trip.destination
        days = [
            DayPlan(
                day=offset + 1,
                date=day_date,
                title=f"Day {offset + 1} in {destination}",
                activities=[
                    self._stub_activity(destination, slot.value, offset + 1)
                    for slot in TimeSlot
                ],
            )
            for offset, day_date in enumerate(trip.trip_dates())
        ]

        return GeneratedItinerary(
            overview=(
                f"A {trip.num_days}-day {trip.trip_type} trip to {destination} "
                f"for {trip.number_of_travelers} traveler(s) with a ${trip.budget} budget.\n\n"
                f"*This is a stub itinerary generated without an LLM.*"
            ),
            days=days,
            transportation_tips=[
                TransportTip(
                    icon="fas fa-walking",
                    title="Explore on foot",
                    description=f"Central {destination} is best discovered walking.",
                )
            ],
            food_recommendations=[
                FoodRecommendation(
                    type="food",
                    name=f"{destination} street food",
                    description=f"Try the local specialties at a market in {destination}.",
                )
            ],
        )

    async def generate_activity(
        self, *, trip: TripRequest, day: DayPlan, day_index: int, slot: str
    ) -> Activity:
        """Generate a placeholder replacement activity."""
        activity = self._stub_activity(trip.destination, slot, day_index + 1)
        return activity.model_copy(update={"title": f"Alternative {activity.title}"})

    async def recommend_videos(
        self, destination: str, trip_type: str
    ) -> list[VideoRecommendation]:
        """Return the deterministic search-link recommendations."""
        return fallback_video_recommendations(destination, trip_type)

    @staticmethod
    def _stub_activity(destination: str, slot: str, day_number: int) -> Activity:
        return Activity(
            time=slot,
            title=f"{slot} in {destination} (day {day_number})",
            description=f"Placeholder {slot.lower()} activity in {destination}.",
            location=destination,
            duration="2-3 hours",
            cost="Varies",
        )


class OpenAIClient:
    """OpenAI-backed generation provider."""

    def __init__(self, api_key: str, model: str = "gpt-4o"):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def generate_itinerary(self, trip: TripRequest) -> GeneratedItinerary:
        """Generate a full itinerary using the OpenAI API."""
        payload = await self._complete_json(ITINERARY_SYSTEM_PROMPT, build_itinerary_prompt(trip))

        # Videos come from a separate call
        payload.pop("video_recommendations", None)

        try:
            return GeneratedItinerary.model_validate(payload)
        except ValidationError as e:
            raise ProviderError(f"Malformed itinerary payload: {e.error_count()} error(s)") from e

    async def generate_activity(
        self, *, trip: TripRequest, day: DayPlan, day_index: int, slot: str
    ) -> Activity:
        """Generate one replacement activity using the OpenAI API."""
        payload = await self._complete_json(
            ACTIVITY_SYSTEM_PROMPT, build_activity_prompt(trip, day, day_index, slot)
        )

        try:
            return Activity.model_validate(payload)
        except ValidationError as e:
            raise ProviderError(f"Malformed activity payload: {e.error_count()} error(s)") from e

    async def recommend_videos(
        self, destination: str, trip_type: str
    ) -> list[VideoRecommendation]:
        """Recommend videos; URLs are rewritten to search links so they always resolve."""
        payload = await self._complete_json(
            VIDEO_SYSTEM_PROMPT, build_video_prompt(destination, trip_type)
        )

        recommendations = payload.get("recommendations")
        if not isinstance(recommendations, list):
            raise ProviderError("Invalid video recommendation format")

        videos: list[VideoRecommendation] = []
        for rec in recommendations:
            if not isinstance(rec, dict) or not isinstance(rec.get("title"), str) or not rec["title"]:
                raise ProviderError("Invalid video recommendation entry")
            try:
                videos.append(
                    VideoRecommendation(
                        title=rec["title"],
                        description=rec.get("description") or "",
                        youtube_url=youtube_search_url(rec["title"]),
                    )
                )
            except ValidationError as e:
                raise ProviderError(
                    f"Malformed video recommendation: {e.error_count()} error(s)"
                ) from e
        return videos

    async def _complete_json(self, system_prompt: str, prompt: str) -> dict[str, Any]:
        """Run a JSON-mode chat completion and decode the object it returns."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
            )
        except OpenAIError as e:
            logger.error(f"OpenAI API call failed: {e}")
            raise ProviderError(f"OpenAI API call failed: {type(e).__name__}") from e

        if not response.choices:
            raise ProviderError("OpenAI returned no choices")
        content = response.choices[0].message.content or ""
        if not content.strip():
            raise ProviderError("No response content from OpenAI")

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise ProviderError("OpenAI returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise ProviderError("OpenAI returned a non-object JSON payload")

        logger.debug(
            "Provider completion decoded",
            extra={"structured": {"prompt_version": PROMPT_VERSION, "model": self.model}},
        )
        return payload


def get_llm_client(settings: Settings | None = None) -> GenerationProvider:
    """Factory function to get appropriate provider based on config.

    Returns:
        OpenAIClient if API key is configured, DeterministicStubClient otherwise
    """
    settings = settings or get_settings()
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI client for itinerary generation")
        return OpenAIClient(api_key=api_key.get_secret_value(), model=settings.openai_model)
    else:
        logger.warning("No OpenAI API key configured, using deterministic stub client")
        return DeterministicStubClient()
