"""Tests for generation provider clients.

All tests are deterministic and do not make real network calls.
"""

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError
from pydantic import SecretStr

from backend.app.config import Settings
from backend.app.llm.client import (
    DeterministicStubClient,
    OpenAIClient,
    ProviderError,
    fallback_video_recommendations,
    get_llm_client,
    youtube_search_url,
)
from backend.app.llm.prompts import build_activity_prompt, build_itinerary_prompt
from backend.app.models.common import TimeSlot
from backend.app.models.trip import TripRequest


def _mock_openai(content: str | None) -> AsyncMock:
    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message.content = content

    mock_openai_client = AsyncMock()
    mock_openai_client.chat.completions.create = AsyncMock(return_value=mock_response)
    return mock_openai_client


def _itinerary_payload(trip: TripRequest) -> dict[str, Any]:
    return {
        "overview": "Lisbon sits on seven hills.",
        "days": [
            {
                "day": i + 1,
                "date": d.isoformat(),
                "title": f"Day {i + 1}",
                "activities": [
                    {"time": slot.value, "title": f"{slot.value} stop", "description": "..."}
                    for slot in TimeSlot
                ],
            }
            for i, d in enumerate(trip.trip_dates())
        ],
        "transportation_tips": [{"icon": "fas fa-tram", "title": "Tram 28", "description": "..."}],
        "food_recommendations": [{"type": "food", "name": "Pastel de nata", "description": "..."}],
        "video_recommendations": [{"title": "ignored", "description": "", "youtube_url": "x"}],
    }


class TestDeterministicStubClient:
    """Stub provider output shape."""

    @pytest.mark.asyncio
    async def test_itinerary_has_one_day_per_date_and_all_slots(
        self, sample_trip: TripRequest
    ) -> None:
        itinerary = await DeterministicStubClient().generate_itinerary(sample_trip)

        assert [d.date for d in itinerary.days] == sample_trip.trip_dates()
        assert [d.day for d in itinerary.days] == [1, 2, 3]
        for day in itinerary.days:
            assert [a.time for a in day.activities] == ["Morning", "Afternoon", "Evening"]

    @pytest.mark.asyncio
    async def test_is_deterministic(self, sample_trip: TripRequest) -> None:
        client = DeterministicStubClient()
        assert await client.generate_itinerary(sample_trip) == await client.generate_itinerary(
            sample_trip
        )

    @pytest.mark.asyncio
    async def test_activity_differs_from_original(self, sample_trip: TripRequest) -> None:
        client = DeterministicStubClient()
        itinerary = await client.generate_itinerary(sample_trip)

        activity = await client.generate_activity(
            trip=sample_trip, day=itinerary.days[1], day_index=1, slot="Evening"
        )

        assert activity.time == "Evening"
        assert activity.title != itinerary.days[1].activities[2].title


def test_youtube_search_url_encodes_query() -> None:
    assert (
        youtube_search_url("Lisbon food & wine")
        == "https://www.youtube.com/results?search_query=Lisbon%20food%20%26%20wine"
    )


def test_fallback_videos() -> None:
    videos = fallback_video_recommendations("Lisbon", "cultural")
    assert len(videos) == 3
    assert all("Lisbon" in v.title for v in videos)


def test_prompts_require_all_slots_and_day_count(sample_trip: TripRequest) -> None:
    prompt = build_itinerary_prompt(sample_trip)
    assert "Lisbon" in prompt
    assert "Return exactly 3 days" in prompt
    assert "ONE Morning activity, ONE Afternoon activity, and ONE Evening activity" in prompt


@pytest.mark.asyncio
async def test_activity_prompt_names_day_and_slot(sample_trip: TripRequest) -> None:
    itinerary = await DeterministicStubClient().generate_itinerary(sample_trip)
    prompt = build_activity_prompt(sample_trip, itinerary.days[1], 1, "Afternoon")
    assert "new Afternoon activity for day 2 (2025-06-11)" in prompt


class TestOpenAIClient:
    """OpenAI client with a mocked SDK."""

    @pytest.mark.asyncio
    async def test_generate_itinerary_parses_payload(self, sample_trip: TripRequest) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = _mock_openai(json.dumps(_itinerary_payload(sample_trip)))

        itinerary = await client.generate_itinerary(sample_trip)

        assert len(itinerary.days) == 3
        assert itinerary.transportation_tips[0].title == "Tram 28"
        # Videos come from the dedicated call
        assert itinerary.video_recommendations is None

        call_kwargs = client.client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "gpt-4o"
        assert call_kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_generate_activity(self, sample_trip: TripRequest) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = _mock_openai(
            json.dumps({"time": "Evening", "title": "Fado night", "description": "Alfama"})
        )
        itinerary = await DeterministicStubClient().generate_itinerary(sample_trip)

        activity = await client.generate_activity(
            trip=sample_trip, day=itinerary.days[0], day_index=0, slot="Evening"
        )

        assert activity.title == "Fado night"

    @pytest.mark.asyncio
    async def test_recommend_videos_rewrites_urls(self) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = _mock_openai(
            json.dumps(
                {
                    "recommendations": [
                        {"title": "Lisbon in 4K", "description": "Walk", "url": "https://bad"},
                    ]
                }
            )
        )

        videos = await client.recommend_videos("Lisbon", "cultural")

        assert videos[0].youtube_url == youtube_search_url("Lisbon in 4K")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "not json", "[1, 2]"])
    async def test_unusable_content_raises_provider_error(
        self, content: str | None, sample_trip: TripRequest
    ) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = _mock_openai(content)

        with pytest.raises(ProviderError):
            await client.generate_itinerary(sample_trip)

    @pytest.mark.asyncio
    async def test_schema_mismatch_raises_provider_error(self, sample_trip: TripRequest) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = _mock_openai(json.dumps({"overview": "missing days"}))

        with pytest.raises(ProviderError):
            await client.generate_itinerary(sample_trip)

    @pytest.mark.asyncio
    async def test_sdk_error_raises_provider_error(self, sample_trip: TripRequest) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = AsyncMock()
        client.client.chat.completions.create = AsyncMock(side_effect=OpenAIError("API error"))

        with pytest.raises(ProviderError):
            await client.generate_itinerary(sample_trip)

    @pytest.mark.asyncio
    async def test_bad_video_format_raises_provider_error(self) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = _mock_openai(json.dumps({"recommendations": "nope"}))

        with pytest.raises(ProviderError):
            await client.recommend_videos("Lisbon", "cultural")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "entry",
        [
            {"title": "Lisbon guide", "description": 5},
            {"title": 42, "description": "Walk"},
            {"description": "no title"},
            "just a string",
        ],
    )
    async def test_malformed_video_entry_raises_provider_error(self, entry: Any) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = _mock_openai(json.dumps({"recommendations": [entry]}))

        with pytest.raises(ProviderError):
            await client.recommend_videos("Lisbon", "cultural")

    @pytest.mark.asyncio
    async def test_null_video_description_becomes_empty(self) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = _mock_openai(
            json.dumps({"recommendations": [{"title": "Lisbon guide", "description": None}]})
        )

        videos = await client.recommend_videos("Lisbon", "cultural")

        assert videos[0].description == ""

    @pytest.mark.asyncio
    async def test_empty_choices_raises_provider_error(self, sample_trip: TripRequest) -> None:
        client = OpenAIClient(api_key="test_key")
        client.client = _mock_openai("{}")
        client.client.chat.completions.create.return_value.choices = []

        with pytest.raises(ProviderError):
            await client.generate_itinerary(sample_trip)


def test_get_llm_client_returns_stub_when_no_api_key() -> None:
    assert isinstance(get_llm_client(Settings(openai_api_key=None)), DeterministicStubClient)


def test_get_llm_client_returns_openai_when_api_key_present() -> None:
    client = get_llm_client(Settings(openai_api_key=SecretStr("sk-test"), openai_model="gpt-4o-mini"))
    assert isinstance(client, OpenAIClient)
    assert client.model == "gpt-4o-mini"
