"""Versioned prompt builders for the generation provider.

The JSON shapes requested here must match the pydantic models in
backend.app.models.itinerary; bump PROMPT_VERSION when either changes.
"""

from backend.app.models.itinerary import DayPlan
from backend.app.models.trip import TripRequest

PROMPT_VERSION = "itinerary-v1"

ITINERARY_SYSTEM_PROMPT = (
    "You are a travel expert who creates detailed, personalized travel itineraries."
)

ACTIVITY_SYSTEM_PROMPT = (
    "You are a travel expert who creates personalized travel activities that fit "
    "within an existing itinerary."
)

VIDEO_SYSTEM_PROMPT = (
    "You are a travel expert who provides recommendations for authentic travel content "
    "from real travel YouTubers. You only recommend videos that actually exist."
)


def build_itinerary_prompt(trip: TripRequest) -> str:
    """Prompt for a full day-by-day itinerary."""
    destination = trip.destination
    return f"""Create a detailed travel itinerary for a trip to {destination}.
The trip is from {trip.from_date.isoformat()} to {trip.to_date.isoformat()} ({trip.num_days} days).
The budget is ${trip.budget}.
The trip type is "{trip.trip_type}".
Number of travelers: {trip.number_of_travelers}.
Additional notes: {trip.additional_notes or "None"}

Customize the trip experience for {trip.number_of_travelers} traveler(s) and mention this in the overview.

IMPORTANT REQUIREMENTS:
1. Return exactly {trip.num_days} days, numbered 1 to {trip.num_days}, one per calendar date starting at {trip.from_date.isoformat()}.
2. For EACH day you MUST include exactly ONE Morning activity, ONE Afternoon activity, and ONE Evening activity. No more, no less.
3. The overview should include 2-3 interesting and UNIQUE facts about {destination} that most tourists don't know.
4. Each activity description should contain specific details relevant to {destination}; avoid generic descriptions.
5. Transportation tips must be practical and specific to {destination}.
6. Food recommendations must be authentic local specialties of {destination}.

Respond with a JSON object of this shape:
{{
  "overview": "Paragraph overview with 2-3 unique facts about the destination",
  "days": [
    {{
      "day": 1,
      "date": "YYYY-MM-DD",
      "title": "Day title",
      "activities": [
        {{"time": "Morning", "title": "...", "description": "...", "location": "...", "duration": "...", "cost": "..."}},
        {{"time": "Afternoon", "title": "...", "description": "...", "location": "...", "duration": "...", "cost": "..."}},
        {{"time": "Evening", "title": "...", "description": "...", "location": "...", "duration": "...", "cost": "..."}}
      ]
    }}
  ],
  "transportation_tips": [
    {{"icon": "fas fa-subway", "title": "Tip title", "description": "Tip specific to {destination}"}}
  ],
  "food_recommendations": [
    {{"type": "food", "name": "Food name", "description": "Where to find it in {destination}"}}
  ]
}}

Ensure the activities suit a {trip.trip_type} trip and fit within the ${trip.budget} budget."""


def build_activity_prompt(trip: TripRequest, day: DayPlan, day_index: int, slot: str) -> str:
    """Prompt for a single replacement activity in one slot of one day."""
    destination = trip.destination
    return f"""I need a new {slot} activity for day {day_index + 1} ({day.date.isoformat()}) of a trip to {destination}.

Trip details:
- Destination: {destination}
- Trip type: {trip.trip_type}
- Budget: ${trip.budget}
- Number of travelers: {trip.number_of_travelers}

Current day plan title: "{day.title}"

IMPORTANT REQUIREMENTS:
1. Create a new {slot} activity that fits the theme of the day and the overall trip.
2. The activity should be DIFFERENT from the previous one but keep the style of the trip.
3. Include specific details about the location that are unique to {destination}.
4. Include at least one interesting or lesser-known fact about the activity or location.

Respond with a single JSON object:
{{
  "time": "{slot}",
  "title": "Activity title",
  "description": "Description with specific details and an interesting fact",
  "location": "Specific address or location name in {destination}",
  "duration": "Approximate duration",
  "cost": "Approximate cost"
}}"""


def build_video_prompt(destination: str, trip_type: str) -> str:
    """Prompt for three travel video recommendations."""
    return f"""Recommend 3 authentic, high-quality YouTube travel videos about {destination} that fit a {trip_type} style trip.
They must come from real, well-known travel creators and each should cover a different aspect of {destination}.

Respond with a JSON object:
{{
  "recommendations": [
    {{"title": "Exact video title", "description": "1-2 sentences on why it helps {trip_type} travelers"}}
  ]
}}"""
