"""Time-slot ordering and completeness checks for day plans.

A complete day has exactly one activity per canonical slot, so a day can be
incomplete in two ways: a slot is missing, or a slot is filled more than once.
"""

from collections import Counter
from collections.abc import Callable

from backend.app.models.common import TimeSlot
from backend.app.models.itinerary import Activity, DayPlan, ItineraryDocument


def slot_order(label: str) -> int:
    """Canonical sort key for a slot label.

    Unrecognized labels sort as Morning (0).
    """
    slot = TimeSlot.parse(label)
    return slot.order if slot is not None else 0


def sort_activities(activities: list[Activity]) -> list[Activity]:
    """Stable sort into Morning, Afternoon, Evening order."""
    return sorted(activities, key=lambda a: slot_order(a.time))


def missing_slots(day: DayPlan) -> list[TimeSlot]:
    """Canonical slots with no activity in this day."""
    present = {TimeSlot.parse(a.time) for a in day.activities}
    return [slot for slot in TimeSlot if slot not in present]


def duplicate_slots(day: DayPlan) -> list[TimeSlot]:
    """Canonical slots holding more than one activity in this day."""
    counts = Counter(TimeSlot.parse(a.time) for a in day.activities)
    return [slot for slot in TimeSlot if counts[slot] > 1]


def find_slot_gaps(document: ItineraryDocument) -> dict[int, list[TimeSlot]]:
    """Missing canonical slots per day index, omitting days with none."""
    return _per_day(document, missing_slots)


def find_duplicate_slots(document: ItineraryDocument) -> dict[int, list[TimeSlot]]:
    """Over-filled canonical slots per day index, omitting days with none."""
    return _per_day(document, duplicate_slots)


def _per_day(
    document: ItineraryDocument, check: Callable[[DayPlan], list[TimeSlot]]
) -> dict[int, list[TimeSlot]]:
    found: dict[int, list[TimeSlot]] = {}
    for day_index, day in enumerate(document.days):
        slots = check(day)
        if slots:
            found[day_index] = slots
    return found
