"""Tests for trip, account and credit models."""

from datetime import date, datetime

import pytest
from pydantic import TypeAdapter, ValidationError

from backend.app.models.account import Account, AccountView
from backend.app.models.common import (
    Credits,
    FiniteCredits,
    PackageTier,
    TimeSlot,
    UnlimitedCredits,
)
from backend.app.models.trip import TripRequest


def test_trip_num_days_is_inclusive() -> None:
    trip = TripRequest(
        destination="Rome",
        from_date=date(2025, 3, 1),
        to_date=date(2025, 3, 3),
        budget=900,
        trip_type="food",
    )
    assert trip.num_days == 3
    assert trip.trip_dates() == [date(2025, 3, 1), date(2025, 3, 2), date(2025, 3, 3)]
    assert trip.number_of_travelers == 2


def test_single_day_trip() -> None:
    trip = TripRequest(
        destination="Rome",
        from_date=date(2025, 3, 1),
        to_date=date(2025, 3, 1),
        budget=100,
        trip_type="food",
    )
    assert trip.num_days == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"to_date": date(2025, 2, 28)},
        {"budget": 0},
        {"destination": ""},
        {"number_of_travelers": 0},
    ],
)
def test_trip_validation_errors(overrides: dict[str, object]) -> None:
    data: dict[str, object] = {
        "destination": "Rome",
        "from_date": date(2025, 3, 1),
        "to_date": date(2025, 3, 3),
        "budget": 900,
        "trip_type": "food",
    }
    data.update(overrides)
    with pytest.raises(ValidationError):
        TripRequest.model_validate(data)


def test_credits_discriminated_union() -> None:
    adapter = TypeAdapter(Credits)
    assert adapter.validate_python({"kind": "finite", "remaining": 4}) == FiniteCredits(remaining=4)
    assert isinstance(adapter.validate_python({"kind": "unlimited"}), UnlimitedCredits)


def test_finite_credits_never_negative() -> None:
    with pytest.raises(ValidationError):
        FiniteCredits(remaining=-1)


def test_legacy_none_tier_maps_to_free() -> None:
    assert PackageTier("none") == PackageTier.free


def test_unlimited_requires_ultimate_tier() -> None:
    with pytest.raises(ValidationError):
        Account(
            id=1,
            username="bob",
            tier=PackageTier.basic,
            credits=UnlimitedCredits(),
            created_at=datetime(2025, 1, 1),
        )
    with pytest.raises(ValidationError):
        Account(
            id=1,
            username="bob",
            tier=PackageTier.ultimate,
            credits=FiniteCredits(remaining=3),
            created_at=datetime(2025, 1, 1),
        )


def test_account_view_renders_unlimited() -> None:
    account = Account(
        id=1,
        username="bob",
        tier=PackageTier.ultimate,
        credits=UnlimitedCredits(),
        created_at=datetime(2025, 1, 1),
    )
    view = AccountView.from_account(account)
    assert view.remaining_credits == "unlimited"
    assert "password_hash" not in view.model_dump()


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("Morning", TimeSlot.morning),
        ("afternoon", TimeSlot.afternoon),
        (" EVENING ", TimeSlot.evening),
        ("Night", None),
    ],
)
def test_time_slot_parse(label: str, expected: TimeSlot | None) -> None:
    assert TimeSlot.parse(label) == expected
