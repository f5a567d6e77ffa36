"""Tests for the pending pay-per-itinerary purchase stores."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

from backend.app.billing.pending import InMemoryPendingPurchaseStore, RedisPendingPurchaseStore
from backend.app.models.trip import TripRequest


def test_put_then_pop(sample_trip: TripRequest) -> None:
    store = InMemoryPendingPurchaseStore(ttl_seconds=60)
    store.put("sess-1", sample_trip)

    assert store.pop("sess-1") == sample_trip
    # Popped entries are gone
    assert store.pop("sess-1") is None


def test_unknown_session(sample_trip: TripRequest) -> None:
    store = InMemoryPendingPurchaseStore(ttl_seconds=60)
    store.put("sess-1", sample_trip)

    assert store.pop("sess-2") is None


def test_entry_expires(sample_trip: TripRequest) -> None:
    store = InMemoryPendingPurchaseStore(ttl_seconds=60)
    now = datetime(2025, 1, 1, 12, 0, 0)
    store.put("sess-1", sample_trip, now=now)

    assert store.pop("sess-1", now=now + timedelta(seconds=61)) is None


def test_put_replaces_and_refreshes_ttl(sample_trip: TripRequest) -> None:
    store = InMemoryPendingPurchaseStore(ttl_seconds=60)
    now = datetime(2025, 1, 1, 12, 0, 0)
    other = sample_trip.model_copy(update={"destination": "Porto"})

    store.put("sess-1", sample_trip, now=now)
    store.put("sess-1", other, now=now + timedelta(seconds=50))

    assert store.pop("sess-1", now=now + timedelta(seconds=100)) == other


def test_expired_entries_pruned_on_put(sample_trip: TripRequest) -> None:
    store = InMemoryPendingPurchaseStore(ttl_seconds=60)
    now = datetime(2025, 1, 1, 12, 0, 0)
    store.put("old", sample_trip, now=now)
    store.put("new", sample_trip, now=now + timedelta(minutes=5))

    assert "old" not in store._entries


def test_redis_store_uses_expiry_and_getdel(sample_trip: TripRequest) -> None:
    redis_client = MagicMock()
    store = RedisPendingPurchaseStore(redis_client, ttl_seconds=3600)

    store.put("sess-1", sample_trip)

    redis_client.set.assert_called_once_with(
        "pending_purchase:sess-1", sample_trip.model_dump_json(), ex=3600
    )

    redis_client.getdel.return_value = sample_trip.model_dump_json()
    assert store.pop("sess-1") == sample_trip
    redis_client.getdel.assert_called_once_with("pending_purchase:sess-1")

    redis_client.getdel.return_value = None
    assert store.pop("sess-1") is None
