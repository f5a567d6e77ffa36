"""Pending pay-per-itinerary purchases keyed by client session id.

Entries expire after a fixed TTL so abandoned checkouts do not accumulate.
"""

import threading
from datetime import datetime, timedelta
from typing import Protocol

import redis

from backend.app.models.trip import TripRequest


class PendingPurchaseStore(Protocol):
    """Time-bounded store of trip requests awaiting payment."""

    def put(self, session_id: str, trip: TripRequest, now: datetime | None = None) -> None:
        """Store (or replace) the pending request for a session."""
        ...

    def pop(self, session_id: str, now: datetime | None = None) -> TripRequest | None:
        """Remove and return the pending request, or None if absent or expired."""
        ...


class InMemoryPendingPurchaseStore:
    """In-memory implementation with explicit expiry timestamps."""

    def __init__(self, ttl_seconds: int) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._entries: dict[str, tuple[datetime, TripRequest]] = {}
        self._lock = threading.Lock()

    def put(self, session_id: str, trip: TripRequest, now: datetime | None = None) -> None:
        """Store the request with a fresh expiry."""
        now = now or datetime.now()
        with self._lock:
            self._prune(now)
            self._entries[session_id] = (now + self._ttl, trip)

    def pop(self, session_id: str, now: datetime | None = None) -> TripRequest | None:
        """Remove and return the request if it has not expired."""
        now = now or datetime.now()
        with self._lock:
            entry = self._entries.pop(session_id, None)

        if entry is None:
            return None

        expires_at, trip = entry
        if now > expires_at:
            return None

        return trip

    def _prune(self, now: datetime) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now > expires_at]
        for key in expired:
            del self._entries[key]


class RedisPendingPurchaseStore:
    """Redis implementation using SET EX + GETDEL."""

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int) -> None:
        """Initialize store.

        Args:
            redis_client: Redis client
            ttl_seconds: Expiry applied to every entry
        """
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    def put(self, session_id: str, trip: TripRequest, now: datetime | None = None) -> None:
        """Store the request; Redis expires it after the TTL."""
        self._redis.set(self._key(session_id), trip.model_dump_json(), ex=self._ttl_seconds)

    def pop(self, session_id: str, now: datetime | None = None) -> TripRequest | None:
        """Atomically fetch and delete the request."""
        raw = self._redis.getdel(self._key(session_id))
        if raw is None:
            return None
        return TripRequest.model_validate_json(raw)

    @staticmethod
    def _key(session_id: str) -> str:
        return f"pending_purchase:{session_id}"
