"""Shared pytest fixtures for all test suites."""

from collections.abc import Callable, Generator
from datetime import date, datetime, timedelta, timezone
from typing import Any

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.api.deps import (
    get_account_repository,
    get_generation_provider,
    get_identity_verifier,
    get_itinerary_repository,
    get_payment_provider,
    get_pending_store,
    get_rate_limiter,
)
from backend.app.auth.identity_tokens import IdentityTokenVerifier
from backend.app.billing.pending import InMemoryPendingPurchaseStore
from backend.app.billing.provider import StubPaymentProvider
from backend.app.db.inmemory import (
    InMemoryAccountRepository,
    InMemoryItineraryRepository,
    InMemoryRateLimiter,
)
from backend.app.db.models import Base
from backend.app.llm.client import DeterministicStubClient
from backend.app.main import app
from backend.app.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map
from backend.app.models.account import NewAccount
from backend.app.models.itinerary import Activity, DayPlan, ItineraryDocument
from backend.app.models.trip import TripRequest


@pytest.fixture
def sample_trip() -> TripRequest:
    """Three-day trip to Lisbon."""
    return TripRequest(
        destination="Lisbon",
        from_date=date(2025, 6, 10),
        to_date=date(2025, 6, 12),
        budget=1500,
        trip_type="cultural",
        number_of_travelers=2,
    )


def _make_day(day: int, labels: list[str]) -> DayPlan:
    return DayPlan(
        day=day,
        date=date(2025, 6, 9 + day),
        title=f"Day {day}",
        activities=[
            Activity(time=label, title=f"{label} activity {day}", description="...")
            for label in labels
        ],
    )


def _make_document(
    account_id: int,
    days: list[DayPlan] | None = None,
    created_at: datetime | None = None,
) -> ItineraryDocument:
    days = days or [_make_day(1, ["Morning", "Afternoon", "Evening"])]
    return ItineraryDocument(
        account_id=account_id,
        destination="Lisbon",
        from_date=date(2025, 6, 10),
        to_date=date(2025, 6, 9 + len(days)),
        budget=1500,
        trip_type="cultural",
        overview="Overview",
        days=days,
        created_at=created_at or datetime(2025, 1, 1, 12, 0, 0),
    )


def _make_new_account(username: str = "alice") -> NewAccount:
    return NewAccount(username=username, password_hash="not-a-real-hash")


@pytest.fixture
def make_day() -> Callable[[int, list[str]], DayPlan]:
    """Factory: day plan with one activity per slot label."""
    return _make_day


@pytest.fixture
def make_document() -> Callable[..., ItineraryDocument]:
    """Factory: unsaved itinerary document (defaults to one complete day)."""
    return _make_document


@pytest.fixture
def make_new_account() -> Callable[..., NewAccount]:
    """Factory: registration fields with a placeholder hash."""
    return _make_new_account


@pytest.fixture
def accounts() -> InMemoryAccountRepository:
    """Fresh in-memory account store."""
    return InMemoryAccountRepository()


@pytest.fixture
def itineraries() -> InMemoryItineraryRepository:
    """Fresh in-memory itinerary store."""
    return InMemoryItineraryRepository()


@pytest.fixture
def sqlite_engine() -> Generator[Engine, None, None]:
    """In-memory SQLite engine with the schema created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Generator[Session, None, None]:
    """Session bound to the in-memory SQLite engine."""
    with sessionmaker(bind=sqlite_engine, expire_on_commit=False)() as session:
        yield session


@pytest.fixture
def payments() -> StubPaymentProvider:
    """Payment provider whose payments stay pending until marked succeeded."""
    return StubPaymentProvider(auto_succeed=False)


@pytest.fixture
def pending_store() -> InMemoryPendingPurchaseStore:
    """Fresh pending-purchase store."""
    return InMemoryPendingPurchaseStore(ttl_seconds=3600)


IDENTITY_SECRET = "test-identity-secret"


def _make_id_token(sub: str = "g-1", secret: str = IDENTITY_SECRET, **claims: Any) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": sub, "iat": now, "exp": now + timedelta(minutes=5), **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def make_id_token() -> Callable[..., str]:
    """Factory: HS256 ID token signed with the test identity secret."""
    return _make_id_token


@pytest.fixture
def identity_verifier() -> IdentityTokenVerifier:
    """Verifier accepting tokens from make_id_token."""
    return IdentityTokenVerifier("google.com", secret=IDENTITY_SECRET)


@pytest.fixture
def client(
    accounts: InMemoryAccountRepository,
    itineraries: InMemoryItineraryRepository,
    payments: StubPaymentProvider,
    pending_store: InMemoryPendingPurchaseStore,
    identity_verifier: IdentityTokenVerifier,
) -> Generator[TestClient, None, None]:
    """Test client wired to fresh in-process collaborators."""
    limiter = RateLimitMiddleware(
        {
            "generation": InMemoryRateLimiter(max_requests=1000),
            "crud": InMemoryRateLimiter(max_requests=1000),
        },
        create_default_bucket_map(),
    )
    provider = DeterministicStubClient()

    app.dependency_overrides[get_account_repository] = lambda: accounts
    app.dependency_overrides[get_itinerary_repository] = lambda: itineraries
    app.dependency_overrides[get_generation_provider] = lambda: provider
    app.dependency_overrides[get_payment_provider] = lambda: payments
    app.dependency_overrides[get_pending_store] = lambda: pending_store
    app.dependency_overrides[get_rate_limiter] = lambda: limiter
    app.dependency_overrides[get_identity_verifier] = lambda: identity_verifier

    yield TestClient(app)

    app.dependency_overrides.clear()


def _register(client: TestClient, username: str = "alice") -> dict[str, str]:
    response = client.post("/auth/register", json={"username": username, "password": "pw-123456"})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def register() -> Callable[..., dict[str, str]]:
    """Factory: register an account via the API and return its auth header."""
    return _register


@pytest.fixture
def auth_headers(client: TestClient) -> dict[str, str]:
    """Authorization header for a freshly registered account."""
    return _register(client)


@pytest.fixture
def trip_payload() -> dict[str, object]:
    """JSON body for a three-day trip."""
    return {
        "destination": "Lisbon",
        "from_date": "2025-06-10",
        "to_date": "2025-06-12",
        "budget": 1500,
        "trip_type": "cultural",
    }
