"""FastAPI dependency wiring.

Every collaborator is resolved through a dependency so tests can swap it via
`app.dependency_overrides`. Without DATABASE_URL / REDIS_URL / provider keys
the app runs fully in-process.
"""

import logging
from collections.abc import Generator
from datetime import datetime
from functools import lru_cache

import redis
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from backend.app.api.auth import get_current_context
from backend.app.auth.identity_tokens import IdentityTokenVerifier, build_identity_verifier
from backend.app.billing.pending import (
    InMemoryPendingPurchaseStore,
    PendingPurchaseStore,
    RedisPendingPurchaseStore,
)
from backend.app.billing.provider import PaymentProvider, StubPaymentProvider
from backend.app.billing.stripe_provider import StripePaymentProvider
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext
from backend.app.db.engine import get_session_factory
from backend.app.db.inmemory import InMemoryAccountRepository, InMemoryItineraryRepository
from backend.app.db.repositories import AccountRepository, ItineraryRepository
from backend.app.db.sql_repositories import SqlAccountRepository, SqlItineraryRepository
from backend.app.itineraries.orchestrator import ItineraryOrchestrator
from backend.app.llm.client import GenerationProvider, get_llm_client
from backend.app.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map
from backend.app.ratelimit import build_limiters

logger = logging.getLogger(__name__)


@lru_cache
def _inmemory_accounts() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@lru_cache
def _inmemory_itineraries() -> InMemoryItineraryRepository:
    return InMemoryItineraryRepository()


@lru_cache
def _redis_client(redis_url: str) -> redis.Redis:
    return redis.from_url(redis_url, decode_responses=True)  # type: ignore[no-untyped-call]


def get_optional_session(
    settings: Settings = Depends(get_settings),
) -> Generator[Session | None, None, None]:
    """Database session when DATABASE_URL is configured, else None."""
    if not settings.database_url:
        yield None
        return

    with get_session_factory()() as session:
        yield session


def get_account_repository(
    session: Session | None = Depends(get_optional_session),
) -> AccountRepository:
    """Account store (SQL when configured, else process-local)."""
    if session is None:
        return _inmemory_accounts()
    return SqlAccountRepository(session)


def get_itinerary_repository(
    session: Session | None = Depends(get_optional_session),
) -> ItineraryRepository:
    """Itinerary document store (SQL when configured, else process-local)."""
    if session is None:
        return _inmemory_itineraries()
    return SqlItineraryRepository(session)


@lru_cache
def _generation_provider() -> GenerationProvider:
    return get_llm_client(get_settings())


def get_generation_provider() -> GenerationProvider:
    """Generation provider (OpenAI when keyed, else deterministic stub)."""
    return _generation_provider()


@lru_cache
def _payment_provider() -> PaymentProvider:
    settings = get_settings()
    if settings.stripe_secret_key and settings.stripe_secret_key.get_secret_value():
        webhook_secret = settings.stripe_webhook_secret
        return StripePaymentProvider(
            settings.stripe_secret_key.get_secret_value(),
            webhook_secret.get_secret_value() if webhook_secret else None,
        )
    logger.warning("No Stripe key configured, using stub payment provider")
    return StubPaymentProvider()


def get_payment_provider() -> PaymentProvider:
    """Payment provider (Stripe when keyed, else in-process stub)."""
    return _payment_provider()


@lru_cache
def _identity_verifier() -> IdentityTokenVerifier | None:
    verifier = build_identity_verifier(get_settings())
    if verifier is None:
        logger.warning("No identity token secret or JWKS URL configured, external sign-in disabled")
    return verifier


def get_identity_verifier() -> IdentityTokenVerifier | None:
    """ID token verifier for external sign-in (None when not configured)."""
    return _identity_verifier()


@lru_cache
def _pending_store() -> PendingPurchaseStore:
    settings = get_settings()
    if settings.redis_url:
        return RedisPendingPurchaseStore(
            _redis_client(settings.redis_url), settings.pending_purchase_ttl_seconds
        )
    return InMemoryPendingPurchaseStore(settings.pending_purchase_ttl_seconds)


def get_pending_store() -> PendingPurchaseStore:
    """Pending pay-per-itinerary purchases."""
    return _pending_store()


def get_orchestrator(
    accounts: AccountRepository = Depends(get_account_repository),
    itineraries: ItineraryRepository = Depends(get_itinerary_repository),
    provider: GenerationProvider = Depends(get_generation_provider),
    settings: Settings = Depends(get_settings),
) -> ItineraryOrchestrator:
    """Generation orchestrator bound to the request's stores."""
    return ItineraryOrchestrator(
        accounts,
        itineraries,
        provider,
        timeout_seconds=settings.generation_timeout_seconds,
    )


@lru_cache
def _rate_limit_middleware() -> RateLimitMiddleware:
    settings = get_settings()
    client = _redis_client(settings.redis_url) if settings.redis_url else None
    return RateLimitMiddleware(build_limiters(settings, client), create_default_bucket_map())


def get_rate_limiter() -> RateLimitMiddleware:
    """Per-account rate limiter."""
    return _rate_limit_middleware()


def enforce_rate_limit(
    request: Request,
    ctx: RequestContext = Depends(get_current_context),
    limiter: RateLimitMiddleware = Depends(get_rate_limiter),
) -> None:
    """Reject with 429 when the caller's bucket is exhausted."""
    allowed, retry_after = limiter.check_rate_limit(
        request.method, request.url.path, ctx, datetime.now()
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={"Retry-After": str(retry_after)},
        )
