"""Health check endpoints.

/health is a liveness check. /healthz reports each backing component;
components left unconfigured report "not_configured" because the app then
runs on its in-process stores.
"""

import logging
from typing import Any

import redis
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_session_factory

logger = logging.getLogger(__name__)

router = APIRouter()


def check_db(settings: Settings) -> tuple[bool, str]:
    """Run SELECT 1 against the configured database.

    Returns:
        (is_ok, status_message)
    """
    if not settings.database_url:
        return (True, "not_configured")

    try:
        with get_session_factory()() as session:
            session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database health check failed: {type(e).__name__}")
        return (False, f"error: {type(e).__name__}")
    return (True, "ok")


def check_redis(settings: Settings) -> tuple[bool, str]:
    """PING the configured Redis (pending purchases and rate limits live there).

    Returns:
        (is_ok, status_message)
    """
    if not settings.redis_url:
        return (True, "not_configured")

    client = redis.from_url(settings.redis_url, socket_timeout=2)  # type: ignore[no-untyped-call]
    try:
        client.ping()
    except redis.RedisError as e:
        logger.warning(f"Redis health check failed: {type(e).__name__}")
        return (False, f"error: {type(e).__name__}")
    finally:
        client.close()
    return (True, "ok")


def _provider_components(settings: Settings) -> dict[str, str]:
    return {
        "generation_provider": "openai" if settings.openai_api_key else "stub",
        "payment_provider": "stripe" if settings.stripe_secret_key else "stub",
    }


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check, always 200 while the process serves requests."""
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
def healthz(settings: Settings = Depends(get_settings)) -> dict[str, Any] | JSONResponse:
    """Component health.

    Returns:
        200 when every configured store answers, 503 otherwise
    """
    db_ok, db_status = check_db(settings)
    redis_ok, redis_status = check_redis(settings)
    healthy = db_ok and redis_ok

    body = {
        "status": "ok" if healthy else "degraded",
        "components": {"db": db_status, "redis": redis_status, **_provider_components(settings)},
    }
    if not healthy:
        return JSONResponse(content=body, status_code=503)
    return body
