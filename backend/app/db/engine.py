"""Database engine and session factory.

Only synchronous drivers are used; async-style URLs (asyncpg, aiosqlite)
are accepted and mapped to their sync counterparts.
"""

from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from backend.app.config import Settings, get_settings

_SYNC_DRIVERS = {
    "postgresql+asyncpg://": "postgresql://",
    "sqlite+aiosqlite://": "sqlite://",
}


def normalize_database_url(database_url: str) -> str:
    """Map async driver URLs to sync ones."""
    for async_prefix, sync_prefix in _SYNC_DRIVERS.items():
        if database_url.startswith(async_prefix):
            return sync_prefix + database_url[len(async_prefix) :]
    return database_url


def create_engine_from_settings(settings: Settings) -> Engine:
    """Create SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    if not settings.database_url:
        raise ValueError("DATABASE_URL must be set to create a database engine")

    database_url = normalize_database_url(settings.database_url)
    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        # Request handlers run in FastAPI's threadpool
        connect_args["check_same_thread"] = False

    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Sessionmaker bound to the engine; loaded rows stay usable after commit."""
    return sessionmaker(bind=engine, expire_on_commit=False)


_session_factory: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    """Process-wide session factory, created lazily from settings."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(create_engine_from_settings(get_settings()))
    return _session_factory
