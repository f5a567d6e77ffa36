"""FastAPI application - trip itinerary planner."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.app.api.routes.accounts import router as accounts_router
from backend.app.api.routes.billing import router as billing_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.itineraries import router as itineraries_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.config import get_settings
from backend.app.errors import AppError, app_error_handler
from backend.app.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)
    logger.info("Starting trip planner API")
    yield
    logger.info("Stopping trip planner API")


app = FastAPI(title="Trip Planner API", version="0.1.0", lifespan=lifespan)

app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(accounts_router)
app.include_router(itineraries_router)
app.include_router(billing_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Trip Planner API", "version": "0.1.0"}
