"""Slot regeneration - replace one time slot of one day, keep everything else.

The stored document is only rewritten after the provider has returned a new
activity; any provider failure leaves it untouched.
"""

import asyncio
import logging
import time

from fastapi.concurrency import run_in_threadpool

from backend.app.db.context import RequestContext
from backend.app.db.repositories import ItineraryRepository, StoreError
from backend.app.errors import (
    DayNotFoundError,
    ItineraryNotFoundError,
    PersistenceFailedError,
    RegenerationFailedError,
)
from backend.app.itineraries.slots import sort_activities
from backend.app.llm.client import GenerationProvider, ProviderError
from backend.app.models.common import TimeSlot
from backend.app.models.itinerary import Activity, DayPlan, ItineraryDocument
from backend.app.utils.logging import StructuredGenerationLogger
from backend.app.utils.metrics import PrometheusGenerationMetrics

logger = logging.getLogger(__name__)


def canonical_label(slot: str) -> str:
    """Canonical spelling for known slots; other labels pass through unchanged."""
    parsed = TimeSlot.parse(slot)
    return parsed.value if parsed is not None else slot


def merge_slot(day: DayPlan, new_activity: Activity, slot: str) -> DayPlan:
    """Swap the activities in `slot` for `new_activity`.

    Activities in other slots are kept as-is; the result is re-sorted into
    canonical order.
    """
    target = slot.strip().lower()
    kept = [a for a in day.activities if a.time.strip().lower() != target]
    placed = new_activity.model_copy(update={"time": canonical_label(slot)})
    return day.model_copy(update={"activities": sort_activities([*kept, placed])})


def replace_day(document: ItineraryDocument, day_index: int, day: DayPlan) -> ItineraryDocument:
    """Copy of the document with one day replaced."""
    days = [*document.days[:day_index], day, *document.days[day_index + 1 :]]
    return document.model_copy(update={"days": days})


def get_owned_itinerary(
    itineraries: ItineraryRepository, itinerary_id: int, ctx: RequestContext
) -> ItineraryDocument:
    """Fetch a document owned by the caller.

    Raises:
        ItineraryNotFoundError: If unknown or owned by another account
    """
    document = itineraries.get(itinerary_id)
    if document is None or document.account_id != ctx.account_id:
        raise ItineraryNotFoundError(itinerary_id)
    return document


async def regenerate_slot(
    *,
    itinerary_id: int,
    day_index: int,
    slot: str,
    ctx: RequestContext,
    itineraries: ItineraryRepository,
    provider: GenerationProvider,
    timeout_seconds: float,
    metrics: PrometheusGenerationMetrics | None = None,
    gen_log: StructuredGenerationLogger | None = None,
) -> ItineraryDocument:
    """Regenerate one slot of one day and persist the merged document.

    Unmetered: no entitlement credit is consumed.

    Raises:
        ItineraryNotFoundError: Unknown document or not owned by the caller
        DayNotFoundError: day_index outside the document's days
        RegenerationFailedError: Provider failure or timeout
        PersistenceFailedError: Store fault while writing the merged document
    """
    metrics = metrics or PrometheusGenerationMetrics()
    gen_log = gen_log or StructuredGenerationLogger()

    document = await run_in_threadpool(get_owned_itinerary, itineraries, itinerary_id, ctx)

    if not 0 <= day_index < len(document.days):
        raise DayNotFoundError(day_index)

    day = document.days[day_index]
    label = canonical_label(slot)

    start = time.monotonic()
    try:
        new_activity = await asyncio.wait_for(
            provider.generate_activity(
                trip=document.trip, day=day, day_index=day_index, slot=label
            ),
            timeout=timeout_seconds,
        )
    except (ProviderError, asyncio.TimeoutError) as e:
        elapsed_ms = (time.monotonic() - start) * 1000
        reason = "timeout" if isinstance(e, asyncio.TimeoutError) else "provider_error"
        metrics.record_provider_latency("regenerate_slot", reason, elapsed_ms)
        metrics.record_regeneration(reason)
        gen_log.log_provider_call(
            "regenerate_slot",
            ctx.account_id,
            reason,
            elapsed_ms,
            itinerary_id=itinerary_id,
            error_reason=str(e) or type(e).__name__,
        )
        raise RegenerationFailedError() from e

    elapsed_ms = (time.monotonic() - start) * 1000
    metrics.record_provider_latency("regenerate_slot", "success", elapsed_ms)
    gen_log.log_provider_call(
        "regenerate_slot", ctx.account_id, "success", elapsed_ms, itinerary_id=itinerary_id
    )

    updated = replace_day(document, day_index, merge_slot(day, new_activity, label))

    try:
        saved = await run_in_threadpool(itineraries.update, updated)
    except StoreError as e:
        logger.error(f"Failed to persist regenerated itinerary {itinerary_id}: {e}")
        metrics.record_regeneration("persistence_failed")
        raise PersistenceFailedError("Failed to save regenerated activity. Please try again.") from e

    metrics.record_regeneration("success")
    return saved
