"""Itinerary generation orchestrator.

Order of operations for one generation:
1. re-check entitlement (no provider call or write when denied)
2. call the generation provider (bounded by a timeout)
3. persist the document
4. consume one credit

The document is saved before the credit is spent, so a crash between 3 and 4
leaves the account with an unspent credit rather than a charge for nothing.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime

from fastapi.concurrency import run_in_threadpool

from backend.app.db.repositories import AccountRepository, ItineraryRepository, StoreError
from backend.app.errors import (
    EntitlementExhaustedError,
    GenerationFailedError,
    PersistenceFailedError,
)
from backend.app.itineraries.slots import find_duplicate_slots, find_slot_gaps
from backend.app.ledger.entitlements import check_entitlement
from backend.app.llm.client import (
    GenerationProvider,
    ProviderError,
    fallback_video_recommendations,
)
from backend.app.models.common import FiniteCredits, credits_display
from backend.app.models.itinerary import (
    GeneratedItinerary,
    ItineraryDocument,
    VideoRecommendation,
)
from backend.app.models.trip import TripRequest
from backend.app.utils.logging import StructuredGenerationLogger
from backend.app.utils.metrics import PrometheusGenerationMetrics

logger = logging.getLogger(__name__)


class ItineraryOrchestrator:
    """Runs entitlement check, generation, persistence and credit consumption."""

    def __init__(
        self,
        accounts: AccountRepository,
        itineraries: ItineraryRepository,
        provider: GenerationProvider,
        *,
        timeout_seconds: float,
        metrics: PrometheusGenerationMetrics | None = None,
        gen_log: StructuredGenerationLogger | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize orchestrator.

        Args:
            accounts: Account store (entitlement ledger persistence)
            itineraries: Itinerary document store
            provider: Generation provider
            timeout_seconds: Upper bound for each provider call
            metrics: Metrics recorder (optional, defaults to Prometheus)
            gen_log: Structured logger (optional)
            clock: Source of creation timestamps
        """
        self._accounts = accounts
        self._itineraries = itineraries
        self._provider = provider
        self._timeout_seconds = timeout_seconds
        self._metrics = metrics or PrometheusGenerationMetrics()
        self._log = gen_log or StructuredGenerationLogger()
        self._clock = clock

    async def generate(
        self, account_id: int, trip: TripRequest, *, metered: bool = True
    ) -> ItineraryDocument:
        """Generate, persist and (when metered) charge for one itinerary.

        Args:
            account_id: Owning account
            trip: Trip parameters
            metered: False for itineraries paid for individually; skips the
                entitlement check and credit consumption

        Returns:
            Persisted document with its assigned ID

        Raises:
            AccountNotFoundError: Unknown account
            EntitlementExhaustedError: No credits left (metered only)
            GenerationFailedError: Provider failure, timeout or malformed payload
            PersistenceFailedError: Store fault after a successful provider call
        """
        account = await run_in_threadpool(self._accounts.get_account, account_id)

        if metered:
            entitlement = check_entitlement(account)
            if not entitlement.allowed:
                self._metrics.record_generation("entitlement_exhausted")
                raise EntitlementExhaustedError(remaining=0)

        generated = await self._call_provider(account_id, trip)
        generated = generated.model_copy(
            update={"video_recommendations": await self._recommend_videos(trip)}
        )

        document = ItineraryDocument.from_generated(account_id, trip, generated, self._clock())

        try:
            itinerary_id = await run_in_threadpool(self._itineraries.create, document)
        except StoreError as e:
            logger.error(f"Failed to persist itinerary for account {account_id}: {e}")
            self._metrics.record_generation("persistence_failed")
            raise PersistenceFailedError() from e

        document = document.model_copy(update={"id": itinerary_id})
        self._flag_slot_gaps(document)

        if metered:
            updated = await run_in_threadpool(self._accounts.consume_credit, account_id)
            if isinstance(account.credits, FiniteCredits):
                self._metrics.inc_credit_consumed()
            self._log.log_ledger_change(
                account_id, "consume", updated.tier.value, credits_display(updated.credits)
            )

        self._metrics.record_generation("success")
        return document

    async def _call_provider(self, account_id: int, trip: TripRequest) -> GeneratedItinerary:
        start = time.monotonic()
        try:
            generated = await asyncio.wait_for(
                self._provider.generate_itinerary(trip), timeout=self._timeout_seconds
            )
            if len(generated.days) != trip.num_days:
                raise ProviderError(
                    f"Expected {trip.num_days} days, provider returned {len(generated.days)}"
                )
        except (ProviderError, asyncio.TimeoutError) as e:
            elapsed_ms = (time.monotonic() - start) * 1000
            reason = "timeout" if isinstance(e, asyncio.TimeoutError) else "provider_error"
            self._metrics.record_provider_latency("generate_itinerary", reason, elapsed_ms)
            self._metrics.record_generation(reason)
            self._log.log_provider_call(
                "generate_itinerary",
                account_id,
                reason,
                elapsed_ms,
                error_reason=str(e) or type(e).__name__,
            )
            raise GenerationFailedError() from e

        elapsed_ms = (time.monotonic() - start) * 1000
        self._metrics.record_provider_latency("generate_itinerary", "success", elapsed_ms)
        self._log.log_provider_call("generate_itinerary", account_id, "success", elapsed_ms)
        return generated

    async def _recommend_videos(self, trip: TripRequest) -> list[VideoRecommendation]:
        """Video suggestions; falls back to search links when the provider cannot help."""
        try:
            return await asyncio.wait_for(
                self._provider.recommend_videos(trip.destination, trip.trip_type),
                timeout=self._timeout_seconds,
            )
        except (ProviderError, asyncio.TimeoutError) as e:
            logger.warning(f"Video recommendations unavailable, using fallback: {e!r}")
            return fallback_video_recommendations(trip.destination, trip.trip_type)

    def _flag_slot_gaps(self, document: ItineraryDocument) -> None:
        """Surface incomplete days for repair; provider output is kept as-is."""
        gaps = find_slot_gaps(document)
        duplicates = find_duplicate_slots(document)
        if not gaps and not duplicates:
            return
        if gaps:
            self._metrics.inc_slot_gaps(sum(len(slots) for slots in gaps.values()))
        if duplicates:
            self._metrics.inc_slot_gaps(
                sum(len(slots) for slots in duplicates.values()), kind="duplicate"
            )
        self._log.log_slot_gaps(
            document.id or 0,
            {day_index: [slot.value for slot in slots] for day_index, slots in gaps.items()},
            {day_index: [slot.value for slot in slots] for day_index, slots in duplicates.items()},
        )
