"""Itinerary endpoints - generation, listing, slot repair and regeneration."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status
from pydantic import BaseModel, Field

from backend.app.api.auth import get_current_context
from backend.app.api.deps import (
    enforce_rate_limit,
    get_account_repository,
    get_generation_provider,
    get_itinerary_repository,
    get_orchestrator,
)
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext
from backend.app.db.repositories import AccountRepository, ItineraryRepository
from backend.app.itineraries.merger import get_owned_itinerary, regenerate_slot
from backend.app.itineraries.orchestrator import ItineraryOrchestrator
from backend.app.itineraries.slots import find_duplicate_slots, find_slot_gaps
from backend.app.ledger.entitlements import check_entitlement
from backend.app.llm.client import GenerationProvider
from backend.app.models.common import PackageTier, TimeSlot
from backend.app.models.itinerary import ItineraryDocument
from backend.app.models.trip import TripRequest

router = APIRouter(
    prefix="/itineraries",
    tags=["itineraries"],
    dependencies=[Depends(enforce_rate_limit)],
)


class EntitlementResponse(BaseModel):
    """Response for GET /itineraries/limit."""

    can_create: bool
    remaining: int | str
    tier: PackageTier
    message: str | None = None


class SlotGapsResponse(BaseModel):
    """Response for GET /itineraries/{id}/slot-gaps.

    Keys are 0-based day indexes. `gaps` lists slots with no activity,
    `duplicates` slots with more than one; days with neither are omitted.
    """

    itinerary_id: int
    gaps: dict[int, list[TimeSlot]]
    duplicates: dict[int, list[TimeSlot]]


class RegenerateSlotRequest(BaseModel):
    """Request body for slot regeneration."""

    slot: str = Field(..., min_length=1, description="Slot label, e.g. Morning")


@router.post("", response_model=ItineraryDocument, status_code=status.HTTP_201_CREATED)
async def create_itinerary(
    trip: TripRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    orchestrator: Annotated[ItineraryOrchestrator, Depends(get_orchestrator)],
) -> ItineraryDocument:
    """Generate and save an itinerary, spending one credit."""
    return await orchestrator.generate(ctx.account_id, trip)


@router.get("", response_model=list[ItineraryDocument])
def list_itineraries(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    itineraries: Annotated[ItineraryRepository, Depends(get_itinerary_repository)],
) -> list[ItineraryDocument]:
    """All itineraries of the current account, newest first."""
    return itineraries.list_by_account(ctx.account_id)


@router.get("/limit", response_model=EntitlementResponse)
def itinerary_limit(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
) -> EntitlementResponse:
    """Whether the current account may generate another itinerary."""
    account = accounts.get_account(ctx.account_id)
    entitlement = check_entitlement(account)
    return EntitlementResponse(
        can_create=entitlement.allowed,
        remaining=entitlement.remaining,
        tier=account.tier,
        message=None
        if entitlement.allowed
        else "You've used all your trip credits. Please purchase a package to continue.",
    )


@router.get("/{itinerary_id}", response_model=ItineraryDocument)
def get_itinerary(
    itinerary_id: int,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    itineraries: Annotated[ItineraryRepository, Depends(get_itinerary_repository)],
) -> ItineraryDocument:
    """Fetch one of the caller's itineraries."""
    return get_owned_itinerary(itineraries, itinerary_id, ctx)


@router.get("/{itinerary_id}/slot-gaps", response_model=SlotGapsResponse)
def itinerary_slot_gaps(
    itinerary_id: int,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    itineraries: Annotated[ItineraryRepository, Depends(get_itinerary_repository)],
) -> SlotGapsResponse:
    """Days missing a Morning, Afternoon or Evening activity, or holding one twice."""
    document = get_owned_itinerary(itineraries, itinerary_id, ctx)
    return SlotGapsResponse(
        itinerary_id=itinerary_id,
        gaps=find_slot_gaps(document),
        duplicates=find_duplicate_slots(document),
    )


@router.post("/{itinerary_id}/days/{day_index}/regenerate", response_model=ItineraryDocument)
async def regenerate_itinerary_slot(
    itinerary_id: int,
    day_index: Annotated[int, Path(description="0-based day index")],
    request: RegenerateSlotRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    itineraries: Annotated[ItineraryRepository, Depends(get_itinerary_repository)],
    provider: Annotated[GenerationProvider, Depends(get_generation_provider)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ItineraryDocument:
    """Replace one slot of one day; does not spend a credit."""
    return await regenerate_slot(
        itinerary_id=itinerary_id,
        day_index=day_index,
        slot=request.slot,
        ctx=ctx,
        itineraries=itineraries,
        provider=provider,
        timeout_seconds=settings.generation_timeout_seconds,
    )
