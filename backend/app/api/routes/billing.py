"""Billing endpoints - package purchases, pay-per-itinerary and provider webhooks."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, field_validator

from backend.app.api.auth import get_current_context
from backend.app.api.deps import (
    enforce_rate_limit,
    get_account_repository,
    get_orchestrator,
    get_payment_provider,
    get_pending_store,
)
from backend.app.billing.pending import PendingPurchaseStore
from backend.app.billing.provider import PaymentProvider, PaymentVerification
from backend.app.db.context import RequestContext
from backend.app.db.repositories import AccountRepository
from backend.app.errors import (
    AppError,
    PackageConflictError,
    PaymentAlreadyUsedError,
    PaymentVerificationError,
    PendingPurchaseNotFoundError,
)
from backend.app.itineraries.orchestrator import ItineraryOrchestrator
from backend.app.ledger.packages import ITINERARY_PRICE_CENTS, get_package
from backend.app.models.account import AccountView
from backend.app.models.common import PackageTier, UnlimitedCredits
from backend.app.models.itinerary import ItineraryDocument
from backend.app.models.trip import TripRequest
from backend.app.utils.logging import StructuredGenerationLogger
from backend.app.utils.metrics import PrometheusGenerationMetrics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])

_metrics = PrometheusGenerationMetrics()
_log = StructuredGenerationLogger()


class PackagePurchaseRequest(BaseModel):
    """Request body for POST /billing/packages."""

    tier: PackageTier

    @field_validator("tier")
    @classmethod
    def validate_purchasable(cls, v: PackageTier) -> PackageTier:
        """Only paid tiers can be bought."""
        get_package(v)
        return v


class PackageConfirmRequest(PackagePurchaseRequest):
    """Request body for POST /billing/packages/confirm."""

    payment_id: str


class PaymentHandleResponse(BaseModel):
    """Client-facing payment handle."""

    payment_id: str
    client_secret: str | None
    amount_cents: int


class CompleteItineraryPaymentRequest(BaseModel):
    """Request body for POST /billing/itinerary-payment/complete."""

    payment_id: str
    session_id: str | None = None


PACKAGE_PURCHASE = "package"
ITINERARY_PURCHASE = "itinerary"


def _verify_for_account(
    payments: PaymentProvider, payment_id: str, ctx: RequestContext, purchase: str
) -> PaymentVerification:
    """Verify a payment succeeded and was created by the caller for this kind of purchase."""
    verification = payments.verify_payment(payment_id)
    if not verification.succeeded:
        raise PaymentVerificationError(f"Payment not completed (status: {verification.status})")
    if verification.metadata.get("account_id") != str(ctx.account_id):
        raise PaymentVerificationError("Payment does not belong to this account")
    if verification.metadata.get("purchase") != purchase:
        raise PaymentVerificationError(f"Payment was not made for a {purchase} purchase")
    return verification


@router.post(
    "/packages",
    response_model=PaymentHandleResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
def purchase_package(
    request: PackagePurchaseRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
    payments: Annotated[PaymentProvider, Depends(get_payment_provider)],
) -> PaymentHandleResponse:
    """Create a payment for a package at its catalog price."""
    account = accounts.get_account(ctx.account_id)
    package = get_package(request.tier)

    if isinstance(account.credits, UnlimitedCredits) and package.credits_to_add is not None:
        raise PackageConflictError(request.tier.value)

    handle = payments.create_payment(
        package.price_cents,
        {
            "purchase": PACKAGE_PURCHASE,
            "package_tier": package.tier.value,
            "account_id": str(ctx.account_id),
        },
    )
    return PaymentHandleResponse(
        payment_id=handle.payment_id,
        client_secret=handle.client_secret,
        amount_cents=handle.amount_cents,
    )


@router.post(
    "/packages/confirm",
    response_model=AccountView,
    dependencies=[Depends(enforce_rate_limit)],
)
def confirm_package(
    request: PackageConfirmRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
    payments: Annotated[PaymentProvider, Depends(get_payment_provider)],
) -> AccountView:
    """Apply a package once its payment has succeeded.

    Raises:
        PaymentVerificationError: Payment not succeeded, or issued for another tier/account
        PaymentAlreadyUsedError: Payment was already applied
        PackageConflictError: Finite package on an unlimited account
    """
    try:
        verification = _verify_for_account(payments, request.payment_id, ctx, PACKAGE_PURCHASE)
        if verification.metadata.get("package_tier") != request.tier.value:
            raise PaymentVerificationError("Payment was made for a different package")
    except PaymentVerificationError:
        _log.log_payment(ctx.account_id, f"package:{request.tier.value}", request.payment_id, "rejected")
        raise

    package = get_package(request.tier)
    try:
        account = accounts.apply_package(
            ctx.account_id, package.tier, package.credits_to_add, payment_id=request.payment_id
        )
    except ValueError as e:
        raise PackageConflictError(request.tier.value) from e
    except PaymentAlreadyUsedError:
        _log.log_payment(ctx.account_id, f"package:{package.tier.value}", request.payment_id, "replayed")
        raise

    _metrics.inc_package_applied(package.tier.value)
    _log.log_payment(ctx.account_id, f"package:{package.tier.value}", request.payment_id, "confirmed")
    _log.log_ledger_change(
        ctx.account_id,
        "apply_package",
        account.tier.value,
        AccountView.from_account(account).remaining_credits,
    )
    return AccountView.from_account(account)


@router.post(
    "/itinerary-payment",
    response_model=PaymentHandleResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
def start_itinerary_payment(
    trip: TripRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    x_session_id: Annotated[str, Header()],
    payments: Annotated[PaymentProvider, Depends(get_payment_provider)],
    pending: Annotated[PendingPurchaseStore, Depends(get_pending_store)],
) -> PaymentHandleResponse:
    """Hold the trip request and create a single-itinerary payment."""
    handle = payments.create_payment(
        ITINERARY_PRICE_CENTS,
        {
            "purchase": ITINERARY_PURCHASE,
            "account_id": str(ctx.account_id),
            "session_id": x_session_id,
        },
    )
    pending.put(x_session_id, trip)
    return PaymentHandleResponse(
        payment_id=handle.payment_id,
        client_secret=handle.client_secret,
        amount_cents=handle.amount_cents,
    )


@router.post(
    "/itinerary-payment/complete",
    response_model=ItineraryDocument,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)],
)
async def complete_itinerary_payment(
    request: CompleteItineraryPaymentRequest,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
    payments: Annotated[PaymentProvider, Depends(get_payment_provider)],
    pending: Annotated[PendingPurchaseStore, Depends(get_pending_store)],
    orchestrator: Annotated[ItineraryOrchestrator, Depends(get_orchestrator)],
    x_session_id: Annotated[str | None, Header()] = None,
) -> ItineraryDocument:
    """Generate the held trip once its payment has succeeded (no credit spent).

    Raises:
        PendingPurchaseNotFoundError: No (unexpired) held trip for the session
        PaymentVerificationError: Payment not succeeded, not the caller's, or for another session
        PaymentAlreadyUsedError: Payment already paid for an itinerary
    """
    session_id = x_session_id or request.session_id
    if not session_id:
        raise PendingPurchaseNotFoundError()

    try:
        verification = await run_in_threadpool(
            _verify_for_account, payments, request.payment_id, ctx, ITINERARY_PURCHASE
        )
        if verification.metadata.get("session_id") != session_id:
            raise PaymentVerificationError("Payment was made for a different session")
    except PaymentVerificationError:
        _log.log_payment(ctx.account_id, "itinerary", request.payment_id, "rejected")
        raise

    await run_in_threadpool(accounts.redeem_payment, ctx.account_id, request.payment_id)

    trip = await run_in_threadpool(pending.pop, session_id)
    if trip is None:
        await run_in_threadpool(accounts.release_payment, request.payment_id)
        raise PendingPurchaseNotFoundError()

    _log.log_payment(ctx.account_id, "itinerary", request.payment_id, "confirmed")

    try:
        return await orchestrator.generate(ctx.account_id, trip, metered=False)
    except AppError:
        # Not delivered; hold the trip again and free the payment for a retry
        await run_in_threadpool(pending.put, session_id, trip)
        await run_in_threadpool(accounts.release_payment, request.payment_id)
        raise


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    payments: Annotated[PaymentProvider, Depends(get_payment_provider)],
    stripe_signature: Annotated[str | None, Header()] = None,
) -> dict[str, bool]:
    """Verify and acknowledge a payment provider webhook."""
    body = await request.body()
    try:
        event = payments.parse_webhook(body, stripe_signature)
    except PaymentVerificationError as e:
        logger.warning(f"Rejected payment webhook: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e

    if event.event_type == "payment_intent.succeeded":
        metadata = event.metadata
        if metadata.get("package_tier") and metadata.get("account_id"):
            logger.info(
                f"Package payment succeeded: {metadata['package_tier']}",
                extra={
                    "structured": {
                        "event_id": event.event_id,
                        "payment_id": event.payment_id,
                        "account_id": metadata["account_id"],
                        "package_tier": metadata["package_tier"],
                    }
                },
            )

    return {"received": True}
