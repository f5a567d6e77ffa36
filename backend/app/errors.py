"""Error taxonomy and FastAPI handlers.

Every failure the core raises maps onto one of three client branches:
try again (generation/persistence faults), upgrade required (entitlement),
resource missing (not found).
"""

import logging
from typing import Any

from fastapi.responses import JSONResponse
from starlette.requests import Request

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "app_error"
    status_code = 500
    retryable = False

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra


class NotFoundError(AppError):
    """Unknown account, document or day index."""

    code = "not_found"
    status_code = 404


class AccountNotFoundError(NotFoundError):
    code = "account_not_found"

    def __init__(self, account_id: int) -> None:
        super().__init__(f"Account {account_id} not found", account_id=account_id)


class ItineraryNotFoundError(NotFoundError):
    code = "itinerary_not_found"

    def __init__(self, itinerary_id: int) -> None:
        super().__init__(f"Itinerary {itinerary_id} not found", itinerary_id=itinerary_id)


class DayNotFoundError(NotFoundError):
    code = "day_not_found"

    def __init__(self, day_index: int) -> None:
        super().__init__(f"Day {day_index + 1} not found in itinerary", day_index=day_index)


class EntitlementExhaustedError(AppError):
    """Business-rule denial: no generation credits left."""

    code = "entitlement_exhausted"
    status_code = 403

    def __init__(self, remaining: int = 0) -> None:
        super().__init__(
            "You've used all your trip credits. Please purchase a package to continue.",
            remaining=remaining,
        )
        self.remaining = remaining


class GenerationFailedError(AppError):
    """Provider call failed; nothing was persisted or charged."""

    code = "generation_failed"
    status_code = 500
    retryable = True

    def __init__(self, message: str = "Failed to generate itinerary. Please try again later.") -> None:
        super().__init__(message)


class RegenerationFailedError(AppError):
    """Provider call failed during slot regeneration; stored document unchanged."""

    code = "regeneration_failed"
    status_code = 500
    retryable = True

    def __init__(self, message: str = "Failed to regenerate activity. Please try again later.") -> None:
        super().__init__(message)


class PersistenceFailedError(AppError):
    """Store fault after a successful provider call; generated content is discarded."""

    code = "persistence_failed"
    status_code = 500
    retryable = True

    def __init__(self, message: str = "Failed to save itinerary. Please try again.") -> None:
        super().__init__(message)


class DuplicateUsernameError(AppError):
    code = "duplicate_username"
    status_code = 400

    def __init__(self, username: str) -> None:
        super().__init__("Username already exists", username=username)


class InvalidCredentialsError(AppError):
    code = "invalid_credentials"
    status_code = 401

    def __init__(self) -> None:
        super().__init__("The username or password you entered is incorrect")


class PaymentVerificationError(AppError):
    code = "payment_verification_failed"
    status_code = 402

    def __init__(self, message: str = "Payment verification failed") -> None:
        super().__init__(message)


class PaymentProviderError(AppError):
    code = "payment_provider_error"
    status_code = 502
    retryable = True


class PendingPurchaseNotFoundError(AppError):
    code = "pending_purchase_not_found"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("No pending trip details found")


class MissingProviderIdentityError(AppError):
    code = "missing_provider_identity"
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Missing provider ID or user ID")


class PackageConflictError(AppError):
    """Finite package requested for an account that already has unlimited credits."""

    code = "package_conflict"
    status_code = 409

    def __init__(self, tier: str) -> None:
        super().__init__("Account already has unlimited credits", tier=tier)


class PaymentAlreadyUsedError(AppError):
    """A payment id that has already been redeemed was presented again."""

    code = "payment_already_used"
    status_code = 409

    def __init__(self, payment_id: str) -> None:
        super().__init__("This payment has already been applied", payment_id=payment_id)


class InvalidIdentityTokenError(AppError):
    code = "invalid_identity_token"
    status_code = 401

    def __init__(self, message: str = "Identity token could not be verified") -> None:
        super().__init__(message)


class ExternalSignInUnavailableError(AppError):
    code = "external_sign_in_unavailable"
    status_code = 503

    def __init__(self) -> None:
        super().__init__("External sign-in is not configured")


def error_payload(exc: AppError) -> dict[str, Any]:
    """Build the structured error body returned to clients."""
    error: dict[str, Any] = {
        "code": exc.code,
        "message": exc.message,
        "retryable": exc.retryable,
    }
    error.update(exc.extra)
    return {"error": error, "detail": exc.message}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render AppError subclasses as structured JSON responses."""
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        f"Request failed: {exc.code}",
        extra={
            "structured": {
                "path": request.url.path,
                "error_code": exc.code,
                "status": exc.status_code,
            }
        },
    )
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))
