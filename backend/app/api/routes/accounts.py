"""Account endpoints - registration, sign-in, profile and usage stats."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator

from backend.app.api.auth import get_current_context
from backend.app.api.deps import (
    get_account_repository,
    get_identity_verifier,
    get_itinerary_repository,
)
from backend.app.auth.identity import authenticate, register, sign_in_external
from backend.app.auth.identity_tokens import IdentityTokenVerifier
from backend.app.auth.passwords import MAX_PASSWORD_BYTES
from backend.app.auth.tokens import issue_access_token
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext
from backend.app.db.repositories import AccountRepository, ItineraryRepository
from backend.app.errors import ExternalSignInUnavailableError
from backend.app.ledger.packages import DISPLAY_NAMES
from backend.app.models.account import Account, AccountView
from backend.app.models.common import PackageTier, credits_display

router = APIRouter(tags=["accounts"])


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    email: str | None = None
    display_name: str | None = None

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        """bcrypt only hashes the first 72 bytes."""
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    username: str
    password: str


class ExternalSignInRequest(BaseModel):
    """Request body for POST /auth/external."""

    id_token: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Access token plus the signed-in account."""

    access_token: str
    token_type: str = "bearer"
    account: AccountView


class AccountStatsResponse(BaseModel):
    """Response for GET /account/stats."""

    total_itineraries: int
    remaining_credits: int | str
    tier: PackageTier
    package_name: str


def _auth_response(account: Account, settings: Settings) -> AuthResponse:
    return AuthResponse(
        access_token=issue_access_token(account.id, settings),
        account=AccountView.from_account(account),
    )


@router.post("/auth/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_account(
    request: RegisterRequest,
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    """Create a local account with the starter credit grant."""
    account = register(
        accounts,
        request.username,
        request.password,
        settings.starter_credits,
        email=request.email,
        display_name=request.display_name,
    )
    return _auth_response(account, settings)


@router.post("/auth/login", response_model=AuthResponse)
def login(
    request: LoginRequest,
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    """Exchange username/password for an access token."""
    account = authenticate(accounts, request.username, request.password)
    return _auth_response(account, settings)


@router.post("/auth/external", response_model=AuthResponse)
def external_sign_in(
    request: ExternalSignInRequest,
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
    verifier: Annotated[IdentityTokenVerifier | None, Depends(get_identity_verifier)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthResponse:
    """Sign in with a provider-signed ID token, creating or linking the account.

    Raises:
        ExternalSignInUnavailableError: No verifier configured
        InvalidIdentityTokenError: Token signature or claims rejected
    """
    if verifier is None:
        raise ExternalSignInUnavailableError()
    identity = verifier.verify(request.id_token)
    account = sign_in_external(accounts, identity, settings.starter_credits)
    return _auth_response(account, settings)


@router.post("/auth/logout", status_code=status.HTTP_200_OK)
async def logout(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
) -> dict[str, str]:
    """Acknowledge logout; tokens are discarded client-side."""
    return {"status": "logged_out"}


@router.get("/account", response_model=AccountView)
def get_account(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
) -> AccountView:
    """Current account."""
    return AccountView.from_account(accounts.get_account(ctx.account_id))


@router.get("/account/stats", response_model=AccountStatsResponse)
def account_stats(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
    itineraries: Annotated[ItineraryRepository, Depends(get_itinerary_repository)],
) -> AccountStatsResponse:
    """Usage summary for the dashboard."""
    account = accounts.get_account(ctx.account_id)
    return AccountStatsResponse(
        total_itineraries=itineraries.count_by_account(ctx.account_id),
        remaining_credits=credits_display(account.credits),
        tier=account.tier,
        package_name=DISPLAY_NAMES[account.tier],
    )
