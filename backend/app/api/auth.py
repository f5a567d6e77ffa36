"""Auth dependency: bearer access token -> RequestContext."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from backend.app.auth.tokens import InvalidTokenError, decode_access_token
from backend.app.config import Settings, get_settings
from backend.app.db.context import RequestContext


async def get_current_context(
    authorization: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> RequestContext:
    """Extract request context from the authorization header.

    Args:
        authorization: Authorization header (e.g., "Bearer <token>")
        settings: Token verification settings

    Returns:
        RequestContext for the authenticated account

    Raises:
        HTTPException: 401 if the header is missing or the token is invalid
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = authorization[7:]  # Strip "Bearer "

    try:
        account_id = decode_access_token(token, settings)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    return RequestContext(account_id=account_id)
