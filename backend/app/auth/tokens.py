"""Bearer access tokens (HS256 JWT) carrying the account id."""

import logging
from datetime import datetime, timedelta, timezone

import jwt

from backend.app.config import Settings

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Token is missing, expired, malformed or signed with another key."""

    pass


def issue_access_token(account_id: int, settings: Settings, now: datetime | None = None) -> str:
    """Issue a signed access token for an account.

    Args:
        account_id: Account the token authenticates
        settings: Source of the signing secret, algorithm and TTL
        now: Issue time (for testing)

    Returns:
        Encoded JWT
    """
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(account_id),
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_ttl_minutes),
    }
    return jwt.encode(
        payload, settings.jwt_secret.get_secret_value(), algorithm=settings.jwt_algorithm
    )


def decode_access_token(token: str, settings: Settings) -> int:
    """Verify a token and return the account id from its `sub` claim.

    Raises:
        InvalidTokenError: If verification fails or the claim is unusable
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidTokenError("Token expired") from e
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise InvalidTokenError("Invalid token") from e

    try:
        return int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise InvalidTokenError("Invalid subject claim") from e
