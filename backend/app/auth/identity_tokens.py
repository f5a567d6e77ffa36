"""Verification of ID tokens issued by an external identity provider.

Two modes, picked from settings:
- Shared secret (HS256), for development and tests
- JWKS (RS256), keys fetched from the provider by key id
"""

import logging
from typing import Any

import jwt

from backend.app.auth.identity import ExternalIdentity
from backend.app.config import Settings
from backend.app.errors import InvalidIdentityTokenError

logger = logging.getLogger(__name__)


class IdentityTokenVerifier:
    """Turns a signed ID token into a verified ExternalIdentity."""

    def __init__(
        self,
        provider_id: str,
        *,
        secret: str | None = None,
        jwks_client: jwt.PyJWKClient | None = None,
        audience: str | None = None,
        issuer: str | None = None,
    ) -> None:
        if secret is None and jwks_client is None:
            raise ValueError("Either a shared secret or a JWKS client is required")
        self._provider_id = provider_id
        self._secret = secret
        self._jwks_client = jwks_client
        self._audience = audience
        self._issuer = issuer

    def verify(self, id_token: str) -> ExternalIdentity:
        """Check signature, expiry, audience and issuer, then map claims.

        Raises:
            InvalidIdentityTokenError: If any check fails
        """
        try:
            claims = self._decode(id_token)
        except jwt.PyJWTError as e:
            logger.info(f"Rejected identity token: {e}")
            raise InvalidIdentityTokenError() from e
        return identity_from_claims(claims, self._provider_id)

    def _decode(self, id_token: str) -> dict[str, Any]:
        key: Any
        if self._jwks_client is not None:
            key, algorithms = self._jwks_client.get_signing_key_from_jwt(id_token).key, ["RS256"]
        else:
            key, algorithms = self._secret, ["HS256"]

        return jwt.decode(
            id_token,
            key,
            algorithms=algorithms,
            audience=self._audience,
            issuer=self._issuer,
            options={"require": ["sub", "exp"], "verify_aud": self._audience is not None},
        )


def identity_from_claims(claims: dict[str, Any], provider_id: str) -> ExternalIdentity:
    """Map standard OIDC claims onto an ExternalIdentity."""
    return ExternalIdentity(
        provider_id=provider_id,
        uid=str(claims["sub"]),
        username=claims.get("preferred_username"),
        email=claims.get("email"),
        email_verified=claims.get("email_verified") is True,
        display_name=claims.get("name"),
        photo_url=claims.get("picture"),
    )


def build_identity_verifier(settings: Settings) -> IdentityTokenVerifier | None:
    """Verifier from settings, or None when external sign-in is not configured."""
    if settings.identity_token_secret and settings.identity_token_secret.get_secret_value():
        return IdentityTokenVerifier(
            settings.identity_provider_id,
            secret=settings.identity_token_secret.get_secret_value(),
            audience=settings.identity_token_audience,
            issuer=settings.identity_token_issuer,
        )
    if settings.identity_jwks_url:
        return IdentityTokenVerifier(
            settings.identity_provider_id,
            jwks_client=jwt.PyJWKClient(settings.identity_jwks_url),
            audience=settings.identity_token_audience,
            issuer=settings.identity_token_issuer,
        )
    return None
