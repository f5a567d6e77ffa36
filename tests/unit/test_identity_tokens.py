"""Tests for ID token verification used by external sign-in."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import jwt
import pytest
from pydantic import SecretStr

from backend.app.auth.identity_tokens import (
    IdentityTokenVerifier,
    build_identity_verifier,
    identity_from_claims,
)
from backend.app.config import Settings
from backend.app.errors import InvalidIdentityTokenError

SECRET = "unit-identity-secret"


def _token(secret: str = SECRET, **claims: object) -> str:
    now = datetime.now(timezone.utc)
    payload = {"sub": "u-1", "iat": now, "exp": now + timedelta(minutes=5), **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


class TestVerify:
    def test_maps_claims(self) -> None:
        verifier = IdentityTokenVerifier("google.com", secret=SECRET)

        identity = verifier.verify(
            _token(
                email="gina@example.com",
                email_verified=True,
                name="Gina",
                picture="https://img/g.png",
                preferred_username="gina",
            )
        )

        assert identity.provider_id == "google.com"
        assert identity.uid == "u-1"
        assert identity.username == "gina"
        assert identity.email_verified is True
        assert identity.display_name == "Gina"
        assert identity.photo_url == "https://img/g.png"

    @pytest.mark.parametrize(
        "token",
        [
            _token(secret="other-secret"),
            _token(exp=datetime.now(timezone.utc) - timedelta(seconds=30)),
            jwt.encode({"sub": "u-1", "exp": 4102444800}, key=None, algorithm="none"),
            jwt.encode({"exp": 4102444800}, SECRET, algorithm="HS256"),
            "garbage",
        ],
        ids=["wrong-secret", "expired", "unsigned", "no-subject", "garbage"],
    )
    def test_rejects(self, token: str) -> None:
        verifier = IdentityTokenVerifier("google.com", secret=SECRET)

        with pytest.raises(InvalidIdentityTokenError):
            verifier.verify(token)

    def test_audience_and_issuer_enforced(self) -> None:
        verifier = IdentityTokenVerifier(
            "google.com", secret=SECRET, audience="trip-planner", issuer="https://issuer.test"
        )

        good = _token(aud="trip-planner", iss="https://issuer.test")
        assert verifier.verify(good).uid == "u-1"

        with pytest.raises(InvalidIdentityTokenError):
            verifier.verify(_token(aud="someone-else", iss="https://issuer.test"))
        with pytest.raises(InvalidIdentityTokenError):
            verifier.verify(_token(aud="trip-planner", iss="https://evil.test"))

    def test_jwks_key_lookup_failure_rejected(self) -> None:
        jwks_client = MagicMock(spec=jwt.PyJWKClient)
        jwks_client.get_signing_key_from_jwt.side_effect = jwt.PyJWKClientError("no key")
        verifier = IdentityTokenVerifier("oidc", jwks_client=jwks_client)

        with pytest.raises(InvalidIdentityTokenError):
            verifier.verify(_token())

    def test_requires_a_key_source(self) -> None:
        with pytest.raises(ValueError):
            IdentityTokenVerifier("google.com")


def test_unverified_email_claim_is_not_trusted() -> None:
    identity = identity_from_claims({"sub": "u-1", "email": "a@example.com", "email_verified": "true"}, "oidc")
    assert identity.email_verified is False


class TestBuildIdentityVerifier:
    def test_disabled_without_key_source(self) -> None:
        assert build_identity_verifier(Settings(identity_token_secret=None, identity_jwks_url=None)) is None

    def test_shared_secret(self) -> None:
        verifier = build_identity_verifier(
            Settings(identity_token_secret=SecretStr(SECRET), identity_provider_id="google.com")
        )

        assert verifier is not None
        assert verifier.verify(_token()).provider_id == "google.com"

    def test_jwks_url(self) -> None:
        verifier = build_identity_verifier(
            Settings(identity_token_secret=None, identity_jwks_url="https://issuer.test/jwks.json")
        )
        assert verifier is not None
