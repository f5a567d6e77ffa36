"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Database (unset -> in-memory stores)
    database_url: str | None = None

    # Cache (unset -> in-memory pending cache and rate limiter)
    redis_url: str | None = None

    # Auth
    jwt_secret: SecretStr = SecretStr("trip-planner-dev-secret")
    jwt_algorithm: str = "HS256"
    access_token_ttl_minutes: int = 30 * 24 * 60

    # Generation provider
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o"
    generation_timeout_seconds: float = 60.0

    # Payment provider
    stripe_secret_key: SecretStr | None = None
    stripe_webhook_secret: SecretStr | None = None

    # External identity tokens (unset -> /auth/external disabled)
    identity_provider_id: str = "oidc"
    identity_token_secret: SecretStr | None = None
    identity_jwks_url: str | None = None
    identity_token_audience: str | None = None
    identity_token_issuer: str | None = None

    # Ledger
    starter_credits: int = 3

    # Pending pay-per-itinerary purchases (seconds)
    pending_purchase_ttl_seconds: int = 3600

    # Rate limiting (requests per minute)
    generation_runs_per_min: int = 5
    crud_ops_per_min: int = 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
