"""Global pytest configuration."""

import os

# Tests run fully in-process: no database, cache or external providers
for _var in (
    "DATABASE_URL",
    "REDIS_URL",
    "OPENAI_API_KEY",
    "STRIPE_SECRET_KEY",
    "STRIPE_WEBHOOK_SECRET",
    "IDENTITY_TOKEN_SECRET",
    "IDENTITY_JWKS_URL",
):
    os.environ.pop(_var, None)

os.environ.setdefault("JWT_SECRET", "test-secret")
