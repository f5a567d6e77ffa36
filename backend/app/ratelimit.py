"""Per-account request quotas: key scheme, Redis limiter and bucket wiring."""

from datetime import datetime

import redis

from backend.app.config import Settings
from backend.app.db.context import RequestContext
from backend.app.db.inmemory import InMemoryRateLimiter
from backend.app.db.repositories import RateLimiter, RetryAfter

GENERATION_BUCKET = "generation"
CRUD_BUCKET = "crud"


def make_rate_limit_key(ctx: RequestContext, bucket: str) -> str:
    """Quota key for an account in a bucket, e.g. "account:7:generation"."""
    return f"account:{ctx.account_id}:{bucket}"


class RedisRateLimiter:
    """Fixed-window limiter shared across workers.

    Each window gets its own counter key. INCR and EXPIRE run in one
    MULTI/EXEC, so every counter carries a TTL.
    """

    def __init__(self, redis_client: redis.Redis, max_requests: int, window_seconds: int = 60) -> None:
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Count one request against the current window.

        Returns:
            RetryAfter until the window closes if over quota, None if allowed
        """
        timestamp = int(now.timestamp())
        window_start = timestamp - timestamp % self._window_seconds
        redis_key = f"ratelimit:{key}:{window_start}"

        pipe = self._redis.pipeline(transaction=True)
        pipe.incr(redis_key)
        pipe.expire(redis_key, self._window_seconds * 2)
        count, _ = pipe.execute()

        if int(count) <= self._max_requests:
            return None

        return RetryAfter(seconds=max(1, window_start + self._window_seconds - timestamp))


def build_limiters(settings: Settings, redis_client: redis.Redis | None = None) -> dict[str, RateLimiter]:
    """Limiter per bucket from configured quotas.

    Uses Redis when a client is given so quotas hold across processes,
    otherwise process-local counters.
    """
    quotas = {
        GENERATION_BUCKET: settings.generation_runs_per_min,
        CRUD_BUCKET: settings.crud_ops_per_min,
    }
    if redis_client is not None:
        return {bucket: RedisRateLimiter(redis_client, quota) for bucket, quota in quotas.items()}
    return {bucket: InMemoryRateLimiter(quota) for bucket, quota in quotas.items()}
