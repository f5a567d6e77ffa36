"""Rate limiting middleware."""

import re
from datetime import datetime

from backend.app.db.context import RequestContext
from backend.app.db.repositories import RateLimiter
from backend.app.ratelimit import CRUD_BUCKET, GENERATION_BUCKET, make_rate_limit_key


class RateLimitMiddleware:
    """Rate limiting for HTTP requests.

    Maps (method, path) to buckets; each bucket has its own limiter so
    generation and plain reads/writes get separate quotas.
    """

    def __init__(
        self,
        limiters: dict[str, RateLimiter],
        bucket_map: list[tuple[str, str, str]],
    ) -> None:
        """Initialize rate limit middleware.

        Args:
            limiters: Limiter per bucket name
            bucket_map: Ordered (method, path regex, bucket) rules; first match wins.
                Method "*" matches any method.
        """
        self._limiters = limiters
        self._rules = [(method, re.compile(pattern), bucket) for method, pattern, bucket in bucket_map]

    def check_rate_limit(
        self,
        method: str,
        path: str,
        ctx: RequestContext,
        now: datetime | None = None,
    ) -> tuple[bool, int]:
        """Check if request is allowed under rate limit.

        Args:
            method: HTTP method
            path: Request path
            ctx: Request context
            now: Current time (for testing)

        Returns:
            Tuple of (allowed, retry_after_seconds)
        """
        if now is None:
            now = datetime.now()

        bucket = self._get_bucket(method, path)
        if bucket is None or bucket not in self._limiters:
            return (True, 0)

        key = make_rate_limit_key(ctx, bucket)
        retry_after = self._limiters[bucket].check_quota(key, now)

        if retry_after is None:
            return (True, 0)

        return (False, retry_after.seconds)

    def _get_bucket(self, method: str, path: str) -> str | None:
        for rule_method, pattern, bucket in self._rules:
            if rule_method not in ("*", method.upper()):
                continue
            if pattern.fullmatch(path):
                return bucket

        return None


def create_default_bucket_map() -> list[tuple[str, str, str]]:
    """Default rules: provider-backed calls are "generation", the rest "crud"."""
    return [
        ("POST", r"/itineraries", GENERATION_BUCKET),
        ("POST", r"/itineraries/\d+/days/\d+/regenerate", GENERATION_BUCKET),
        ("POST", r"/billing/itinerary-payment/complete", GENERATION_BUCKET),
        ("*", r"/itineraries(/.*)?", CRUD_BUCKET),
        ("*", r"/account(/.*)?", CRUD_BUCKET),
        ("POST", r"/billing/(packages|itinerary-payment)(/.*)?", CRUD_BUCKET),
    ]
