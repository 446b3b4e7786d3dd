"""Rate limiting for mutating requests."""

from datetime import datetime, timezone

from itinera.app.db.repositories import RateLimiter
from itinera.app.ratelimit import make_rate_limit_key

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class RateLimitMiddleware:
    """Maps request paths to buckets and enforces per-identity limits.

    Only mutating methods count against a bucket; reads are not limited.
    """

    def __init__(self, limiter: RateLimiter, bucket_map: dict[str, str]) -> None:
        """Initialize rate limit middleware.

        Args:
            limiter: Rate limiter implementation
            bucket_map: Mapping from path prefixes to bucket names
        """
        self._limiter = limiter
        self._bucket_map = bucket_map

    def check_rate_limit(
        self, method: str, path: str, subject_id: str, now: datetime | None = None
    ) -> tuple[bool, int]:
        """Check if request is allowed under rate limit.

        Args:
            method: HTTP method
            path: Request path
            subject_id: Resolved identity id
            now: Current time (for testing)

        Returns:
            Tuple of (allowed, retry_after_seconds)
        """
        if method.upper() not in MUTATING_METHODS:
            return (True, 0)

        bucket = self._get_bucket(path)
        if bucket is None:
            return (True, 0)

        now = now or datetime.now(timezone.utc)
        retry_after = self._limiter.check_quota(make_rate_limit_key(subject_id, bucket), now)

        if retry_after is None:
            return (True, 0)

        return (False, retry_after.seconds)

    def _get_bucket(self, path: str) -> str | None:
        for prefix, bucket in self._bucket_map.items():
            if path.startswith(prefix):
                return bucket

        return None


def create_default_bucket_map() -> dict[str, str]:
    """Create default bucket mapping.

    Returns:
        Dictionary mapping path prefixes to bucket names
    """
    return {
        "/trips": "trips",
        "/itineraries": "itinerary",
    }
