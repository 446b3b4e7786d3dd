"""Per-identity request quotas backed by Redis."""

import logging
import math
from datetime import datetime

import redis

from itinera.app.db.repositories import RetryAfter

logger = logging.getLogger(__name__)

KEY_PREFIX = "itinera:quota"


def make_rate_limit_key(subject_id: str, bucket: str) -> str:
    """Quota key for one identity and bucket, e.g. ``user_2abc:trips``."""
    return f"{subject_id}:{bucket}"


class RedisRateLimiter:
    """Fixed-window quota shared by every API worker.

    Each window gets its own counter key, so counters never need resetting;
    a key expires with its window.
    """

    def __init__(
        self, redis_client: redis.Redis, max_requests: int, window_seconds: int = 60
    ) -> None:
        self._redis = redis_client
        self._max_requests = max_requests
        self._window_seconds = window_seconds

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Count one request against the window containing ``now``.

        Args:
            key: Quota key from ``make_rate_limit_key``
            now: Request time

        Returns:
            RetryAfter until the window closes when over quota, else None
        """
        timestamp = now.timestamp()
        window_index = int(timestamp // self._window_seconds)
        counter_key = f"{KEY_PREFIX}:{key}:{window_index}"

        pipe = self._redis.pipeline()
        pipe.incr(counter_key)
        pipe.expire(counter_key, self._window_seconds)
        count, _ = pipe.execute()

        if count <= self._max_requests:
            return None

        window_end = (window_index + 1) * self._window_seconds
        retry_after = max(1, math.ceil(window_end - timestamp))
        logger.info(f"[RateLimit] over quota key={key} count={count} retry_after={retry_after}")
        return RetryAfter(seconds=retry_after)
