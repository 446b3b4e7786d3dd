"""Tests for rate limiting."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from itinera.app.db.inmemory import InMemoryRateLimiter
from itinera.app.middleware.ratelimit import RateLimitMiddleware, create_default_bucket_map
from itinera.app.ratelimit import RedisRateLimiter, make_rate_limit_key


def _now() -> datetime:
    return datetime.now(timezone.utc)


def test_rate_limiter_allows_under_quota() -> None:
    limiter = InMemoryRateLimiter(max_requests=5, window_seconds=60)
    now = _now()

    for i in range(5):
        assert limiter.check_quota("user:trips", now + timedelta(seconds=i)) is None


def test_rate_limiter_blocks_over_quota() -> None:
    limiter = InMemoryRateLimiter(max_requests=3, window_seconds=60)
    now = _now()

    for _ in range(3):
        assert limiter.check_quota("user:trips", now) is None

    retry_after = limiter.check_quota("user:trips", now + timedelta(seconds=20))
    assert retry_after is not None
    assert retry_after.seconds == 40


def test_rate_limiter_resets_after_window() -> None:
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60)
    now = _now()

    limiter.check_quota("k", now)
    limiter.check_quota("k", now)
    assert limiter.check_quota("k", now) is not None

    assert limiter.check_quota("k", now + timedelta(seconds=61)) is None


def test_rate_limiter_separate_keys() -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60)
    now = _now()

    limiter.check_quota("alice:trips", now)

    assert limiter.check_quota("alice:trips", now) is not None
    assert limiter.check_quota("bob:trips", now) is None


def test_make_rate_limit_key() -> None:
    assert make_rate_limit_key("user_2abc", "itinerary") == "user_2abc:itinerary"


def test_middleware_blocks_mutations_over_quota() -> None:
    limiter = InMemoryRateLimiter(max_requests=2, window_seconds=60)
    middleware = RateLimitMiddleware(limiter, create_default_bucket_map())
    now = _now()

    middleware.check_rate_limit("POST", "/trips", "alice", now)
    middleware.check_rate_limit("PATCH", "/trips/123", "alice", now)
    allowed, retry_after = middleware.check_rate_limit("DELETE", "/trips/123", "alice", now)

    assert allowed is False
    assert retry_after > 0


def test_middleware_ignores_reads() -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60)
    middleware = RateLimitMiddleware(limiter, create_default_bucket_map())
    now = _now()

    for _ in range(5):
        assert middleware.check_rate_limit("GET", "/trips", "alice", now) == (True, 0)


def test_middleware_buckets_are_separate() -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60)
    middleware = RateLimitMiddleware(limiter, create_default_bucket_map())
    now = _now()

    assert middleware.check_rate_limit("POST", "/trips", "alice", now) == (True, 0)
    assert middleware.check_rate_limit("POST", "/itineraries/1/stops", "alice", now) == (True, 0)


def test_middleware_unmapped_path() -> None:
    limiter = InMemoryRateLimiter(max_requests=1, window_seconds=60)
    middleware = RateLimitMiddleware(limiter, create_default_bucket_map())

    for _ in range(3):
        assert middleware.check_rate_limit("POST", "/auth/login", "alice") == (True, 0)


def test_create_default_bucket_map() -> None:
    bucket_map = create_default_bucket_map()

    assert bucket_map["/trips"] == "trips"
    assert bucket_map["/itineraries"] == "itinerary"


def _redis_with_counts(*counts: int) -> MagicMock:
    client = MagicMock()
    pipe = client.pipeline.return_value
    pipe.execute.side_effect = [[count, True] for count in counts]
    return client


def test_redis_limiter_counts_per_window() -> None:
    """One pipelined INCR + EXPIRE per request on a window-indexed key."""
    client = _redis_with_counts(1, 2, 3)
    limiter = RedisRateLimiter(client, max_requests=2, window_seconds=60)
    now = datetime(2026, 3, 1, 12, 0, 30, tzinfo=timezone.utc)

    assert limiter.check_quota("alice:trips", now) is None
    assert limiter.check_quota("alice:trips", now) is None
    retry_after = limiter.check_quota("alice:trips", now)

    window_index = int(now.timestamp() // 60)
    pipe = client.pipeline.return_value
    pipe.incr.assert_called_with(f"itinera:quota:alice:trips:{window_index}")
    pipe.expire.assert_called_with(f"itinera:quota:alice:trips:{window_index}", 60)
    assert retry_after is not None
    assert retry_after.seconds == 30


def test_redis_limiter_new_window_key() -> None:
    client = _redis_with_counts(1, 1)
    limiter = RedisRateLimiter(client, max_requests=1, window_seconds=60)
    now = datetime(2026, 3, 1, 12, 0, 59, tzinfo=timezone.utc)

    limiter.check_quota("alice:trips", now)
    limiter.check_quota("alice:trips", now + timedelta(seconds=2))

    keys = [c.args[0] for c in client.pipeline.return_value.incr.call_args_list]
    assert len(set(keys)) == 2
