"""FastAPI dependency providers for repositories, services and rate limiting.

Repository providers are the seam tests override (``app.dependency_overrides``)
to run the API against in-memory repositories.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Annotated

import redis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from itinera.app.auth.verifiers import LocalTokenIssuer
from itinera.app.config import Settings, get_settings
from itinera.app.db.engine import get_session
from itinera.app.db.inmemory import InMemoryRateLimiter
from itinera.app.db.locks import LockRegistry
from itinera.app.db.repositories import (
    AccountRepository,
    ItineraryRepository,
    RateLimiter,
    StopRepository,
    TripRepository,
)
from itinera.app.db.sql_repositories import (
    SqlAccountRepository,
    SqlItineraryRepository,
    SqlStopRepository,
    SqlTripRepository,
)
from itinera.app.ratelimit import RedisRateLimiter
from itinera.app.services.account_service import AccountService
from itinera.app.services.itinerary_service import ItineraryService
from itinera.app.services.trip_service import TripService

# Shared by every request so that mutations of one itinerary serialize process-wide
_itinerary_locks = LockRegistry()


def get_lock_registry() -> LockRegistry:
    """Process-wide itinerary lock registry."""
    return _itinerary_locks


def get_account_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> AccountRepository:
    return SqlAccountRepository(session)


def get_trip_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TripRepository:
    return SqlTripRepository(session)


def get_itinerary_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
    locks: Annotated[LockRegistry, Depends(get_lock_registry)],
) -> ItineraryRepository:
    return SqlItineraryRepository(session, locks)


def get_stop_repository(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> StopRepository:
    return SqlStopRepository(session)


def get_trip_service(
    trips: Annotated[TripRepository, Depends(get_trip_repository)],
    itineraries: Annotated[ItineraryRepository, Depends(get_itinerary_repository)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TripService:
    return TripService(trips, itineraries, settings)


def get_itinerary_service(
    trips: Annotated[TripRepository, Depends(get_trip_repository)],
    itineraries: Annotated[ItineraryRepository, Depends(get_itinerary_repository)],
    stops: Annotated[StopRepository, Depends(get_stop_repository)],
) -> ItineraryService:
    return ItineraryService(trips, itineraries, stops)


def get_token_issuer(settings: Annotated[Settings, Depends(get_settings)]) -> LocalTokenIssuer:
    return LocalTokenIssuer(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
        expiration=timedelta(hours=settings.jwt_expiration_hours),
    )


def get_account_service(
    accounts: Annotated[AccountRepository, Depends(get_account_repository)],
    issuer: Annotated[LocalTokenIssuer, Depends(get_token_issuer)],
) -> AccountService:
    return AccountService(accounts, issuer)


@lru_cache
def _build_rate_limiter(redis_url: str | None, max_requests: int) -> RateLimiter:
    if redis_url:
        return RedisRateLimiter(redis.from_url(redis_url), max_requests)
    return InMemoryRateLimiter(max_requests)


def get_rate_limiter(settings: Annotated[Settings, Depends(get_settings)]) -> RateLimiter:
    """Redis limiter when REDIS_URL is set, otherwise a process-local one."""
    return _build_rate_limiter(settings.redis_url, settings.crud_ops_per_min)
