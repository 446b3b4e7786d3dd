"""In-memory implementations of repository interfaces."""

import itertools
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from itinera.app.auth.identity import Profile
from itinera.app.auth.verifiers import ProfileNotFound
from itinera.app.db.locks import LockRegistry
from itinera.app.db.repositories import (
    AccountRecord,
    ItineraryMutation,
    RetryAfter,
)
from itinera.app.errors import InvalidState, NotFound
from itinera.app.models.itinerary import Itinerary, Stop, StopInput
from itinera.app.models.trip import Trip, TripCreate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryAccountRepository:
    """In-memory implementation of AccountRepository."""

    def __init__(self) -> None:
        self._accounts: dict[str, AccountRecord] = {}
        self._by_email: dict[str, str] = {}

    async def create_account(
        self,
        email: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> AccountRecord:
        """Create a local account."""
        email = email.lower()
        if email in self._by_email:
            raise InvalidState("An account with this e-mail already exists")

        record = AccountRecord(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=password_hash,
            created_at=_utcnow(),
            first_name=first_name,
            last_name=last_name,
        )
        self._accounts[record.id] = record
        self._by_email[email] = record.id
        return record

    async def get_account_by_email(self, email: str) -> AccountRecord | None:
        """Get account by e-mail."""
        account_id = self._by_email.get(email.lower())
        return self._accounts.get(account_id) if account_id else None

    async def get_profile(self, subject_id: str) -> Profile:
        """Get the profile of an account."""
        record = self._accounts.get(subject_id)
        if record is None:
            raise ProfileNotFound(f"No account {subject_id}")
        return record.to_profile()


class InMemoryTripRepository:
    """In-memory implementation of TripRepository."""

    def __init__(self) -> None:
        self._trips: dict[uuid.UUID, Trip] = {}
        # Insertion sequence breaks created_at ties in listings
        self._seq: dict[uuid.UUID, int] = {}
        self._counter = itertools.count()

    async def create_trip(self, owner_id: str, data: TripCreate) -> Trip:
        """Create a trip."""
        now = _utcnow()
        trip = Trip(
            id=uuid.uuid4(),
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._trips[trip.id] = trip
        self._seq[trip.id] = next(self._counter)
        return trip

    async def get_trip(self, trip_id: uuid.UUID) -> Trip | None:
        """Get trip by ID."""
        return self._trips.get(trip_id)

    async def get_public_trip_by_slug(self, slug: str) -> Trip | None:
        """Get a public trip by slug."""
        for trip in self._trips.values():
            if trip.is_public and trip.slug == slug:
                return trip
        return None

    async def list_trips_for_owner(
        self, owner_id: str, limit: int, offset: int
    ) -> tuple[list[Trip], int]:
        """List an owner's trips, newest first."""
        owned = [t for t in self._trips.values() if t.owner_id == owner_id]
        owned.sort(key=lambda t: (t.created_at, self._seq[t.id]), reverse=True)
        return owned[offset : offset + limit], len(owned)

    async def update_trip(self, trip_id: uuid.UUID, changes: dict[str, Any]) -> Trip | None:
        """Apply field changes to a trip."""
        trip = self._trips.get(trip_id)
        if trip is None:
            return None

        updated = trip.model_copy(update={**changes, "updated_at": _utcnow()})
        self._trips[trip_id] = updated
        return updated

    async def delete_trip(self, trip_id: uuid.UUID) -> bool:
        """Delete a trip."""
        self._seq.pop(trip_id, None)
        return self._trips.pop(trip_id, None) is not None

    async def slug_exists(self, slug: str) -> bool:
        """Check whether a slug is taken."""
        return any(t.slug == slug for t in self._trips.values())


class InMemoryItineraryRepository:
    """In-memory implementation of ItineraryRepository."""

    def __init__(self, locks: LockRegistry | None = None) -> None:
        self._itineraries: dict[uuid.UUID, Itinerary] = {}
        self._locks = locks or LockRegistry()

    async def create_itinerary(self, itinerary: Itinerary) -> Itinerary:
        """Store a new itinerary."""
        if await self.get_itinerary_for_trip(itinerary.trip_id) is not None:
            raise InvalidState(f"Trip {itinerary.trip_id} already has an itinerary")

        self._itineraries[itinerary.id] = itinerary
        return itinerary

    async def get_itinerary(self, itinerary_id: uuid.UUID) -> Itinerary | None:
        """Get itinerary by ID."""
        return self._itineraries.get(itinerary_id)

    async def get_itinerary_for_trip(self, trip_id: uuid.UUID) -> Itinerary | None:
        """Get the itinerary attached to a trip."""
        for itinerary in self._itineraries.values():
            if itinerary.trip_id == trip_id:
                return itinerary
        return None

    async def mutate(self, itinerary_id: uuid.UUID, fn: ItineraryMutation) -> Itinerary:
        """Atomically transform a stored itinerary."""
        async with self._locks.hold(itinerary_id):
            current = self._itineraries.get(itinerary_id)
            if current is None:
                raise NotFound(f"Itinerary {itinerary_id} not found")

            updated = fn(current).model_copy(update={"version": current.version + 1})
            self._itineraries[itinerary_id] = updated
            return updated

    async def delete_itinerary(self, itinerary_id: uuid.UUID) -> bool:
        """Delete an itinerary."""
        async with self._locks.hold(itinerary_id):
            return self._itineraries.pop(itinerary_id, None) is not None

    async def delete_for_trip(self, trip_id: uuid.UUID) -> None:
        """Delete the itinerary of a trip, if any."""
        itinerary = await self.get_itinerary_for_trip(trip_id)
        if itinerary is not None:
            await self.delete_itinerary(itinerary.id)


class InMemoryStopRepository:
    """In-memory implementation of StopRepository."""

    def __init__(self) -> None:
        self._stops: dict[uuid.UUID, Stop] = {}

    async def create_stop(self, data: StopInput) -> Stop:
        """Create a stop."""
        stop = Stop(id=uuid.uuid4(), **data.model_dump())
        self._stops[stop.id] = stop
        return stop

    async def get_stop(self, stop_id: uuid.UUID) -> Stop | None:
        """Get stop by ID."""
        return self._stops.get(stop_id)

    async def delete_stop(self, stop_id: uuid.UUID) -> bool:
        """Delete a stop."""
        return self._stops.pop(stop_id, None) is not None


class InMemoryRateLimiter:
    """In-memory implementation of RateLimiter using fixed window."""

    def __init__(self, max_requests: int, window_seconds: int = 60) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
        """
        self._max_requests = max_requests
        self._window = timedelta(seconds=window_seconds)
        self._windows: dict[str, tuple[datetime, int]] = {}

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available."""
        window_start, count = self._windows.get(key, (now, 0))

        if now >= window_start + self._window:
            window_start, count = now, 0

        if count >= self._max_requests:
            seconds_remaining = int((window_start + self._window - now).total_seconds())
            return RetryAfter(seconds=max(1, seconds_remaining))

        self._windows[key] = (window_start, count + 1)
        return None
