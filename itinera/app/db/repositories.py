"""Repository protocol interfaces for data access."""

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from itinera.app.auth.identity import Profile
from itinera.app.models.itinerary import Itinerary, Stop, StopInput
from itinera.app.models.trip import Trip, TripCreate

ItineraryMutation = Callable[[Itinerary], Itinerary]


@dataclass
class AccountRecord:
    """Local account data record."""

    id: str
    email: str
    password_hash: str
    created_at: datetime
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None

    def to_profile(self) -> Profile:
        return Profile(
            subject_id=self.id,
            email=self.email,
            created_at=self.created_at,
            first_name=self.first_name,
            last_name=self.last_name,
            image_url=self.image_url,
        )


class AccountRepository(Protocol):
    """Repository for local accounts. Doubles as the local ProfileStore."""

    async def create_account(
        self,
        email: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> AccountRecord:
        """Create a local account.

        Raises:
            InvalidState: If the e-mail is already registered
        """
        ...

    async def get_account_by_email(self, email: str) -> AccountRecord | None:
        """Get account by (normalized) e-mail."""
        ...

    async def get_profile(self, subject_id: str) -> Profile:
        """Get the profile of an account.

        Raises:
            ProfileNotFound: If no account has this id
        """
        ...


class TripRepository(Protocol):
    """Repository for trip operations.

    Ownership is enforced by the service layer, which needs to tell a
    missing trip (NotFound) from someone else's trip (Forbidden).
    """

    async def create_trip(self, owner_id: str, data: TripCreate) -> Trip:
        """Create a trip owned by ``owner_id``."""
        ...

    async def get_trip(self, trip_id: uuid.UUID) -> Trip | None:
        """Get trip by ID."""
        ...

    async def get_public_trip_by_slug(self, slug: str) -> Trip | None:
        """Get a public trip by its slug."""
        ...

    async def list_trips_for_owner(
        self, owner_id: str, limit: int, offset: int
    ) -> tuple[list[Trip], int]:
        """List an owner's trips, newest first.

        Returns:
            Tuple of (page of trips, total trip count for the owner)
        """
        ...

    async def update_trip(self, trip_id: uuid.UUID, changes: dict[str, Any]) -> Trip | None:
        """Apply field changes to a trip. Returns None if the trip is gone."""
        ...

    async def delete_trip(self, trip_id: uuid.UUID) -> bool:
        """Delete a trip. Returns False if it did not exist."""
        ...

    async def slug_exists(self, slug: str) -> bool:
        """Check whether any trip uses ``slug``."""
        ...


class ItineraryRepository(Protocol):
    """Repository for itineraries and their items."""

    async def create_itinerary(self, itinerary: Itinerary) -> Itinerary:
        """Store a new itinerary.

        Raises:
            InvalidState: If the trip already has an itinerary
        """
        ...

    async def get_itinerary(self, itinerary_id: uuid.UUID) -> Itinerary | None:
        """Get itinerary by ID."""
        ...

    async def get_itinerary_for_trip(self, trip_id: uuid.UUID) -> Itinerary | None:
        """Get the itinerary attached to a trip."""
        ...

    async def mutate(self, itinerary_id: uuid.UUID, fn: ItineraryMutation) -> Itinerary:
        """Atomically read, transform and write an itinerary.

        ``fn`` runs while no other mutation of the same itinerary can read
        it. If ``fn`` raises, nothing is written. The stored version is
        incremented on success.

        Raises:
            NotFound: If the itinerary does not exist
        """
        ...

    async def delete_itinerary(self, itinerary_id: uuid.UUID) -> bool:
        """Delete an itinerary. Returns False if it did not exist."""
        ...

    async def delete_for_trip(self, trip_id: uuid.UUID) -> None:
        """Delete the itinerary of a trip, if any."""
        ...


class StopRepository(Protocol):
    """Repository for the stop catalogue."""

    async def create_stop(self, data: StopInput) -> Stop:
        """Create a stop."""
        ...

    async def get_stop(self, stop_id: uuid.UUID) -> Stop | None:
        """Get stop by ID."""
        ...

    async def delete_stop(self, stop_id: uuid.UUID) -> bool:
        """Delete a stop. Returns False if it did not exist."""
        ...


@dataclass
class RetryAfter:
    """Rate limit retry-after information."""

    seconds: int


class RateLimiter(Protocol):
    """Rate limiter interface."""

    def check_quota(self, key: str, now: datetime) -> RetryAfter | None:
        """Check if quota is available.

        Args:
            key: Rate limit key
            now: Current timestamp

        Returns:
            RetryAfter if over quota, None if allowed
        """
        ...
