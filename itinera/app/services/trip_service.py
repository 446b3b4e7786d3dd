"""Trip service - owner-scoped trip management and public sharing."""

import logging
import re
import uuid

from itinera.app.auth.identity import Identity
from itinera.app.config import Settings
from itinera.app.db.repositories import ItineraryRepository, TripRepository
from itinera.app.errors import Forbidden, InvalidState, NotFound
from itinera.app.models.trip import Trip, TripCreate, TripsPage, TripUpdate

logger = logging.getLogger(__name__)

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")
DEFAULT_SLUG = "trip"


def slugify(title: str, max_length: int = 50) -> str:
    """Turn a trip title into a URL slug.

    Lower-cases, replaces each run of non-alphanumerics with ``-``, trims
    dashes and caps the length. Titles without any usable character
    become ``trip``.
    """
    slug = _NON_SLUG_CHARS.sub("-", title.lower()).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or DEFAULT_SLUG


def can_read_trip(trip: Trip, identity: Identity | None) -> bool:
    """Owner can always read; anyone can read a public trip."""
    return trip.is_public or (identity is not None and trip.owner_id == identity.id)


class TripService:
    """Trip operations on behalf of a resolved identity."""

    def __init__(
        self,
        trips: TripRepository,
        itineraries: ItineraryRepository,
        settings: Settings,
    ) -> None:
        self._trips = trips
        self._itineraries = itineraries
        self._settings = settings

    async def create_trip(self, identity: Identity, data: TripCreate) -> Trip:
        """Create a trip owned by the caller."""
        trip = await self._trips.create_trip(identity.id, data)
        logger.info(f"[TripService] created trip_id={trip.id} owner={identity.id}")
        return trip

    async def list_my_trips(
        self, identity: Identity, limit: int | None = None, offset: int = 0
    ) -> TripsPage:
        """List the caller's trips, newest first.

        Args:
            identity: Caller
            limit: Page size; defaults to the configured page size and is
                capped at the configured maximum
            offset: Number of trips to skip

        Returns:
            Page with the total count and whether more trips follow
        """
        if offset < 0:
            raise InvalidState("offset must be >= 0")

        page_size = limit if limit is not None else self._settings.default_page_size
        page_size = max(1, min(page_size, self._settings.max_page_size))

        trips, total = await self._trips.list_trips_for_owner(identity.id, page_size, offset)
        return TripsPage(trips=trips, total=total, has_more=offset + len(trips) < total)

    async def get_trip(self, identity: Identity, trip_id: uuid.UUID) -> Trip:
        """Get a trip the caller owns, or any public trip.

        Raises:
            NotFound: No such trip
            Forbidden: Trip is private and owned by someone else
        """
        trip = await self._load(trip_id)
        if not can_read_trip(trip, identity):
            raise Forbidden("You do not have access to this trip")
        return trip

    async def get_public_trip(self, slug: str) -> Trip:
        """Get a public trip by slug, without authentication.

        Raises:
            NotFound: No public trip has this slug
        """
        trip = await self._trips.get_public_trip_by_slug(slug)
        if trip is None:
            raise NotFound(f"Public trip '{slug}' not found")
        return trip

    async def update_trip(self, identity: Identity, trip_id: uuid.UUID, update: TripUpdate) -> Trip:
        """Apply the fields present in ``update`` to an owned trip.

        The public slug is not regenerated when the title changes, so shared
        links stay valid.

        Raises:
            NotFound: No such trip
            Forbidden: Caller is not the owner
            InvalidState: Title cleared, or resulting end date before start date
        """
        trip = await self._load_owned(identity, trip_id)
        changes = update.model_dump(exclude_unset=True)

        if "title" in changes and changes["title"] is None:
            raise InvalidState("title cannot be empty")

        start = changes.get("start_date", trip.start_date)
        end = changes.get("end_date", trip.end_date)
        if start is not None and end is not None and end < start:
            raise InvalidState("end_date must be >= start_date")

        if not changes:
            return trip

        updated = await self._trips.update_trip(trip_id, changes)
        if updated is None:
            raise NotFound(f"Trip {trip_id} not found")
        return updated

    async def delete_trip(self, identity: Identity, trip_id: uuid.UUID) -> None:
        """Delete an owned trip together with its itinerary."""
        await self._load_owned(identity, trip_id)
        await self._itineraries.delete_for_trip(trip_id)
        await self._trips.delete_trip(trip_id)
        logger.info(f"[TripService] deleted trip_id={trip_id} owner={identity.id}")

    async def set_visibility(
        self, identity: Identity, trip_id: uuid.UUID, is_public: bool
    ) -> str | None:
        """Make an owned trip public or private.

        Returns:
            The trip's public slug, or None once private
        """
        trip = await self._load_owned(identity, trip_id)

        if not is_public:
            await self._trips.update_trip(trip_id, {"is_public": False, "slug": None})
            return None

        slug = trip.slug or await self._unique_slug(trip.title)
        await self._trips.update_trip(trip_id, {"is_public": True, "slug": slug})
        logger.info(f"[TripService] published trip_id={trip_id} slug={slug}")
        return slug

    async def _unique_slug(self, title: str) -> str:
        max_length = self._settings.slug_max_length
        base = slugify(title, max_length)
        candidate = base
        counter = 0

        while await self._trips.slug_exists(candidate):
            counter += 1
            suffix = f"-{counter}"
            candidate = f"{base[: max_length - len(suffix)].rstrip('-')}{suffix}"

        return candidate

    async def _load(self, trip_id: uuid.UUID) -> Trip:
        trip = await self._trips.get_trip(trip_id)
        if trip is None:
            raise NotFound(f"Trip {trip_id} not found")
        return trip

    async def _load_owned(self, identity: Identity, trip_id: uuid.UUID) -> Trip:
        trip = await self._load(trip_id)
        if trip.owner_id != identity.id:
            raise Forbidden("Only the trip owner can change this trip")
        return trip
