"""SQL implementations of repository interfaces."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from itinera.app.auth.identity import Profile
from itinera.app.auth.verifiers import ProfileNotFound
from itinera.app.db import models
from itinera.app.db.locks import LockRegistry
from itinera.app.db.queries import (
    count_trips_for_owner,
    select_itinerary,
    select_itinerary_for_trip,
    select_itinerary_for_update,
    select_trips_for_owner,
)
from itinera.app.db.repositories import AccountRecord, ItineraryMutation
from itinera.app.errors import InvalidState, NotFound
from itinera.app.itinerary import composer
from itinera.app.models.common import Geo
from itinera.app.models.itinerary import Itinerary, ItineraryItem, Stop, StopInput
from itinera.app.models.trip import Trip, TripCreate


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _account_from_row(row: models.Account) -> AccountRecord:
    return AccountRecord(
        id=row.account_id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
        first_name=row.first_name,
        last_name=row.last_name,
        image_url=row.image_url,
    )


def _trip_from_row(row: models.Trip) -> Trip:
    return Trip(
        id=row.trip_id,
        title=row.title,
        description=row.description,
        start_date=row.start_date,
        end_date=row.end_date,
        currency=row.currency,
        owner_id=row.owner_id,
        is_public=row.is_public,
        slug=row.slug,
        estimated_budget=row.estimated_budget,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _stop_from_row(row: models.Stop) -> Stop:
    geo = Geo(lat=row.lat, lon=row.lon) if row.lat is not None and row.lon is not None else None
    return Stop(
        id=row.stop_id,
        name=row.name,
        description=row.description,
        geo=geo,
        address=row.address,
        city=row.city,
        country=row.country,
        estimated_duration_min=row.estimated_duration_min,
        estimated_cost=row.estimated_cost,
        type=row.type,
        notes=row.notes,
    )


def _itinerary_from_row(row: models.Itinerary) -> Itinerary:
    return Itinerary(
        id=row.itinerary_id,
        trip_id=row.trip_id,
        items=composer.normalize_items(ItineraryItem.model_validate(item) for item in row.items),
        notes=row.notes,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _dump_items(itinerary: Itinerary) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json") for item in itinerary.items]


class SqlAccountRepository:
    """SQL implementation of AccountRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_account(
        self,
        email: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> AccountRecord:
        """Create a local account."""
        email = email.lower()
        if await self.get_account_by_email(email) is not None:
            raise InvalidState("An account with this e-mail already exists")

        row = models.Account(
            account_id=str(uuid.uuid4()),
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            created_at=_utcnow(),
        )
        self._session.add(row)
        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            raise InvalidState("An account with this e-mail already exists") from e

        return _account_from_row(row)

    async def get_account_by_email(self, email: str) -> AccountRecord | None:
        """Get account by e-mail."""
        result = await self._session.execute(
            select(models.Account).where(models.Account.email == email.lower())
        )
        row = result.scalar_one_or_none()
        return _account_from_row(row) if row is not None else None

    async def get_profile(self, subject_id: str) -> Profile:
        """Get the profile of an account."""
        row = await self._session.get(models.Account, subject_id)
        if row is None:
            raise ProfileNotFound(f"No account {subject_id}")
        return _account_from_row(row).to_profile()


class SqlTripRepository:
    """SQL implementation of TripRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_trip(self, owner_id: str, data: TripCreate) -> Trip:
        """Create a trip."""
        now = _utcnow()
        row = models.Trip(
            trip_id=uuid.uuid4(),
            owner_id=owner_id,
            is_public=False,
            created_at=now,
            updated_at=now,
            **data.model_dump(),
        )
        self._session.add(row)
        await self._session.commit()
        return _trip_from_row(row)

    async def get_trip(self, trip_id: uuid.UUID) -> Trip | None:
        """Get trip by ID."""
        row = await self._session.get(models.Trip, trip_id, populate_existing=True)
        return _trip_from_row(row) if row is not None else None

    async def get_public_trip_by_slug(self, slug: str) -> Trip | None:
        """Get a public trip by slug."""
        result = await self._session.execute(
            select(models.Trip).where(models.Trip.slug == slug, models.Trip.is_public.is_(True))
        )
        row = result.scalar_one_or_none()
        return _trip_from_row(row) if row is not None else None

    async def list_trips_for_owner(
        self, owner_id: str, limit: int, offset: int
    ) -> tuple[list[Trip], int]:
        """List an owner's trips, newest first."""
        total = (await self._session.execute(count_trips_for_owner(owner_id))).scalar_one()
        result = await self._session.execute(
            select_trips_for_owner(owner_id).limit(limit).offset(offset)
        )
        return [_trip_from_row(row) for row in result.scalars()], total

    async def update_trip(self, trip_id: uuid.UUID, changes: dict[str, Any]) -> Trip | None:
        """Apply field changes to a trip."""
        row = await self._session.get(models.Trip, trip_id, populate_existing=True)
        if row is None:
            return None

        for field, value in changes.items():
            setattr(row, field, value)
        row.updated_at = _utcnow()

        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            raise InvalidState("Trip update conflicts with an existing trip") from e

        return _trip_from_row(row)

    async def delete_trip(self, trip_id: uuid.UUID) -> bool:
        """Delete a trip together with its itinerary."""
        await self._session.execute(
            delete(models.Itinerary).where(models.Itinerary.trip_id == trip_id)
        )
        result = await self._session.execute(
            delete(models.Trip).where(models.Trip.trip_id == trip_id)
        )
        await self._session.commit()
        return result.rowcount > 0

    async def slug_exists(self, slug: str) -> bool:
        """Check whether a slug is taken."""
        result = await self._session.execute(
            select(models.Trip.trip_id).where(models.Trip.slug == slug)
        )
        return result.first() is not None


class SqlItineraryRepository:
    """SQL implementation of ItineraryRepository.

    Mutations hold the per-itinerary lock from ``locks`` and a row lock
    (``SELECT ... FOR UPDATE``) for the whole read-modify-write, and bump
    ``version`` on commit.
    """

    def __init__(self, session: AsyncSession, locks: LockRegistry) -> None:
        self._session = session
        self._locks = locks

    async def create_itinerary(self, itinerary: Itinerary) -> Itinerary:
        """Store a new itinerary."""
        if await self.get_itinerary_for_trip(itinerary.trip_id) is not None:
            raise InvalidState(f"Trip {itinerary.trip_id} already has an itinerary")

        row = models.Itinerary(
            itinerary_id=itinerary.id,
            trip_id=itinerary.trip_id,
            notes=itinerary.notes,
            items=_dump_items(itinerary),
            version=itinerary.version,
            created_at=itinerary.created_at,
            updated_at=itinerary.updated_at,
        )
        self._session.add(row)
        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            raise InvalidState(f"Trip {itinerary.trip_id} already has an itinerary") from e

        return itinerary

    async def get_itinerary(self, itinerary_id: uuid.UUID) -> Itinerary | None:
        """Get itinerary by ID."""
        result = await self._session.execute(select_itinerary(itinerary_id))
        row = result.scalar_one_or_none()
        return _itinerary_from_row(row) if row is not None else None

    async def get_itinerary_for_trip(self, trip_id: uuid.UUID) -> Itinerary | None:
        """Get the itinerary attached to a trip."""
        result = await self._session.execute(select_itinerary_for_trip(trip_id))
        row = result.scalar_one_or_none()
        return _itinerary_from_row(row) if row is not None else None

    async def mutate(self, itinerary_id: uuid.UUID, fn: ItineraryMutation) -> Itinerary:
        """Atomically transform a stored itinerary."""
        async with self._locks.hold(itinerary_id):
            try:
                result = await self._session.execute(select_itinerary_for_update(itinerary_id))
                row = result.scalar_one_or_none()
                if row is None:
                    raise NotFound(f"Itinerary {itinerary_id} not found")

                current = _itinerary_from_row(row)
                updated = fn(current).model_copy(update={"version": current.version + 1})

                row.items = _dump_items(updated)
                row.notes = updated.notes
                row.version = updated.version
                row.updated_at = updated.updated_at
                await self._session.commit()
            except Exception:
                await self._session.rollback()
                raise

        return updated

    async def delete_itinerary(self, itinerary_id: uuid.UUID) -> bool:
        """Delete an itinerary."""
        async with self._locks.hold(itinerary_id):
            result = await self._session.execute(
                delete(models.Itinerary).where(models.Itinerary.itinerary_id == itinerary_id)
            )
            await self._session.commit()
        return result.rowcount > 0

    async def delete_for_trip(self, trip_id: uuid.UUID) -> None:
        """Delete the itinerary of a trip, if any."""
        itinerary = await self.get_itinerary_for_trip(trip_id)
        if itinerary is not None:
            await self.delete_itinerary(itinerary.id)


class SqlStopRepository:
    """SQL implementation of StopRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_stop(self, data: StopInput) -> Stop:
        """Create a stop."""
        fields = data.model_dump(exclude={"geo"})
        row = models.Stop(
            stop_id=uuid.uuid4(),
            lat=data.geo.lat if data.geo else None,
            lon=data.geo.lon if data.geo else None,
            created_at=_utcnow(),
            **fields,
        )
        self._session.add(row)
        await self._session.commit()
        return _stop_from_row(row)

    async def get_stop(self, stop_id: uuid.UUID) -> Stop | None:
        """Get stop by ID."""
        row = await self._session.get(models.Stop, stop_id)
        return _stop_from_row(row) if row is not None else None

    async def delete_stop(self, stop_id: uuid.UUID) -> bool:
        """Delete a stop."""
        row = await self._session.get(models.Stop, stop_id)
        if row is None:
            return False
        await self._session.delete(row)
        await self._session.commit()
        return True
