"""Tests for the SQL repositories on aiosqlite."""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from itinera.app.auth.verifiers import ProfileNotFound
from itinera.app.db.locks import LockRegistry
from itinera.app.db.models import Base
from itinera.app.db.sql_repositories import (
    SqlAccountRepository,
    SqlItineraryRepository,
    SqlStopRepository,
    SqlTripRepository,
)
from itinera.app.errors import InvalidState, NotFound
from itinera.app.itinerary import composer
from itinera.app.models.common import Geo
from itinera.app.models.itinerary import Itinerary, StopInput
from itinera.app.models.trip import Trip, TripCreate


def _empty_itinerary(trip_id: uuid.UUID) -> Itinerary:
    now = datetime.now(timezone.utc)
    return Itinerary(id=uuid.uuid4(), trip_id=trip_id, created_at=now, updated_at=now)


@pytest_asyncio.fixture
async def stored_trip(sqlite_session: AsyncSession) -> Trip:
    return await SqlTripRepository(sqlite_session).create_trip(
        "user_alice", TripCreate(title="Kyoto", currency="JPY")
    )


class TestAccounts:
    """SqlAccountRepository."""

    @pytest.mark.asyncio
    async def test_create_and_lookup(self, sqlite_session: AsyncSession) -> None:
        repo = SqlAccountRepository(sqlite_session)

        record = await repo.create_account("Alice@Example.com", "hash", first_name="Alice")

        assert record.email == "alice@example.com"
        found = await repo.get_account_by_email("ALICE@example.com")
        assert found is not None
        assert found.id == record.id
        profile = await repo.get_profile(record.id)
        assert profile.email == "alice@example.com"
        assert profile.first_name == "Alice"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, sqlite_session: AsyncSession) -> None:
        repo = SqlAccountRepository(sqlite_session)
        await repo.create_account("alice@example.com", "hash")

        with pytest.raises(InvalidState):
            await repo.create_account("alice@example.com", "other")

    @pytest.mark.asyncio
    async def test_unknown_profile(self, sqlite_session: AsyncSession) -> None:
        with pytest.raises(ProfileNotFound):
            await SqlAccountRepository(sqlite_session).get_profile("nobody")


class TestTrips:
    """SqlTripRepository."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, sqlite_session: AsyncSession, stored_trip: Trip) -> None:
        fetched = await SqlTripRepository(sqlite_session).get_trip(stored_trip.id)

        assert fetched is not None
        assert fetched.title == "Kyoto"
        assert fetched.currency == "JPY"
        assert fetched.owner_id == "user_alice"
        assert fetched.is_public is False

    @pytest.mark.asyncio
    async def test_list_pages_newest_first(self, sqlite_session: AsyncSession) -> None:
        repo = SqlTripRepository(sqlite_session)
        for i in range(4):
            await repo.create_trip("user_alice", TripCreate(title=f"Trip {i}"))
        await repo.create_trip("user_bob", TripCreate(title="Bob's"))

        page, total = await repo.list_trips_for_owner("user_alice", limit=3, offset=0)
        rest, _ = await repo.list_trips_for_owner("user_alice", limit=3, offset=3)

        assert total == 4
        assert [t.title for t in page] == ["Trip 3", "Trip 2", "Trip 1"]
        assert [t.title for t in rest] == ["Trip 0"]

    @pytest.mark.asyncio
    async def test_update_and_slug(self, sqlite_session: AsyncSession, stored_trip: Trip) -> None:
        repo = SqlTripRepository(sqlite_session)

        updated = await repo.update_trip(
            stored_trip.id, {"title": "Kyoto & Osaka", "is_public": True, "slug": "kyoto"}
        )

        assert updated is not None
        assert updated.title == "Kyoto & Osaka"
        assert await repo.slug_exists("kyoto") is True
        public = await repo.get_public_trip_by_slug("kyoto")
        assert public is not None
        assert public.id == stored_trip.id

    @pytest.mark.asyncio
    async def test_slug_unique(self, sqlite_session: AsyncSession, stored_trip: Trip) -> None:
        repo = SqlTripRepository(sqlite_session)
        other = await repo.create_trip("user_bob", TripCreate(title="Kyoto"))
        await repo.update_trip(stored_trip.id, {"is_public": True, "slug": "kyoto"})

        with pytest.raises(InvalidState):
            await repo.update_trip(other.id, {"is_public": True, "slug": "kyoto"})

    @pytest.mark.asyncio
    async def test_private_trip_not_public_by_slug(
        self, sqlite_session: AsyncSession, stored_trip: Trip
    ) -> None:
        repo = SqlTripRepository(sqlite_session)
        await repo.update_trip(stored_trip.id, {"is_public": False, "slug": "kyoto"})

        assert await repo.get_public_trip_by_slug("kyoto") is None

    @pytest.mark.asyncio
    async def test_update_missing(self, sqlite_session: AsyncSession) -> None:
        repo = SqlTripRepository(sqlite_session)

        assert await repo.update_trip(uuid.uuid4(), {"title": "x"}) is None

    @pytest.mark.asyncio
    async def test_delete_removes_itinerary(
        self, sqlite_session: AsyncSession, stored_trip: Trip
    ) -> None:
        trips = SqlTripRepository(sqlite_session)
        itineraries = SqlItineraryRepository(sqlite_session, LockRegistry())
        itinerary = await itineraries.create_itinerary(_empty_itinerary(stored_trip.id))

        assert await trips.delete_trip(stored_trip.id) is True

        assert await trips.get_trip(stored_trip.id) is None
        assert await itineraries.get_itinerary(itinerary.id) is None
        assert await trips.delete_trip(stored_trip.id) is False


class TestStops:
    """SqlStopRepository."""

    @pytest.mark.asyncio
    async def test_delete(self, sqlite_session: AsyncSession) -> None:
        repo = SqlStopRepository(sqlite_session)
        stop = await repo.create_stop(StopInput(name="Kinkaku-ji", city="Kyoto"))

        assert await repo.delete_stop(stop.id) is True
        assert await repo.get_stop(stop.id) is None
        assert await repo.delete_stop(stop.id) is False


class TestItineraries:
    """SqlItineraryRepository."""

    @pytest.mark.asyncio
    async def test_one_per_trip(self, sqlite_session: AsyncSession, stored_trip: Trip) -> None:
        repo = SqlItineraryRepository(sqlite_session, LockRegistry())
        await repo.create_itinerary(_empty_itinerary(stored_trip.id))

        with pytest.raises(InvalidState):
            await repo.create_itinerary(_empty_itinerary(stored_trip.id))

    @pytest.mark.asyncio
    async def test_items_survive_storage(
        self, sqlite_session: AsyncSession, stored_trip: Trip
    ) -> None:
        stops = SqlStopRepository(sqlite_session)
        repo = SqlItineraryRepository(sqlite_session, LockRegistry())
        created = await repo.create_itinerary(_empty_itinerary(stored_trip.id))
        stop = await stops.create_stop(
            StopInput(name="Fushimi Inari", city="Kyoto", geo=Geo(lat=34.97, lon=135.77))
        )

        updated = await repo.mutate(created.id, lambda it: composer.add_stop(it, stop, day=0))

        fetched = await repo.get_itinerary_for_trip(stored_trip.id)
        assert fetched is not None
        assert fetched.version == 1
        assert fetched.items == updated.items
        assert fetched.items[0].stop.geo == Geo(lat=34.97, lon=135.77)
        assert await stops.get_stop(stop.id) == stop

    @pytest.mark.asyncio
    async def test_mutate_bumps_version(
        self, sqlite_session: AsyncSession, stored_trip: Trip
    ) -> None:
        repo = SqlItineraryRepository(sqlite_session, LockRegistry())
        created = await repo.create_itinerary(_empty_itinerary(stored_trip.id))

        for notes in ("a", "b", "c"):
            result = await repo.mutate(
                created.id, lambda it, n=notes: it.model_copy(update={"notes": n})
            )

        assert result.version == 3
        stored = await repo.get_itinerary(created.id)
        assert stored is not None
        assert stored.version == 3
        assert stored.notes == "c"

    @pytest.mark.asyncio
    async def test_failed_mutation_writes_nothing(
        self, sqlite_session: AsyncSession, stored_trip: Trip
    ) -> None:
        repo = SqlItineraryRepository(sqlite_session, LockRegistry())
        created = await repo.create_itinerary(_empty_itinerary(stored_trip.id))

        def boom(itinerary: Itinerary) -> Itinerary:
            raise InvalidState("nope")

        with pytest.raises(InvalidState):
            await repo.mutate(created.id, boom)

        stored = await repo.get_itinerary(created.id)
        assert stored is not None
        assert stored.version == 0

    @pytest.mark.asyncio
    async def test_mutate_missing(self, sqlite_session: AsyncSession) -> None:
        repo = SqlItineraryRepository(sqlite_session, LockRegistry())

        with pytest.raises(NotFound):
            await repo.mutate(uuid.uuid4(), lambda it: it)

    @pytest.mark.asyncio
    async def test_delete(self, sqlite_session: AsyncSession, stored_trip: Trip) -> None:
        repo = SqlItineraryRepository(sqlite_session, LockRegistry())
        created = await repo.create_itinerary(_empty_itinerary(stored_trip.id))

        assert await repo.delete_itinerary(created.id) is True
        assert await repo.delete_itinerary(created.id) is False
        await repo.delete_for_trip(stored_trip.id)


@pytest_asyncio.fixture
async def file_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed sqlite engine so every session gets its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'itinera.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.mark.asyncio
async def test_concurrent_sessions_do_not_lose_updates(file_engine: AsyncEngine) -> None:
    sessions = async_sessionmaker(bind=file_engine, expire_on_commit=False)
    locks = LockRegistry()

    async with sessions() as session:
        trip = await SqlTripRepository(session).create_trip("user_alice", TripCreate(title="Kyoto"))
        created = await SqlItineraryRepository(session, locks).create_itinerary(
            _empty_itinerary(trip.id)
        )
        stop = await SqlStopRepository(session).create_stop(StopInput(name="Gion"))

    async def add(order: int | None) -> None:
        async with sessions() as session:
            await SqlItineraryRepository(session, locks).mutate(
                created.id, lambda it: composer.add_stop(it, stop, day=0, desired_order=order)
            )

    await asyncio.gather(*(add(0 if i % 2 else None) for i in range(12)))

    async with sessions() as session:
        final = await SqlItineraryRepository(session, locks).get_itinerary(created.id)

    assert final is not None
    assert final.version == 12
    assert sorted(i.order for i in final.items) == list(range(12))
