"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from itinera.app.auth.identity import Identity
from itinera.app.config import Settings
from itinera.app.db.inmemory import (
    InMemoryItineraryRepository,
    InMemoryStopRepository,
    InMemoryTripRepository,
)
from itinera.app.db.models import Base
from itinera.app.services.itinerary_service import ItineraryService
from itinera.app.services.trip_service import TripService


@pytest.fixture
def settings() -> Settings:
    """Settings from defaults only (no .env)."""
    return Settings(_env_file=None)


@pytest.fixture
def alice() -> Identity:
    return Identity(
        id="user_alice",
        email="alice@example.com",
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        first_name="Alice",
    )


@pytest.fixture
def bob() -> Identity:
    return Identity(
        id="user_bob",
        email="bob@example.com",
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def trip_repo() -> InMemoryTripRepository:
    return InMemoryTripRepository()


@pytest.fixture
def itinerary_repo() -> InMemoryItineraryRepository:
    return InMemoryItineraryRepository()


@pytest.fixture
def stop_repo() -> InMemoryStopRepository:
    return InMemoryStopRepository()


@pytest.fixture
def trip_service(
    trip_repo: InMemoryTripRepository,
    itinerary_repo: InMemoryItineraryRepository,
    settings: Settings,
) -> TripService:
    return TripService(trip_repo, itinerary_repo, settings)


@pytest.fixture
def itinerary_service(
    trip_repo: InMemoryTripRepository,
    itinerary_repo: InMemoryItineraryRepository,
    stop_repo: InMemoryStopRepository,
) -> ItineraryService:
    return ItineraryService(trip_repo, itinerary_repo, stop_repo)


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory aiosqlite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def sqlite_sessions(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory over the in-memory sqlite engine."""
    return async_sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def sqlite_session(
    sqlite_sessions: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with sqlite_sessions() as session:
        yield session


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create async engine for PostgreSQL integration tests.

    Requires DATABASE_URL to be set to a real PostgreSQL connection string.
    Tests using this fixture should be marked with @pytest.mark.postgres.
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set - skipping postgres test")

    if not database_url.startswith(("postgresql://", "postgresql+asyncpg://")):
        pytest.skip(f"DATABASE_URL is not PostgreSQL: {database_url}")

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    engine = create_async_engine(database_url, poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()
