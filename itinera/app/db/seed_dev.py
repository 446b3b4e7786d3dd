"""Dev seeding helper - a local account with one sample trip and itinerary."""

import asyncio
import logging

from itinera.app.auth.identity import Identity
from itinera.app.auth.passwords import hash_password
from itinera.app.config import get_settings
from itinera.app.db.engine import create_schema, create_session_factory, get_async_engine
from itinera.app.db.locks import LockRegistry
from itinera.app.db.sql_repositories import (
    SqlAccountRepository,
    SqlItineraryRepository,
    SqlStopRepository,
    SqlTripRepository,
)
from itinera.app.models.itinerary import AddStopRequest, CreateItineraryRequest, StopInput
from itinera.app.models.trip import TripCreate
from itinera.app.services.itinerary_service import ItineraryService
from itinera.app.services.trip_service import TripService
from itinera.app.utils.logging import configure_logging

logger = logging.getLogger(__name__)

DEV_EMAIL = "dev@example.com"
DEV_PASSWORD = "dev-password"


async def seed_dev_account() -> str:
    """Seed the dev account and a sample trip.

    Idempotent: if the dev account exists nothing is created.

    Returns:
        Id of the dev account
    """
    engine = get_async_engine()
    await create_schema(engine)

    async with create_session_factory(engine)() as session:
        accounts = SqlAccountRepository(session)
        existing = await accounts.get_account_by_email(DEV_EMAIL)
        if existing is not None:
            logger.info(f"[Seed] dev account already exists id={existing.id}")
            return existing.id

        record = await accounts.create_account(
            DEV_EMAIL, hash_password(DEV_PASSWORD), first_name="Dev", last_name="User"
        )
        identity = Identity.from_profile(record.id, record.to_profile())

        trips = SqlTripRepository(session)
        itineraries = SqlItineraryRepository(session, LockRegistry())
        trip = await TripService(trips, itineraries, get_settings()).create_trip(
            identity, TripCreate(title="Weekend in Lisbon", currency="EUR")
        )
        await ItineraryService(trips, itineraries, SqlStopRepository(session)).create_itinerary(
            identity,
            trip.id,
            CreateItineraryRequest(
                items=[
                    AddStopRequest(
                        stop=StopInput(name="Belem Tower", city="Lisbon", estimated_cost=10),
                        day=0,
                    ),
                    AddStopRequest(
                        stop=StopInput(name="Alfama", city="Lisbon"),
                        day=0,
                    ),
                    AddStopRequest(
                        stop=StopInput(name="Sintra Palace", city="Sintra", estimated_cost=14),
                        day=1,
                    ),
                ]
            ),
        )

        logger.info(f"[Seed] created dev account id={record.id} trip_id={trip.id}")
        return record.id


if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    asyncio.run(seed_dev_account())
