"""Tests for owner isolation of trips and itineraries."""

import pytest

from itinera.app.auth.identity import Identity
from itinera.app.errors import Forbidden
from itinera.app.models.itinerary import AddStopRequest, CreateItineraryRequest, StopInput
from itinera.app.models.trip import TripCreate, TripUpdate
from itinera.app.services.itinerary_service import ItineraryService
from itinera.app.services.trip_service import TripService


@pytest.mark.asyncio
async def test_private_trip_is_invisible_to_others(
    trip_service: TripService, alice: Identity, bob: Identity
) -> None:
    trip = await trip_service.create_trip(alice, TripCreate(title="Secret"))

    with pytest.raises(Forbidden):
        await trip_service.get_trip(bob, trip.id)
    with pytest.raises(Forbidden):
        await trip_service.update_trip(bob, trip.id, TripUpdate(title="Mine now"))
    with pytest.raises(Forbidden):
        await trip_service.delete_trip(bob, trip.id)
    with pytest.raises(Forbidden):
        await trip_service.set_visibility(bob, trip.id, True)

    # Alice's trip is untouched
    fetched = await trip_service.get_trip(alice, trip.id)
    assert fetched.title == "Secret"
    assert fetched.is_public is False


@pytest.mark.asyncio
async def test_listings_are_per_owner(
    trip_service: TripService, alice: Identity, bob: Identity
) -> None:
    for i in range(3):
        await trip_service.create_trip(alice, TripCreate(title=f"A{i}"))
    await trip_service.create_trip(bob, TripCreate(title="B0"))

    alice_page = await trip_service.list_my_trips(alice)
    bob_page = await trip_service.list_my_trips(bob)

    assert {t.owner_id for t in alice_page.trips} == {alice.id}
    assert alice_page.total == 3
    assert [t.title for t in bob_page.trips] == ["B0"]


@pytest.mark.asyncio
async def test_private_itinerary_is_invisible_to_others(
    trip_service: TripService,
    itinerary_service: ItineraryService,
    alice: Identity,
    bob: Identity,
) -> None:
    trip = await trip_service.create_trip(alice, TripCreate(title="Secret"))
    itinerary = await itinerary_service.create_itinerary(
        alice,
        trip.id,
        CreateItineraryRequest(items=[AddStopRequest(stop=StopInput(name="Louvre"), day=0)]),
    )
    item_id = itinerary.items[0].id

    with pytest.raises(Forbidden):
        await itinerary_service.get_itinerary(bob, itinerary.id)
    with pytest.raises(Forbidden):
        await itinerary_service.get_itinerary_for_trip(bob, trip.id)
    with pytest.raises(Forbidden):
        await itinerary_service.grouped_view(bob, itinerary.id)
    with pytest.raises(Forbidden):
        await itinerary_service.remove_stop(bob, itinerary.id, item_id)
    with pytest.raises(Forbidden):
        await itinerary_service.delete_itinerary(bob, itinerary.id)

    unchanged = await itinerary_service.get_itinerary(alice, itinerary.id)
    assert unchanged.version == itinerary.version
    assert len(unchanged.items) == 1


@pytest.mark.asyncio
async def test_public_trip_is_read_only_for_others(
    trip_service: TripService,
    itinerary_service: ItineraryService,
    alice: Identity,
    bob: Identity,
) -> None:
    trip = await trip_service.create_trip(alice, TripCreate(title="Shared"))
    itinerary = await itinerary_service.create_itinerary(alice, trip.id, CreateItineraryRequest())
    await trip_service.set_visibility(alice, trip.id, True)

    assert (await trip_service.get_trip(bob, trip.id)).id == trip.id
    assert (await itinerary_service.get_itinerary(bob, itinerary.id)).id == itinerary.id

    with pytest.raises(Forbidden):
        await itinerary_service.add_stop(
            bob, itinerary.id, AddStopRequest(stop=StopInput(name="Graffiti"), day=0)
        )
    with pytest.raises(Forbidden):
        await itinerary_service.update_notes(bob, itinerary.id, "hello")
    with pytest.raises(Forbidden):
        await trip_service.update_trip(bob, trip.id, TripUpdate(title="Taken"))
