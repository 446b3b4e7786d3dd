"""Itinerary endpoints - composing stops into days."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from itinera.app.api.auth import enforce_rate_limit, get_current_identity
from itinera.app.api.deps import get_itinerary_service
from itinera.app.auth.identity import Identity
from itinera.app.models.itinerary import (
    AddStopRequest,
    CreateItineraryRequest,
    GroupedItinerary,
    Itinerary,
    ItemUpdate,
    NotesUpdate,
    ReorderRequest,
)
from itinera.app.services.itinerary_service import ItineraryService

router = APIRouter(prefix="/itineraries", tags=["itineraries"])
trip_itinerary_router = APIRouter(prefix="/trips/{trip_id}/itinerary", tags=["itineraries"])

CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
Itineraries = Annotated[ItineraryService, Depends(get_itinerary_service)]


@trip_itinerary_router.post(
    "",
    response_model=Itinerary,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)],
)
async def create_itinerary(
    trip_id: uuid.UUID,
    request: CreateItineraryRequest,
    identity: CurrentIdentity,
    itineraries: Itineraries,
) -> Itinerary:
    """Create the itinerary of an owned trip.

    Returns:
        409 if the trip already has one
    """
    return await itineraries.create_itinerary(identity, trip_id, request)


@trip_itinerary_router.get("", response_model=Itinerary)
async def get_trip_itinerary(
    trip_id: uuid.UUID, identity: CurrentIdentity, itineraries: Itineraries
) -> Itinerary:
    """Get the itinerary of a readable trip."""
    return await itineraries.get_itinerary_for_trip(identity, trip_id)


@router.get("/{itinerary_id}", response_model=Itinerary)
async def get_itinerary(
    itinerary_id: uuid.UUID, identity: CurrentIdentity, itineraries: Itineraries
) -> Itinerary:
    """Get an itinerary by ID."""
    return await itineraries.get_itinerary(identity, itinerary_id)


@router.patch(
    "/{itinerary_id}", response_model=Itinerary, dependencies=[Depends(enforce_rate_limit)]
)
async def update_itinerary_notes(
    itinerary_id: uuid.UUID,
    update: NotesUpdate,
    identity: CurrentIdentity,
    itineraries: Itineraries,
) -> Itinerary:
    """Replace the itinerary notes."""
    return await itineraries.update_notes(identity, itinerary_id, update.notes)


@router.delete(
    "/{itinerary_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(enforce_rate_limit)],
)
async def delete_itinerary(
    itinerary_id: uuid.UUID, identity: CurrentIdentity, itineraries: Itineraries
) -> Response:
    """Delete an itinerary; the trip stays."""
    await itineraries.delete_itinerary(identity, itinerary_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{itinerary_id}/days", response_model=GroupedItinerary)
async def get_days(
    itinerary_id: uuid.UUID,
    identity: CurrentIdentity,
    itineraries: Itineraries,
    q: Annotated[str | None, Query(max_length=200)] = None,
) -> GroupedItinerary:
    """Items grouped by day, optionally filtered by a keyword on name or city."""
    return await itineraries.grouped_view(identity, itinerary_id, keyword=q)


@router.post(
    "/{itinerary_id}/stops",
    response_model=Itinerary,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)],
)
async def add_stop(
    itinerary_id: uuid.UUID,
    request: AddStopRequest,
    identity: CurrentIdentity,
    itineraries: Itineraries,
) -> Itinerary:
    """Schedule a stop on a day, appended or at a given order."""
    return await itineraries.add_stop(identity, itinerary_id, request)


@router.delete(
    "/{itinerary_id}/items/{item_id}",
    response_model=Itinerary,
    dependencies=[Depends(enforce_rate_limit)],
)
async def remove_item(
    itinerary_id: uuid.UUID,
    item_id: uuid.UUID,
    identity: CurrentIdentity,
    itineraries: Itineraries,
) -> Itinerary:
    """Remove an item; the rest of its day is renumbered."""
    return await itineraries.remove_stop(identity, itinerary_id, item_id)


@router.patch(
    "/{itinerary_id}/items/{item_id}",
    response_model=Itinerary,
    dependencies=[Depends(enforce_rate_limit)],
)
async def update_item(
    itinerary_id: uuid.UUID,
    item_id: uuid.UUID,
    update: ItemUpdate,
    identity: CurrentIdentity,
    itineraries: Itineraries,
) -> Itinerary:
    """Update notes or times of an item."""
    changes = update.model_dump(exclude_unset=True)
    return await itineraries.update_item(identity, itinerary_id, item_id, changes)


@router.post(
    "/{itinerary_id}/reorder",
    response_model=Itinerary,
    dependencies=[Depends(enforce_rate_limit)],
)
async def reorder(
    itinerary_id: uuid.UUID,
    request: ReorderRequest,
    identity: CurrentIdentity,
    itineraries: Itineraries,
) -> Itinerary:
    """Move items to explicit (day, order) positions."""
    return await itineraries.reorder(identity, itinerary_id, request.moves)
