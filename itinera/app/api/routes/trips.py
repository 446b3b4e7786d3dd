"""Trip endpoints - CRUD, listing, visibility and public sharing."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from itinera.app.api.auth import enforce_rate_limit, get_current_identity
from itinera.app.api.deps import get_trip_service
from itinera.app.auth.identity import Identity
from itinera.app.models.trip import (
    Trip,
    TripCreate,
    TripsPage,
    TripUpdate,
    VisibilityResponse,
    VisibilityUpdate,
)
from itinera.app.services.trip_service import TripService

router = APIRouter(prefix="/trips", tags=["trips"])
public_router = APIRouter(prefix="/public/trips", tags=["public"])

CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
Trips = Annotated[TripService, Depends(get_trip_service)]


@router.post(
    "",
    response_model=Trip,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)],
)
async def create_trip(data: TripCreate, identity: CurrentIdentity, trips: Trips) -> Trip:
    """Create a trip owned by the caller."""
    return await trips.create_trip(identity, data)


@router.get("", response_model=TripsPage)
async def list_trips(
    identity: CurrentIdentity,
    trips: Trips,
    limit: Annotated[int | None, Query(ge=1)] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> TripsPage:
    """List the caller's trips, newest first.

    Args:
        limit: Page size (capped server-side)
        offset: Trips to skip
    """
    return await trips.list_my_trips(identity, limit=limit, offset=offset)


@router.get("/{trip_id}", response_model=Trip)
async def get_trip(trip_id: uuid.UUID, identity: CurrentIdentity, trips: Trips) -> Trip:
    """Get an owned trip or any public trip."""
    return await trips.get_trip(identity, trip_id)


@router.patch("/{trip_id}", response_model=Trip, dependencies=[Depends(enforce_rate_limit)])
async def update_trip(
    trip_id: uuid.UUID, update: TripUpdate, identity: CurrentIdentity, trips: Trips
) -> Trip:
    """Update fields of an owned trip."""
    return await trips.update_trip(identity, trip_id, update)


@router.delete(
    "/{trip_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(enforce_rate_limit)],
)
async def delete_trip(trip_id: uuid.UUID, identity: CurrentIdentity, trips: Trips) -> Response:
    """Delete an owned trip and its itinerary."""
    await trips.delete_trip(identity, trip_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{trip_id}/visibility",
    response_model=VisibilityResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def set_visibility(
    trip_id: uuid.UUID, update: VisibilityUpdate, identity: CurrentIdentity, trips: Trips
) -> VisibilityResponse:
    """Make an owned trip public (returns its slug) or private."""
    slug = await trips.set_visibility(identity, trip_id, update.is_public)
    return VisibilityResponse(slug=slug)


@public_router.get("/{slug}", response_model=Trip)
async def get_public_trip(slug: str, trips: Trips) -> Trip:
    """Get a public trip by slug. No authentication required."""
    return await trips.get_public_trip(slug)
