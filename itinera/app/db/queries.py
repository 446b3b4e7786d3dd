"""Query helpers shared by the SQL repositories."""

import uuid

from sqlalchemy import Select, func, select

from itinera.app.db.models import Itinerary, Trip


def select_trips_for_owner(owner_id: str) -> Select:
    """Select an owner's trips, newest first.

    Args:
        owner_id: Subject id of the owner

    Returns:
        Select filtered by owner_id
    """
    return (
        select(Trip)
        .where(Trip.owner_id == owner_id)
        .order_by(Trip.created_at.desc(), Trip.trip_id)
    )


def count_trips_for_owner(owner_id: str) -> Select:
    """Count an owner's trips."""
    return select(func.count()).select_from(Trip).where(Trip.owner_id == owner_id)


def select_itinerary_for_update(itinerary_id: uuid.UUID) -> Select:
    """Select an itinerary row, locking it until the transaction ends.

    Backends without row locks (sqlite) ignore FOR UPDATE; the in-process
    lock registry still serializes mutations there.
    """
    return (
        select(Itinerary)
        .where(Itinerary.itinerary_id == itinerary_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def select_itinerary(itinerary_id: uuid.UUID) -> Select:
    """Select an itinerary row, refreshing any copy already in the session."""
    return (
        select(Itinerary)
        .where(Itinerary.itinerary_id == itinerary_id)
        .execution_options(populate_existing=True)
    )


def select_itinerary_for_trip(trip_id: uuid.UUID) -> Select:
    """Select the itinerary row of a trip."""
    return (
        select(Itinerary)
        .where(Itinerary.trip_id == trip_id)
        .execution_options(populate_existing=True)
    )
