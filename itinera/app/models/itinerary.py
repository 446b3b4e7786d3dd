"""Itinerary models - stops, scheduled items and the grouped day view."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from itinera.app.models.common import Geo, ends_after_start

UNASSIGNED_DAY_KEY = "unassigned"


class StopInput(BaseModel):
    """Point of interest supplied inline when adding a stop."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    geo: Geo | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    estimated_duration_min: int | None = Field(None, ge=0)
    estimated_cost: float | None = Field(None, ge=0)
    type: str = "destination"
    notes: str | None = None


class Stop(StopInput):
    """Catalogued point of interest referenced by itinerary items."""

    id: uuid.UUID


class ItineraryItem(BaseModel):
    """A stop scheduled on a day at a position.

    ``day`` is None for unscheduled items; those form their own bucket.
    """

    id: uuid.UUID
    day: int | None = Field(None, ge=0)
    order: int = Field(..., ge=0)
    stop: Stop
    start_time: datetime | None = None
    end_time: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def display_name(self) -> str:
        """Name shown for the item: stop name, falling back to its address."""
        return self.stop.name or self.stop.address or ""

    @property
    def city(self) -> str:
        return self.stop.city or ""


class Itinerary(BaseModel):
    """Ordered schedule of stops attached to exactly one trip."""

    id: uuid.UUID
    trip_id: uuid.UUID
    items: list[ItineraryItem] = Field(default_factory=list)
    notes: str | None = None
    version: int = 0
    created_at: datetime
    updated_at: datetime


class AddStopRequest(BaseModel):
    """Request body for POST /itineraries/{id}/stops.

    Exactly one of ``stop_id`` (existing catalogue stop) or ``stop`` (inline,
    created on the fly) must be given. ``order`` omitted means append.
    """

    stop_id: uuid.UUID | None = None
    stop: StopInput | None = None
    day: int | None = Field(None, ge=0)
    order: int | None = Field(None, ge=0)
    start_time: datetime | None = None
    end_time: datetime | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def validate_stop_reference(self) -> "AddStopRequest":
        """Ensure exactly one stop reference and a sane time window."""
        if (self.stop_id is None) == (self.stop is None):
            raise ValueError("exactly one of stop_id or stop must be provided")
        if not ends_after_start(self.start_time, self.end_time):
            raise ValueError("end_time must be >= start_time")
        return self


class CreateItineraryRequest(BaseModel):
    """Request body for POST /trips/{trip_id}/itinerary."""

    items: list[AddStopRequest] = Field(default_factory=list)
    notes: str | None = None


class ReorderMove(BaseModel):
    """Move one item to a (day, order) position."""

    item_id: uuid.UUID
    day: int | None = Field(None, ge=0)
    order: int = Field(..., ge=0)


class ReorderRequest(BaseModel):
    """Request body for POST /itineraries/{id}/reorder."""

    moves: list[ReorderMove] = Field(..., min_length=1)


class ItemUpdate(BaseModel):
    """Request body for PATCH /itineraries/{id}/items/{item_id}.

    Only fields present in the request are applied.
    """

    start_time: datetime | None = None
    end_time: datetime | None = None
    notes: str | None = None


class NotesUpdate(BaseModel):
    """Request body for PATCH /itineraries/{id}."""

    notes: str | None


class DayGroup(BaseModel):
    """Items scheduled on one day (or the unassigned bucket)."""

    key: str
    day: int | None
    items: list[ItineraryItem]
    estimated_cost_total: float


class GroupedItinerary(BaseModel):
    """Day-grouped, optionally keyword-filtered view of an itinerary."""

    itinerary_id: uuid.UUID
    trip_id: uuid.UUID
    keyword: str | None = None
    days: list[DayGroup]
