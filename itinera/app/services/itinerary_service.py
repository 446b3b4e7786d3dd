"""Itinerary service - access control, stop resolution and serialized mutations."""

import logging
import time
import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from itinera.app.auth.identity import Identity
from itinera.app.db.repositories import (
    ItineraryMutation,
    ItineraryRepository,
    StopRepository,
    TripRepository,
)
from itinera.app.errors import Forbidden, ItineraError, NotFound
from itinera.app.itinerary import composer
from itinera.app.models.itinerary import (
    AddStopRequest,
    CreateItineraryRequest,
    DayGroup,
    GroupedItinerary,
    Itinerary,
    ReorderMove,
    Stop,
)
from itinera.app.models.trip import Trip
from itinera.app.services.trip_service import can_read_trip
from itinera.app.utils.logging import StructuredMutationLogger
from itinera.app.utils.metrics import PrometheusMutationMetrics

logger = logging.getLogger(__name__)


class ItineraryService:
    """Itinerary operations on behalf of a resolved identity.

    Reads are allowed to the trip owner and, for public trips, to anyone
    authenticated. Every mutation is owner-only and goes through
    ``ItineraryRepository.mutate`` so concurrent changes to one itinerary
    never interleave.
    """

    def __init__(
        self,
        trips: TripRepository,
        itineraries: ItineraryRepository,
        stops: StopRepository,
        metrics: PrometheusMutationMetrics | None = None,
        mutation_logger: StructuredMutationLogger | None = None,
    ) -> None:
        self._trips = trips
        self._itineraries = itineraries
        self._stops = stops
        self._metrics = metrics or PrometheusMutationMetrics()
        self._mutation_logger = mutation_logger or StructuredMutationLogger()

    async def create_itinerary(
        self, identity: Identity, trip_id: uuid.UUID, request: CreateItineraryRequest
    ) -> Itinerary:
        """Create the itinerary of an owned trip, optionally with initial stops.

        Raises:
            NotFound: Trip or a referenced stop does not exist
            Forbidden: Caller is not the trip owner
            InvalidState: Trip already has an itinerary
        """
        await self._load_owned_trip(identity, trip_id)

        now = datetime.now(timezone.utc)
        itinerary = Itinerary(
            id=uuid.uuid4(),
            trip_id=trip_id,
            notes=request.notes,
            created_at=now,
            updated_at=now,
        )
        inline_stops: list[uuid.UUID] = []
        try:
            for entry in request.items:
                stop = await self._resolve_stop(entry)
                if entry.stop_id is None:
                    inline_stops.append(stop.id)
                itinerary = self._add_stop_fn(stop, entry)(itinerary)

            created = await self._itineraries.create_itinerary(itinerary)
        except ItineraError:
            for stop_id in inline_stops:
                await self._stops.delete_stop(stop_id)
            raise

        logger.info(
            f"[ItineraryService] created itinerary_id={created.id} trip_id={trip_id} "
            f"items={len(created.items)}"
        )
        return created

    async def get_itinerary(self, identity: Identity, itinerary_id: uuid.UUID) -> Itinerary:
        """Get an itinerary the caller may read.

        Raises:
            NotFound: No such itinerary
            Forbidden: Trip is private and owned by someone else
        """
        itinerary, _ = await self._load_readable(identity, itinerary_id)
        return itinerary

    async def get_itinerary_for_trip(self, identity: Identity, trip_id: uuid.UUID) -> Itinerary:
        """Get the itinerary of a trip the caller may read."""
        trip = await self._load_trip(trip_id)
        if not can_read_trip(trip, identity):
            raise Forbidden("You do not have access to this trip")

        itinerary = await self._itineraries.get_itinerary_for_trip(trip_id)
        if itinerary is None:
            raise NotFound(f"Trip {trip_id} has no itinerary")
        return itinerary

    async def grouped_view(
        self, identity: Identity, itinerary_id: uuid.UUID, keyword: str | None = None
    ) -> GroupedItinerary:
        """Day-grouped view of an itinerary, optionally filtered by keyword."""
        itinerary, _ = await self._load_readable(identity, itinerary_id)

        items = composer.filter_by_keyword(itinerary.items, keyword)
        days = [
            DayGroup(
                key=key,
                day=bucket[0].day,
                items=bucket,
                estimated_cost_total=composer.day_cost_total(bucket),
            )
            for key, bucket in composer.group_by_day(items).items()
        ]
        return GroupedItinerary(
            itinerary_id=itinerary.id,
            trip_id=itinerary.trip_id,
            keyword=keyword or None,
            days=days,
        )

    async def add_stop(
        self, identity: Identity, itinerary_id: uuid.UUID, request: AddStopRequest
    ) -> Itinerary:
        """Schedule an existing or inline stop on a day.

        An inline stop is added to the stop catalogue first and removed again
        if the itinerary change fails.

        Raises:
            NotFound: Itinerary or referenced stop does not exist
            Forbidden: Caller is not the trip owner
            InvalidState: Position or time window is invalid
        """
        await self._load_owned(identity, itinerary_id)
        stop = await self._resolve_stop(request)
        try:
            return await self._mutate(
                "add_stop", identity, itinerary_id, self._add_stop_fn(stop, request)
            )
        except ItineraError:
            if request.stop_id is None:
                await self._stops.delete_stop(stop.id)
                logger.info(f"[ItineraryService] discarded inline stop_id={stop.id}")
            raise

    async def remove_stop(
        self, identity: Identity, itinerary_id: uuid.UUID, item_id: uuid.UUID
    ) -> Itinerary:
        """Remove an item; its day is compacted."""
        await self._load_owned(identity, itinerary_id)
        return await self._mutate(
            "remove_stop",
            identity,
            itinerary_id,
            lambda itinerary: composer.remove_stop(itinerary, item_id),
        )

    async def reorder(
        self, identity: Identity, itinerary_id: uuid.UUID, moves: Sequence[ReorderMove]
    ) -> Itinerary:
        """Move items to explicit (day, order) positions in one step."""
        await self._load_owned(identity, itinerary_id)
        return await self._mutate(
            "reorder",
            identity,
            itinerary_id,
            lambda itinerary: composer.reorder_items(itinerary, moves),
        )

    async def update_item(
        self,
        identity: Identity,
        itinerary_id: uuid.UUID,
        item_id: uuid.UUID,
        changes: Mapping[str, Any],
    ) -> Itinerary:
        """Update notes or times of one item."""
        await self._load_owned(identity, itinerary_id)
        return await self._mutate(
            "update_item",
            identity,
            itinerary_id,
            lambda itinerary: composer.update_item(itinerary, item_id, changes),
        )

    async def update_notes(
        self, identity: Identity, itinerary_id: uuid.UUID, notes: str | None
    ) -> Itinerary:
        """Replace the itinerary-level notes."""
        await self._load_owned(identity, itinerary_id)

        def set_notes(itinerary: Itinerary) -> Itinerary:
            return itinerary.model_copy(
                update={"notes": notes, "updated_at": datetime.now(timezone.utc)}
            )

        return await self._mutate("update_notes", identity, itinerary_id, set_notes)

    async def delete_itinerary(self, identity: Identity, itinerary_id: uuid.UUID) -> None:
        """Delete an owned itinerary. The trip is kept."""
        await self._load_owned(identity, itinerary_id)
        if not await self._itineraries.delete_itinerary(itinerary_id):
            raise NotFound(f"Itinerary {itinerary_id} not found")
        logger.info(f"[ItineraryService] deleted itinerary_id={itinerary_id}")

    def _add_stop_fn(self, stop: Stop, request: AddStopRequest) -> ItineraryMutation:
        def add(itinerary: Itinerary) -> Itinerary:
            return composer.add_stop(
                itinerary,
                stop,
                request.day,
                request.order,
                start_time=request.start_time,
                end_time=request.end_time,
                notes=request.notes,
            )

        return add

    async def _mutate(
        self,
        operation: str,
        identity: Identity,
        itinerary_id: uuid.UUID,
        fn: ItineraryMutation,
    ) -> Itinerary:
        start = time.perf_counter()
        try:
            updated = await self._itineraries.mutate(itinerary_id, fn)
        except ItineraError as e:
            latency_ms = (time.perf_counter() - start) * 1000
            outcome = type(e).__name__
            self._metrics.record(operation, outcome, latency_ms)
            self._mutation_logger.log_mutation(
                operation, itinerary_id, identity.id, outcome, latency_ms, error_reason=e.message
            )
            raise

        latency_ms = (time.perf_counter() - start) * 1000
        self._metrics.record(operation, "success", latency_ms)
        self._mutation_logger.log_mutation(
            operation, itinerary_id, identity.id, "success", latency_ms, version=updated.version
        )
        return updated

    async def _resolve_stop(self, request: AddStopRequest) -> Stop:
        if request.stop_id is not None:
            stop = await self._stops.get_stop(request.stop_id)
            if stop is None:
                raise NotFound(f"Stop {request.stop_id} not found")
            return stop

        assert request.stop is not None
        return await self._stops.create_stop(request.stop)

    async def _load_trip(self, trip_id: uuid.UUID) -> Trip:
        trip = await self._trips.get_trip(trip_id)
        if trip is None:
            raise NotFound(f"Trip {trip_id} not found")
        return trip

    async def _load_owned_trip(self, identity: Identity, trip_id: uuid.UUID) -> Trip:
        trip = await self._load_trip(trip_id)
        if trip.owner_id != identity.id:
            raise Forbidden("Only the trip owner can change this itinerary")
        return trip

    async def _load_itinerary(self, itinerary_id: uuid.UUID) -> Itinerary:
        itinerary = await self._itineraries.get_itinerary(itinerary_id)
        if itinerary is None:
            raise NotFound(f"Itinerary {itinerary_id} not found")
        return itinerary

    async def _load_readable(
        self, identity: Identity, itinerary_id: uuid.UUID
    ) -> tuple[Itinerary, Trip]:
        itinerary = await self._load_itinerary(itinerary_id)
        trip = await self._load_trip(itinerary.trip_id)
        if not can_read_trip(trip, identity):
            raise Forbidden("You do not have access to this itinerary")
        return itinerary, trip

    async def _load_owned(self, identity: Identity, itinerary_id: uuid.UUID) -> Trip:
        itinerary = await self._load_itinerary(itinerary_id)
        return await self._load_owned_trip(identity, itinerary.trip_id)
