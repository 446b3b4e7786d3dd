"""Models package - re-exports for convenience."""

from itinera.app.models.account import AuthResponse, IdentityView, LoginRequest, SignupRequest
from itinera.app.models.common import Geo
from itinera.app.models.itinerary import (
    UNASSIGNED_DAY_KEY,
    AddStopRequest,
    CreateItineraryRequest,
    DayGroup,
    GroupedItinerary,
    Itinerary,
    ItineraryItem,
    ItemUpdate,
    NotesUpdate,
    ReorderMove,
    ReorderRequest,
    Stop,
    StopInput,
)
from itinera.app.models.trip import (
    Trip,
    TripCreate,
    TripsPage,
    TripUpdate,
    VisibilityResponse,
    VisibilityUpdate,
)

__all__ = [
    # Common
    "Geo",
    # Accounts
    "SignupRequest",
    "LoginRequest",
    "IdentityView",
    "AuthResponse",
    # Trips
    "Trip",
    "TripCreate",
    "TripUpdate",
    "TripsPage",
    "VisibilityUpdate",
    "VisibilityResponse",
    # Itinerary
    "UNASSIGNED_DAY_KEY",
    "Stop",
    "StopInput",
    "ItineraryItem",
    "Itinerary",
    "AddStopRequest",
    "CreateItineraryRequest",
    "ReorderMove",
    "ReorderRequest",
    "ItemUpdate",
    "NotesUpdate",
    "DayGroup",
    "GroupedItinerary",
]
