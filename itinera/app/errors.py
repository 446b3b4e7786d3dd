"""Domain exceptions shared by the auth gate, services and composer.

Each error carries a human-readable message; the API layer maps the type
to an HTTP status (see ``itinera.app.api.errors``).
"""


class ItineraError(Exception):
    """Base class for domain errors surfaced to the caller."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class Unauthenticated(ItineraError):
    """Identity could not be resolved for the request."""


class Forbidden(ItineraError):
    """Identity resolved but lacks ownership or permission."""


class NotFound(ItineraError):
    """Referenced trip, itinerary, stop or item does not exist."""


class InvalidState(ItineraError):
    """Requested change would break an invariant and cannot be resolved automatically."""
