"""Per-request session context - the one place a credential is read from."""

from dataclasses import dataclass
from enum import Enum

from itinera.app.auth.identity import Identity
from itinera.app.errors import InvalidState

BEARER_SCHEME = "bearer"


class AuthState(str, Enum):
    """Authentication state of one request."""

    unresolved = "unresolved"
    resolved = "resolved"
    rejected = "rejected"


@dataclass
class SessionContext:
    """Explicit session context passed through request handling.

    Starts ``unresolved``; moves once to ``resolved`` (with an identity) or
    ``rejected`` (without one). Both end states are terminal.
    """

    authorization: str | None = None
    state: AuthState = AuthState.unresolved
    identity: Identity | None = None

    @classmethod
    def from_header(cls, authorization: str | None) -> "SessionContext":
        """Build a session from the raw Authorization header value."""
        return cls(authorization=authorization)

    def bearer_token(self) -> str | None:
        """Return the bearer credential, or None if absent or another scheme."""
        if not self.authorization:
            return None

        scheme, _, token = self.authorization.strip().partition(" ")
        if scheme.lower() != BEARER_SCHEME:
            return None

        token = token.strip()
        return token or None

    def resolve(self, identity: Identity) -> None:
        """Attach the identity. Only valid from the unresolved state."""
        if self.state is not AuthState.unresolved:
            raise InvalidState(f"Session already {self.state.value}")
        self.identity = identity
        self.state = AuthState.resolved

    def reject(self) -> None:
        """Mark the session rejected. Only valid from the unresolved state."""
        if self.state is not AuthState.unresolved:
            raise InvalidState(f"Session already {self.state.value}")
        self.identity = None
        self.state = AuthState.rejected
