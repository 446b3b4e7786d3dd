"""Resolved principal for one request."""

from dataclasses import dataclass
from datetime import datetime

from itinera.app.models.account import IdentityView


@dataclass(frozen=True)
class Profile:
    """Profile fetched for a verified subject from a ProfileStore."""

    subject_id: str
    email: str
    created_at: datetime
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class Identity:
    """Request identity attached by the auth gate.

    Immutable for the lifetime of one request and never persisted by the gate.
    """

    id: str
    email: str
    created_at: datetime
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None

    @property
    def display_name(self) -> str:
        full_name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full_name or self.email

    @classmethod
    def from_profile(cls, subject_id: str, profile: Profile) -> "Identity":
        """Map a profile onto an identity whose id is the verified subject."""
        return cls(
            id=subject_id,
            email=profile.email,
            created_at=profile.created_at,
            first_name=profile.first_name,
            last_name=profile.last_name,
            image_url=profile.image_url,
        )

    def to_view(self) -> IdentityView:
        return IdentityView(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            image_url=self.image_url,
            display_name=self.display_name,
            created_at=self.created_at,
        )
