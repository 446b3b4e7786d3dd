"""Trip models - a user's trip and its API payloads."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator


class Trip(BaseModel):
    """A trip owned by one user."""

    id: uuid.UUID
    title: str
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    currency: str | None = None
    owner_id: str
    is_public: bool = False
    slug: str | None = None
    estimated_budget: float | None = None
    created_at: datetime
    updated_at: datetime


class TripCreate(BaseModel):
    """Request body for POST /trips."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    currency: str | None = Field(None, min_length=3, max_length=3, description="ISO 4217 code")
    estimated_budget: float | None = Field(None, ge=0)

    @field_validator("end_date")
    @classmethod
    def validate_end_after_start(cls, v: date | None, info: ValidationInfo) -> date | None:
        """Ensure end_date >= start_date."""
        start = info.data.get("start_date")
        if v is not None and start is not None and v < start:
            raise ValueError("end_date must be >= start_date")
        return v


class TripUpdate(BaseModel):
    """Request body for PATCH /trips/{trip_id}.

    Only fields present in the request are applied.
    """

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    currency: str | None = Field(None, min_length=3, max_length=3)
    estimated_budget: float | None = Field(None, ge=0)

    @model_validator(mode="after")
    def validate_dates(self) -> "TripUpdate":
        """Ensure end_date >= start_date when both are supplied."""
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TripsPage(BaseModel):
    """One page of a user's trips, newest first."""

    trips: list[Trip]
    total: int
    has_more: bool


class VisibilityUpdate(BaseModel):
    """Request body for PUT /trips/{trip_id}/visibility."""

    is_public: bool


class VisibilityResponse(BaseModel):
    """Public slug after a visibility change (None when private)."""

    slug: str | None
