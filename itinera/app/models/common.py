"""Common types shared across all models."""

from datetime import datetime

from pydantic import BaseModel, Field


class Geo(BaseModel):
    """Geographic coordinates (WGS84)."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


def ends_after_start(start: datetime | None, end: datetime | None) -> bool:
    """Return False only when both bounds are set and end precedes start."""
    if start is None or end is None:
        return True
    return end >= start
