"""Account models - local sign-up/login payloads and the public identity view."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""

    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Lower-case and trim the e-mail address."""
        return v.strip().lower()


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Lower-case and trim the e-mail address."""
        return v.strip().lower()


class IdentityView(BaseModel):
    """Serialized form of a resolved identity."""

    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None
    display_name: str
    created_at: datetime


class AuthResponse(BaseModel):
    """Response for signup/login."""

    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: IdentityView
