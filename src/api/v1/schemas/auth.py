"""Pydantic schemas for registration and session API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from api.v1.schemas.profile import ProfileResponse
from domain.entities.session import AuthSession


def _validate_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v or "." not in v.split("@")[-1]:
        raise ValueError("Invalid email address")
    return v


class RegisterRequest(BaseModel):
    """Schema for registering a new member."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str = Field(..., min_length=3, max_length=32)
    password: str = Field(..., min_length=6, max_length=72)
    referral_code: str | None = Field(None, max_length=64)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Basic email validation."""
        return _validate_email(v)

    @field_validator("name", "phone")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Must not be blank")
        return v


class LoginRequest(BaseModel):
    """Schema for password sign-in."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Basic email validation."""
        return _validate_email(v)


class SessionTokens(BaseModel):
    """Tokens issued by the identity provider."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: datetime | None = None

    @classmethod
    def from_entity(cls, session: AuthSession) -> "SessionTokens":
        return cls(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            token_type=session.token_type,
            expires_in=session.expires_in,
            expires_at=session.expires_at,
        )


class WarningResponse(BaseModel):
    code: str
    message: str


class RegistrationResponse(BaseModel):
    """Schema for the registration outcome."""

    profile: ProfileResponse
    session_state: str
    session: SessionTokens | None = None
    referral_status: str
    referral_applied: bool
    warnings: list[WarningResponse] = Field(default_factory=list)
    message: str


class SessionResponse(BaseModel):
    """Schema for a successful sign-in."""

    user_id: UUID
    email: str
    session: SessionTokens


class SessionStateResponse(BaseModel):
    """Schema describing the caller's session state."""

    state: str
    user_id: UUID | None = None
    email: str | None = None
