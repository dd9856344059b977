"""Identity and session domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID


class SessionState(StrEnum):
    """Where a user stands with the identity provider."""

    SIGNED_OUT = "signed_out"
    PENDING_CONFIRMATION = "pending_confirmation"
    SIGNED_IN = "signed_in"


@dataclass
class AuthSession:
    """Tokens issued by the identity provider."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: datetime | None = None


@dataclass
class IdentityUser:
    """A user account as known to the identity provider."""

    id: UUID
    email: str
    email_confirmed_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_confirmed(self) -> bool:
        return self.email_confirmed_at is not None


@dataclass
class SignUpResult:
    """Outcome of a sign-up call. ``session`` is None while confirmation is pending."""

    user: IdentityUser | None
    session: AuthSession | None = None

    @property
    def session_state(self) -> SessionState:
        if self.session is not None:
            return SessionState.SIGNED_IN
        return SessionState.PENDING_CONFIRMATION


@dataclass
class SignInResult:
    """Outcome of a password sign-in."""

    user: IdentityUser
    session: AuthSession
