"""Registration workflow result types."""

from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

from domain.entities.profile import Profile
from domain.entities.session import AuthSession, SessionState


class ReferralStatus(StrEnum):
    """Outcome of validating a submitted referral code."""

    NONE = "none"
    VALID = "valid"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ReferralValidation:
    """Result of looking up a referral code."""

    status: ReferralStatus
    code: str = ""
    referrer_id: UUID | None = None

    @property
    def is_valid(self) -> bool:
        return self.status == ReferralStatus.VALID and self.referrer_id is not None


class WarningCode(StrEnum):
    """Non-blocking problems reported alongside a successful registration."""

    REFERRAL_CODE_INVALID = "REFERRAL_CODE_INVALID"
    REFERRAL_NOT_COUNTED = "REFERRAL_NOT_COUNTED"


@dataclass(frozen=True)
class RegistrationWarning:
    code: WarningCode
    message: str


@dataclass
class RegistrationResult:
    """Successful registration, possibly with referral warnings."""

    profile: Profile
    session_state: SessionState
    session: AuthSession | None = None
    referral: ReferralValidation = field(
        default_factory=lambda: ReferralValidation(ReferralStatus.NONE)
    )
    referral_applied: bool = False
    warnings: list[RegistrationWarning] = field(default_factory=list)

    @property
    def requires_confirmation(self) -> bool:
        return self.session_state == SessionState.PENDING_CONFIRMATION
