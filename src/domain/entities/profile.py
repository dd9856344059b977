"""Profile domain entity."""

import secrets
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

# Referrals needed before the community card unlocks
COMMUNITY_CARD_THRESHOLD = 5

REFERRAL_CODE_LENGTH = 8

# Lowercase letters and digits without look-alikes (0/o, 1/l/i)
REFERRAL_CODE_ALPHABET = "abcdefghjkmnpqrstuvwxyz23456789"

PLACEHOLDER_CODE_PREFIX = "tmp-"


def generate_referral_code(length: int = REFERRAL_CODE_LENGTH) -> str:
    """Generate a random referral code in canonical (lowercase) form."""
    return "".join(secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length))


def placeholder_referral_code(user_id: UUID) -> str:
    """Temporary code used when the profile has to be inserted directly."""
    return f"{PLACEHOLDER_CODE_PREFIX}{user_id.hex[:8]}"


def normalize_referral_code(raw: str | None) -> str:
    """Trim, drop internal whitespace and lowercase a submitted code."""
    if not raw:
        return ""
    return "".join(raw.split()).lower()


def build_referral_link(base_url: str, referral_code: str) -> str:
    """Public link that pre-fills the registration form with a code."""
    return f"{base_url.rstrip('/')}/register?ref={referral_code}"


def build_registration_link(base_url: str) -> str:
    """Public registration link without a referral code."""
    return f"{base_url.rstrip('/')}/register"


@dataclass
class Profile:
    """Domain entity for a registered community member.

    The id is the identity provider's user id. ``referred_by`` is set at most
    once; ``referral_count`` only moves through the store's atomic
    ``apply_referral`` operation.
    """

    id: UUID = field(default_factory=uuid4)
    email: str = ""
    name: str | None = None
    phone: str | None = None
    referral_code: str = field(default_factory=generate_referral_code)
    referred_by: UUID | None = None
    referral_count: int = 0
    qr_code_url: str | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        """Ensure updated_at is always at least as recent as created_at."""
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @property
    def is_unlocked(self) -> bool:
        """Whether the community card is unlocked. Recomputed on every read."""
        return is_unlocked(self)

    @property
    def referrals_remaining(self) -> int:
        """Referrals still needed to unlock the card."""
        return max(0, COMMUNITY_CARD_THRESHOLD - self.referral_count)

    @property
    def progress_percent(self) -> float:
        """Progress towards the card as a percentage capped at 100."""
        return min(self.referral_count / COMMUNITY_CARD_THRESHOLD * 100, 100.0)

    @property
    def card_number(self) -> str:
        return str(self.id).replace("-", "")[:8].upper()

    @property
    def has_placeholder_code(self) -> bool:
        return self.referral_code.startswith(PLACEHOLDER_CODE_PREFIX)


def is_unlocked(profile: Profile, threshold: int = COMMUNITY_CARD_THRESHOLD) -> bool:
    """Community card unlock rule."""
    return profile.referral_count >= threshold
