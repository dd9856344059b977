"""Profile repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.profile import Profile


class IProfileRepository(Protocol):
    """Repository interface for the profiles relation.

    ``validate_referral_code``, ``create_profile`` and ``apply_referral`` mirror
    the store-side procedures of the same name and must each run as a single
    statement batch inside the caller's transaction.
    """

    async def get(self, id: UUID) -> Profile | None:
        """Get a profile by user id."""
        ...

    async def validate_referral_code(self, code: str) -> UUID | None:
        """Return the id of the profile owning ``code`` (case-insensitive)."""
        ...

    async def create_profile(
        self,
        user_id: UUID,
        email: str,
        name: str | None = None,
        phone: str | None = None,
    ) -> Profile:
        """Create the profile with a fresh unique code, or return the existing row."""
        ...

    async def insert(self, profile: Profile) -> Profile:
        """Insert a profile row as given."""
        ...

    async def apply_referral(self, new_user_id: UUID, referrer_id: UUID) -> bool:
        """Link ``new_user_id`` to ``referrer_id`` and bump the referrer's count.

        Returns False when nothing changed (already referred, self-referral,
        or unknown rows).
        """
        ...

    async def set_qr_code_url(self, id: UUID, qr_code_url: str) -> Profile | None:
        """Store the QR image URL for a profile."""
        ...

    async def list_referrals(self, referrer_id: UUID) -> list[Profile]:
        """Profiles referred by ``referrer_id``, newest first."""
        ...

    async def list_by_referral_count(self) -> list[Profile]:
        """All profiles ordered by referral count, highest first."""
        ...
