"""Read models for the member dashboard and the admin overview."""

from dataclasses import dataclass, field
from urllib.parse import quote

from domain.entities.profile import Profile

SHARE_MESSAGE = "Join our community! Use my referral link: {link}"


def whatsapp_share_url(link: str) -> str:
    """wa.me link that opens a chat pre-filled with the referral message."""
    return f"https://wa.me/?text={quote(SHARE_MESSAGE.format(link=link), safe='')}"


@dataclass
class Dashboard:
    """Everything the member dashboard shows for one profile."""

    profile: Profile
    referral_link: str
    referrals: list[Profile] = field(default_factory=list)

    @property
    def share_url(self) -> str:
        return whatsapp_share_url(self.referral_link)


@dataclass
class AdminOverview:
    """All profiles ranked by referrals, with program-wide totals."""

    profiles: list[Profile]

    @property
    def total_users(self) -> int:
        return len(self.profiles)

    @property
    def total_referrals(self) -> int:
        return sum(p.referral_count for p in self.profiles)

    @property
    def average_referrals(self) -> float:
        if not self.profiles:
            return 0.0
        return round(self.total_referrals / self.total_users, 1)

    @property
    def unlocked_cards(self) -> int:
        return sum(1 for p in self.profiles if p.is_unlocked)
