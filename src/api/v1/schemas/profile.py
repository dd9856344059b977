"""Pydantic schemas for Profile API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.dashboard import AdminOverview, Dashboard
from domain.entities.profile import COMMUNITY_CARD_THRESHOLD, Profile


class ProfileResponse(BaseModel):
    """Schema for Profile response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "name": "Jane Doe",
                "email": "jane@example.com",
                "phone": "+1 555 000 0000",
                "referral_code": "xyz123ab",
                "referred_by": None,
                "referral_count": 3,
                "qr_code_url": None,
                "is_unlocked": False,
                "referrals_remaining": 2,
                "progress_percent": 60.0,
                "card_number": "123E4567",
                "created_at": "2026-02-01T10:00:00",
            }
        },
    )

    id: UUID
    name: str | None = None
    email: str
    phone: str | None = None
    referral_code: str
    referred_by: UUID | None = None
    referral_count: int
    qr_code_url: str | None = None
    is_unlocked: bool
    referrals_remaining: int
    progress_percent: float
    card_number: str
    created_at: datetime

    @classmethod
    def from_entity(cls, profile: Profile) -> "ProfileResponse":
        return cls(
            id=profile.id,
            name=profile.name,
            email=profile.email,
            phone=profile.phone,
            referral_code=profile.referral_code,
            referred_by=profile.referred_by,
            referral_count=profile.referral_count,
            qr_code_url=profile.qr_code_url,
            is_unlocked=profile.is_unlocked,
            referrals_remaining=profile.referrals_remaining,
            progress_percent=profile.progress_percent,
            card_number=profile.card_number,
            created_at=profile.created_at,
        )


class ReferralResponse(BaseModel):
    """A member who joined with someone's referral code."""

    id: UUID
    name: str | None = None
    email: str
    created_at: datetime


class ReferralListResponse(BaseModel):
    """Schema for list of referrals response."""

    data: list[ReferralResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class DashboardResponse(BaseModel):
    """Schema for the member dashboard."""

    profile: ProfileResponse
    referral_link: str
    share_url: str
    threshold: int = COMMUNITY_CARD_THRESHOLD
    referrals: list[ReferralResponse]

    @classmethod
    def from_entity(cls, dashboard: Dashboard) -> "DashboardResponse":
        return cls(
            profile=ProfileResponse.from_entity(dashboard.profile),
            referral_link=dashboard.referral_link,
            share_url=dashboard.share_url,
            referrals=[
                ReferralResponse(id=r.id, name=r.name, email=r.email, created_at=r.created_at)
                for r in dashboard.referrals
            ],
        )


class QrCodeResponse(BaseModel):
    """Schema for a QR code image reference."""

    qr_code_url: str | None = Field(
        None,
        description="data: URL of the PNG image, or null if it could not be generated",
    )
    target_url: str


class AdminStats(BaseModel):
    total_users: int
    total_referrals: int
    average_referrals: float
    unlocked_cards: int


class AdminOverviewResponse(BaseModel):
    """Schema for the admin overview."""

    stats: AdminStats
    data: list[ProfileResponse]

    @classmethod
    def from_entity(cls, overview: AdminOverview) -> "AdminOverviewResponse":
        return cls(
            stats=AdminStats(
                total_users=overview.total_users,
                total_referrals=overview.total_referrals,
                average_referrals=overview.average_referrals,
                unlocked_cards=overview.unlocked_cards,
            ),
            data=[ProfileResponse.from_entity(p) for p in overview.profiles],
        )
