"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ProfileModel(Base):
    """Community member profile (row created by the auth.users signup trigger)."""

    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("referral_count >= 0", name="ck_profiles_referral_count_non_negative"),
        CheckConstraint(
            "referred_by IS NULL OR referred_by <> id",
            name="ck_profiles_no_self_referral",
        ),
        Index("ix_profiles_referred_by", "referred_by"),
        Index("ix_profiles_referral_count", "referral_count"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    name: Mapped[str | None] = mapped_column(String(100))
    phone: Mapped[str | None] = mapped_column(String(32))
    referral_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    referred_by: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
    )
    referral_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # data: URLs of rendered PNGs are several KB
    qr_code_url: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    # Relationships
    referrer: Mapped[Optional["ProfileModel"]] = relationship(
        "ProfileModel",
        remote_side=[id],
        back_populates="referrals",
    )
    referrals: Mapped[list["ProfileModel"]] = relationship(
        "ProfileModel",
        back_populates="referrer",
    )
