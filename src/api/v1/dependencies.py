"""Dependency injection factories for API v1."""

from functools import lru_cache
from typing import Callable

from core.config import settings
from domain.services.auth_service import AuthService
from domain.services.profile_service import ProfileService
from domain.services.qr_service import QrCodeService
from domain.services.referral_service import ReferralService
from domain.services.registration_service import RegistrationService
from infrastructure.auth.supabase_identity import SupabaseIdentityProvider
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
from infrastructure.qr.encoder import QrCodeEncoder, QrOptions


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_identity_provider() -> SupabaseIdentityProvider:
    """Get the Supabase Auth identity provider."""
    return SupabaseIdentityProvider()


@lru_cache
def get_referral_service() -> ReferralService:
    """Get Referral service instance."""
    return ReferralService(get_uow_factory())


@lru_cache
def get_registration_service() -> RegistrationService:
    """Get Registration service instance."""
    return RegistrationService(
        get_uow_factory(),
        identity_provider=get_identity_provider(),
        referral_service=get_referral_service(),
        poll_delays=settings.profile_poll_delays,
        email_redirect_url=settings.email_redirect_url,
    )


@lru_cache
def get_qr_service() -> QrCodeService:
    """Get QR code service instance."""
    return QrCodeService(
        get_uow_factory(),
        encoder=QrCodeEncoder(
            QrOptions(
                error_correction=settings.qr_error_correction,
                size=settings.qr_size,
                margin=settings.qr_margin,
            )
        ),
        base_url=settings.public_base_url,
    )


@lru_cache
def get_profile_service() -> ProfileService:
    """Get Profile service instance."""
    return ProfileService(get_uow_factory(), base_url=settings.public_base_url)


@lru_cache
def get_auth_service() -> AuthService:
    """Get Auth service instance."""
    return AuthService(get_identity_provider())
