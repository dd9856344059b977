"""QR code provisioning for referral links."""

import asyncio
import weakref
from collections.abc import Callable
from typing import Protocol
from uuid import UUID

import structlog

from core.exceptions import QrEncodingError
from domain.entities.profile import Profile, build_referral_link, build_registration_link
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class IQrEncoder(Protocol):
    """Turns text into an image reference (a data URL)."""

    def encode_data_url(self, text: str) -> str:
        ...


class QrCodeService:
    """Generates each profile's referral QR code once and memoizes it on the profile."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        encoder: IQrEncoder,
        base_url: str,
    ) -> None:
        self._uow_factory = uow_factory
        self._encoder = encoder
        self._base_url = base_url
        self._locks: weakref.WeakValueDictionary[UUID, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._registration_qr: str | None = None

    def _lock_for(self, profile_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(profile_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[profile_id] = lock
        return lock

    async def ensure_qr_code(self, profile: Profile) -> str | None:
        """Return the profile's QR image, generating and storing it if missing.

        Failures are logged and yield None; callers render without the image.
        """
        if profile.qr_code_url:
            return profile.qr_code_url

        lock = self._lock_for(profile.id)
        async with lock:
            try:
                return await self._generate(profile)
            except QrEncodingError as e:
                logger.warning(
                    "qr_code_generation_failed",
                    profile_id=str(profile.id),
                    reason=(e.details or {}).get("reason"),
                )
            except Exception:
                logger.exception("qr_code_store_failed", profile_id=str(profile.id))
        return None

    async def _generate(self, profile: Profile) -> str | None:
        # Another caller may have stored it while we waited on the lock
        async with self._uow_factory() as uow:
            current = await uow.profiles.get(profile.id)
        if current is None:
            return None
        if current.qr_code_url:
            profile.qr_code_url = current.qr_code_url
            return current.qr_code_url

        link = build_referral_link(self._base_url, current.referral_code)
        data_url = await asyncio.to_thread(self._encoder.encode_data_url, link)

        async with self._uow_factory() as uow:
            stored = await uow.profiles.set_qr_code_url(profile.id, data_url)
            await uow.commit()

        qr_code_url = stored.qr_code_url if stored and stored.qr_code_url else data_url
        profile.qr_code_url = qr_code_url
        logger.info("qr_code_generated", profile_id=str(profile.id))
        return qr_code_url

    async def registration_qr(self) -> str | None:
        """QR code for the plain registration page (no referral code)."""
        if self._registration_qr is None:
            link = build_registration_link(self._base_url)
            try:
                self._registration_qr = await asyncio.to_thread(
                    self._encoder.encode_data_url, link
                )
            except QrEncodingError:
                logger.warning("registration_qr_generation_failed")
                return None
        return self._registration_qr

    def referral_link(self, profile: Profile) -> str:
        return build_referral_link(self._base_url, profile.referral_code)

    def registration_link(self) -> str:
        return build_registration_link(self._base_url)
