"""Registration workflow: account, profile, and referral link."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Optional
from uuid import UUID

import structlog

from core.exceptions import (
    IdentityCreationError,
    ProfileProvisioningError,
    ReferralApplicationError,
)
from domain.entities.profile import Profile, placeholder_referral_code
from domain.entities.registration import (
    ReferralStatus,
    RegistrationResult,
    RegistrationWarning,
    WarningCode,
)
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.referral_service import ReferralService
from infrastructure.auth.provider import IIdentityProvider

logger = structlog.get_logger()

DEFAULT_POLL_DELAYS: tuple[float, ...] = (0.5, 1.0)


class RegistrationService:
    """Registers a member and links them to a referrer at most once.

    Account and profile creation fail fast. Referral validation and linking
    fail soft: a broken referral never stops someone from joining.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        identity_provider: IIdentityProvider,
        referral_service: Optional[ReferralService] = None,
        poll_delays: Sequence[float] = DEFAULT_POLL_DELAYS,
        email_redirect_url: str | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._uow_factory = uow_factory
        self._identity = identity_provider
        self._referrals = referral_service or ReferralService(uow_factory)
        self._poll_delays = tuple(poll_delays)
        self._email_redirect_url = email_redirect_url
        self._sleep = sleep

    async def register(
        self,
        name: str,
        email: str,
        phone: str,
        password: str,
        referral_code: str | None = None,
    ) -> RegistrationResult:
        """Register a new member.

        Args:
            name: Full name, stored as identity metadata and on the profile.
            email: Sign-in email.
            phone: Phone number, stored as identity metadata and on the profile.
            password: Sign-in password.
            referral_code: Optional code of the member who referred them.

        Returns:
            RegistrationResult. Its session_state is PENDING_CONFIRMATION when
            the provider wants the email confirmed first.

        Raises:
            IdentityRateLimitedError: The provider is throttling sign-ups.
            IdentityCreationError: The account could not be created.
            ProfileProvisioningError: No profile row after every fallback.
        """
        email = email.strip()
        warnings: list[RegistrationWarning] = []

        # 1. Validate the referral code (never blocks)
        validation = await self._referrals.validate_code(referral_code)
        if validation.status == ReferralStatus.NOT_FOUND:
            warnings.append(
                RegistrationWarning(WarningCode.REFERRAL_CODE_INVALID, "Invalid referral code")
            )

        # 2. Create the identity
        sign_up = await self._identity.sign_up(
            email=email,
            password=password,
            metadata={"name": name, "phone": phone},
            redirect_to=self._email_redirect_url,
        )
        if sign_up.user is None:
            logger.error("registration_missing_user_id")
            raise IdentityCreationError("Failed to create user", status_code=502)

        user_id = sign_up.user.id
        log = logger.bind(user_id=str(user_id))
        log.info("identity_created", session_state=sign_up.session_state.value)

        # 3. Make sure the profile row exists
        profile = await self._ensure_profile(user_id, email, name, phone)

        # 4. Link the referral
        applied = False
        referrer_id = validation.referrer_id if validation.is_valid else None
        if referrer_id is not None:
            applied, profile = await self._link_referral(profile, referrer_id, warnings)

        # 5. Outcome
        log.info(
            "registration_completed",
            referral_status=validation.status.value,
            referral_applied=applied,
            warnings=[w.code.value for w in warnings],
        )
        return RegistrationResult(
            profile=profile,
            session_state=sign_up.session_state,
            session=sign_up.session,
            referral=validation,
            referral_applied=applied,
            warnings=warnings,
        )

    # --- Profile provisioning ---

    async def _ensure_profile(
        self,
        user_id: UUID,
        email: str,
        name: str | None,
        phone: str | None,
    ) -> Profile:
        """Wait for the signup trigger's row, then fall back to creating it.

        Every fallback looks for an existing row first, so a late trigger is
        never duplicated and its referral code is never overwritten.
        """
        failures: dict[str, str] = {}

        try:
            profile = await self._poll_for_profile(user_id)
        except Exception as e:
            logger.warning("profile_poll_failed", user_id=str(user_id), error=str(e))
            failures["poll"] = str(e) or type(e).__name__
            profile = None
        if profile:
            return profile
        failures.setdefault("poll", "profile row not created by signup trigger")

        try:
            async with self._uow_factory() as uow:
                profile = await uow.profiles.create_profile(user_id, email, name, phone)
                await uow.commit()
        except Exception as e:
            logger.warning("create_profile_failed", user_id=str(user_id), error=str(e))
            failures["create_profile"] = str(e) or type(e).__name__
        else:
            logger.info("profile_created_by_fallback", user_id=str(user_id))
            return profile

        try:
            async with self._uow_factory() as uow:
                profile = await uow.profiles.get(user_id)
                if profile is None:
                    profile = await uow.profiles.insert(
                        Profile(
                            id=user_id,
                            email=email,
                            name=name,
                            phone=phone,
                            referral_code=placeholder_referral_code(user_id),
                        )
                    )
                    await uow.commit()
                    logger.warning("profile_inserted_with_placeholder_code", user_id=str(user_id))
            return profile
        except Exception as e:
            logger.error("profile_direct_insert_failed", user_id=str(user_id), error=str(e))
            failures["direct_insert"] = str(e) or type(e).__name__

        # The row may have landed while the insert was failing
        try:
            profile = await self._fetch_profile(user_id)
        except Exception:
            profile = None
        if profile:
            return profile

        raise ProfileProvisioningError(str(user_id), failures)

    async def _poll_for_profile(self, user_id: UUID) -> Profile | None:
        profile = await self._fetch_profile(user_id)
        for delay in self._poll_delays:
            if profile:
                break
            await self._sleep(delay)
            profile = await self._fetch_profile(user_id)
        return profile

    async def _fetch_profile(self, user_id: UUID) -> Profile | None:
        async with self._uow_factory() as uow:
            return await uow.profiles.get(user_id)

    # --- Referral linking ---

    async def _link_referral(
        self,
        profile: Profile,
        referrer_id: UUID,
        warnings: list[RegistrationWarning],
    ) -> tuple[bool, Profile]:
        log = logger.bind(user_id=str(profile.id), referrer_id=str(referrer_id))

        if referrer_id == profile.id:
            log.info("self_referral_skipped")
            return False, profile
        if profile.referred_by is not None:
            log.info("referral_already_set", referred_by=str(profile.referred_by))
            return False, profile

        try:
            applied = await self._referrals.apply_referral(profile.id, referrer_id)
        except ReferralApplicationError as e:
            warnings.append(RegistrationWarning(WarningCode.REFERRAL_NOT_COUNTED, e.message))
            return False, profile

        # Re-read for diagnostics; the result does not change the outcome
        try:
            confirmed = await self._fetch_profile(profile.id)
        except Exception as e:
            log.warning("referral_confirmation_read_failed", error=str(e))
            return applied, profile

        if confirmed is None:
            return applied, profile
        if applied and confirmed.referred_by != referrer_id:
            log.warning(
                "referral_link_not_visible",
                referred_by=str(confirmed.referred_by) if confirmed.referred_by else None,
            )
        return applied, confirmed
