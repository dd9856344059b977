"""Referral code lookup and referral linking."""

from collections.abc import Callable
from uuid import UUID

import structlog

from core.exceptions import (
    ReferralApplicationError,
    ReferralCodeNotFoundError,
    ReferralLookupUnavailableError,
)
from domain.entities.profile import normalize_referral_code
from domain.entities.registration import ReferralStatus, ReferralValidation
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class ReferralService:
    """Looks up referrers and applies referral links through the store.

    Lookups go through the store's ``validate_referral_code`` operation and
    links through ``apply_referral``; nothing here reads and rewrites counts.
    """

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def lookup_referrer(self, code: str) -> UUID:
        """Resolve a normalized code to its owner.

        Raises:
            ReferralCodeNotFoundError: The lookup succeeded but no profile owns the code.
            ReferralLookupUnavailableError: The lookup itself failed.
        """
        try:
            async with self._uow_factory() as uow:
                referrer_id = await uow.profiles.validate_referral_code(code)
        except Exception as e:
            raise ReferralLookupUnavailableError(str(e)) from e

        if referrer_id is None:
            raise ReferralCodeNotFoundError(code)
        return referrer_id

    async def validate_code(self, raw_code: str | None) -> ReferralValidation:
        """Validate a submitted code without ever raising.

        An empty code means "no referral". A failed lookup is logged and
        reported as UNAVAILABLE so callers never tell the user the code is
        invalid when we simply could not check it.
        """
        code = normalize_referral_code(raw_code)
        if not code:
            return ReferralValidation(ReferralStatus.NONE)

        try:
            referrer_id = await self.lookup_referrer(code)
        except ReferralLookupUnavailableError as e:
            logger.warning(
                "referral_lookup_unavailable",
                code=code,
                reason=(e.details or {}).get("reason"),
            )
            return ReferralValidation(ReferralStatus.UNAVAILABLE, code=code)
        except ReferralCodeNotFoundError:
            logger.info("referral_code_not_found", code=code)
            return ReferralValidation(ReferralStatus.NOT_FOUND, code=code)

        return ReferralValidation(ReferralStatus.VALID, code=code, referrer_id=referrer_id)

    async def apply_referral(self, new_user_id: UUID, referrer_id: UUID) -> bool:
        """Link a new profile to its referrer in one transaction.

        Returns:
            True if the link was made and counted, False if the profile was
            already referred (or would refer itself).

        Raises:
            ReferralApplicationError: The store failed to apply the referral.
        """
        try:
            async with self._uow_factory() as uow:
                applied = await uow.profiles.apply_referral(new_user_id, referrer_id)
                await uow.commit()
        except Exception as e:
            logger.error(
                "referral_apply_failed",
                user_id=str(new_user_id),
                referrer_id=str(referrer_id),
                error=str(e),
                exc_info=True,
            )
            raise ReferralApplicationError(str(new_user_id), str(referrer_id), str(e)) from e

        logger.info(
            "referral_applied" if applied else "referral_not_applied",
            user_id=str(new_user_id),
            referrer_id=str(referrer_id),
        )
        return bool(applied)
