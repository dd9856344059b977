"""Profile read operations: dashboard, referrals, admin overview."""

from collections.abc import Callable
from uuid import UUID

from core.exceptions import ProfileNotFoundError
from domain.entities.dashboard import AdminOverview, Dashboard
from domain.entities.profile import Profile, build_referral_link
from domain.repositories.unit_of_work import IUnitOfWork


class ProfileService:
    """Service layer for reading profiles.

    Unlock state and progress are computed from ``referral_count`` on every
    read, so a fresh read always reflects the latest increments.
    """

    def __init__(self, uow_factory: Callable[[], IUnitOfWork], base_url: str) -> None:
        self._uow_factory = uow_factory
        self._base_url = base_url

    async def get_profile(self, user_id: UUID) -> Profile:
        """Get a profile.

        Raises:
            ProfileNotFoundError: If no profile exists for the user.
        """
        async with self._uow_factory() as uow:
            profile = await uow.profiles.get(user_id)
        if profile is None:
            raise ProfileNotFoundError(str(user_id))
        return profile

    async def get_referrals(self, user_id: UUID) -> list[Profile]:
        """Members who joined with this user's code, newest first."""
        async with self._uow_factory() as uow:
            return await uow.profiles.list_referrals(user_id)  # type: ignore[no-any-return]

    async def get_dashboard(self, user_id: UUID) -> Dashboard:
        async with self._uow_factory() as uow:
            profile = await uow.profiles.get(user_id)
            if profile is None:
                raise ProfileNotFoundError(str(user_id))
            referrals = await uow.profiles.list_referrals(user_id)

        return Dashboard(
            profile=profile,
            referral_link=build_referral_link(self._base_url, profile.referral_code),
            referrals=referrals,
        )

    async def get_admin_overview(self) -> AdminOverview:
        async with self._uow_factory() as uow:
            profiles = await uow.profiles.list_by_referral_count()
        return AdminOverview(profiles=profiles)
