"""SQLAlchemy implementation of Profile repository.

On PostgreSQL the referral lookup, the referral link and profile creation go
through the store procedures created by the ``add_referral_procedures``
migration, so the backend and direct Supabase clients share one copy of that
logic. Other dialects (SQLite in tests) run the equivalent ORM statements.
"""

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import Boolean, Select, TextClause, Uuid, func, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.profile import Profile, generate_referral_code
from infrastructure.database.models import ProfileModel

logger = structlog.get_logger()

# Attempts at drawing an unused referral code before giving up
MAX_CODE_ATTEMPTS = 5

# Primary key and referral code constraints; SQLite names the columns instead
KEY_CONFLICT_MARKERS = (
    "profiles_pkey",
    "profiles_referral_code_key",
    "ux_profiles_referral_code_lower",
    "profiles.id",
    "profiles.referral_code",
)


class ReferralCodeExhaustedError(RuntimeError):
    """No unused referral code could be drawn."""


def validate_referral_code_call(code: str) -> Select:
    return select(func.validate_referral_code(code, type_=Uuid))


def apply_referral_call(new_user_id: UUID, referrer_id: UUID) -> Select:
    return select(func.apply_referral(new_user_id, referrer_id, type_=Boolean))


def create_profile_call(
    user_id: UUID, email: str, name: str | None, phone: str | None
) -> TextClause:
    return text("SELECT * FROM create_profile(:user_id, :email, :name, :phone)").bindparams(
        user_id=user_id, email=email, name=name, phone=phone
    )


def is_key_conflict(error: IntegrityError) -> bool:
    """True when the insert lost a race for the id or drew a taken code."""
    message = str(error.orig)
    return any(marker in message for marker in KEY_CONFLICT_MARKERS)


class SQLAlchemyProfileRepository:
    """SQLAlchemy implementation of IProfileRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def _uses_store_procedures(self) -> bool:
        return self._session.get_bind().dialect.name == "postgresql"

    async def get(self, id: UUID) -> Profile | None:
        """Get a profile by user id."""
        stmt = select(ProfileModel).where(ProfileModel.id == id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def validate_referral_code(self, code: str) -> UUID | None:
        """Return the owner of ``code``, comparing case-insensitively."""
        if self._uses_store_procedures:
            result = await self._session.execute(validate_referral_code_call(code))
            return result.scalar_one_or_none()

        stmt = select(ProfileModel.id).where(
            func.lower(ProfileModel.referral_code) == func.lower(func.trim(code))
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_profile(
        self,
        user_id: UUID,
        email: str,
        name: str | None = None,
        phone: str | None = None,
    ) -> Profile:
        """Create the profile with a fresh code unless a row already exists."""
        if self._uses_store_procedures:
            stmt = (
                select(ProfileModel)
                .from_statement(create_profile_call(user_id, email, name, phone))
                .execution_options(populate_existing=True)
            )
            result = await self._session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                raise LookupError(f"create_profile returned no row for {user_id}")
            await self._session.flush()
            return self._to_entity(model)

        return await self._insert_with_fresh_code(user_id, email, name, phone)

    async def _insert_with_fresh_code(
        self,
        user_id: UUID,
        email: str,
        name: str | None,
        phone: str | None,
    ) -> Profile:
        # A key conflict means the signup trigger won the race for the id or
        # the code was taken meanwhile; anything else is re-raised
        for _ in range(MAX_CODE_ATTEMPTS):
            existing = await self.get(user_id)
            if existing:
                return existing

            code = generate_referral_code()
            if await self.validate_referral_code(code):
                continue

            model = ProfileModel(
                id=user_id,
                email=email,
                name=name,
                phone=phone,
                referral_code=code,
                referral_count=0,
            )
            self._session.add(model)
            try:
                await self._session.flush()
            except IntegrityError as e:
                await self._session.rollback()
                if not is_key_conflict(e):
                    raise
                logger.info("create_profile_conflict", user_id=str(user_id))
                continue

            await self._session.refresh(model)
            return self._to_entity(model)

        existing = await self.get(user_id)
        if existing:
            return existing
        raise ReferralCodeExhaustedError(f"No unused referral code for {user_id}")

    async def insert(self, profile: Profile) -> Profile:
        """Insert a profile row as given."""
        model = self._to_model(profile)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def apply_referral(self, new_user_id: UUID, referrer_id: UUID) -> bool:
        """Set ``referred_by`` once and count it for the referrer, atomically.

        Returns False when the profile is already referred or refers itself.
        An unknown referrer raises and the caller's unit of work rolls back.
        """
        if self._uses_store_procedures:
            result = await self._session.execute(apply_referral_call(new_user_id, referrer_id))
            return bool(result.scalar_one())

        if new_user_id == referrer_id:
            return False

        link = (
            update(ProfileModel)
            .where(
                ProfileModel.id == new_user_id,
                ProfileModel.referred_by.is_(None),
            )
            .values(referred_by=referrer_id, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        linked = await self._session.execute(link)
        if linked.rowcount != 1:  # type: ignore[attr-defined]
            return False

        increment = (
            update(ProfileModel)
            .where(ProfileModel.id == referrer_id)
            .values(
                referral_count=ProfileModel.referral_count + 1,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        counted = await self._session.execute(increment)
        if counted.rowcount != 1:  # type: ignore[attr-defined]
            raise LookupError(f"Referrer {referrer_id} not found")

        await self._session.flush()
        return True

    async def set_qr_code_url(self, id: UUID, qr_code_url: str) -> Profile | None:
        """Store the QR URL unless one is already present, then return the row."""
        stmt = (
            update(ProfileModel)
            .where(ProfileModel.id == id, ProfileModel.qr_code_url.is_(None))
            .values(qr_code_url=qr_code_url, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)
        await self._session.flush()
        self._session.expire_all()
        return await self.get(id)

    async def list_referrals(self, referrer_id: UUID) -> list[Profile]:
        """Profiles referred by ``referrer_id``, newest first."""
        stmt = (
            select(ProfileModel)
            .where(ProfileModel.referred_by == referrer_id)
            .order_by(ProfileModel.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def list_by_referral_count(self) -> list[Profile]:
        """All profiles ordered by referral count, highest first."""
        stmt = select(ProfileModel).order_by(
            ProfileModel.referral_count.desc(),
            ProfileModel.created_at.asc(),
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    def _to_entity(self, model: ProfileModel) -> Profile:
        """Convert ORM model to domain entity."""
        return Profile(
            id=model.id,
            email=model.email,
            name=model.name,
            phone=model.phone,
            referral_code=model.referral_code,
            referred_by=model.referred_by,
            referral_count=model.referral_count,
            qr_code_url=model.qr_code_url,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Profile) -> ProfileModel:
        """Convert domain entity to ORM model."""
        return ProfileModel(
            id=entity.id,
            email=entity.email,
            name=entity.name,
            phone=entity.phone,
            referral_code=entity.referral_code,
            referred_by=entity.referred_by,
            referral_count=entity.referral_count,
            qr_code_url=entity.qr_code_url,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
