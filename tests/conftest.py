"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Callable
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

# Test settings must be in place before the app modules read them
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PROFILE_POLL_DELAYS"] = "[0, 0]"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["PUBLIC_BASE_URL"] = "https://community.test"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.exceptions import (
    EmailNotConfirmedError,
    IdentityCreationError,
    InvalidCredentialsError,
)
from domain.entities.session import AuthSession, IdentityUser, SignInResult, SignUpResult
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser
from infrastructure.database.models import Base, ProfileModel
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork

# Fixed test user ID for consistency
TEST_USER_ID = uuid4()


class FakeIdentityProvider:
    """In-memory identity provider.

    With ``run_signup_trigger`` it creates the profile row during sign-up the
    way the database trigger on auth.users does.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        run_signup_trigger: bool = True,
        confirm_email: bool = False,
    ) -> None:
        self._session_factory = session_factory
        self.run_signup_trigger = run_signup_trigger
        self.confirm_email = confirm_email
        self.users: dict[str, IdentityUser] = {}
        self.passwords: dict[str, str] = {}
        self.tokens: dict[str, IdentityUser] = {}

    def _issue(self, user: IdentityUser) -> AuthSession:
        token = f"token-{uuid4().hex}"
        self.tokens[token] = user
        return AuthSession(access_token=token, refresh_token=f"refresh-{user.id.hex}")

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
        redirect_to: str | None = None,
    ) -> SignUpResult:
        if email in self.users:
            raise IdentityCreationError("User already registered")

        metadata = metadata or {}
        user = IdentityUser(
            id=uuid4(),
            email=email,
            email_confirmed_at=datetime.utcnow() if self.confirm_email else None,
            metadata=metadata,
        )
        self.users[email] = user
        self.passwords[email] = password

        if self.run_signup_trigger:
            async with SQLAlchemyUnitOfWork(self._session_factory) as uow:
                await uow.profiles.create_profile(
                    user.id, email, metadata.get("name"), metadata.get("phone")
                )
                await uow.commit()

        session = self._issue(user) if self.confirm_email else None
        return SignUpResult(user=user, session=session)

    async def sign_in(self, email: str, password: str) -> SignInResult:
        user = self.users.get(email)
        if user is None or self.passwords.get(email) != password:
            raise InvalidCredentialsError()
        if not user.is_confirmed:
            raise EmailNotConfirmedError()
        return SignInResult(user=user, session=self._issue(user))

    async def sign_out(self, access_token: str) -> None:
        self.tokens.pop(access_token, None)

    async def get_user(self, access_token: str) -> IdentityUser | None:
        return self.tokens.get(access_token)

    def confirm(self, email: str) -> None:
        self.users[email].email_confirmed_at = datetime.utcnow()


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh SQLite database for each test.

    A single pooled connection makes overlapping units of work run one after
    another, so tests here cannot observe interleaved transactions.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=1,
        max_overflow=0,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
def uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SQLAlchemyUnitOfWork]:
    """Unit of Work factory bound to the test database."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    return factory


@pytest.fixture
def identity_provider(
    session_factory: async_sessionmaker[AsyncSession],
) -> FakeIdentityProvider:
    return FakeIdentityProvider(session_factory)


@pytest.fixture
def test_user() -> TokenUser:
    """Create a test user with fixed ID."""
    return TokenUser(
        id=TEST_USER_ID,
        email="test@example.com",
        display_name="Test User",
    )


@pytest.fixture
def admin_user() -> TokenUser:
    return TokenUser(id=uuid4(), email="admin@example.com", display_name="Admin")


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """Create auth provider for testing."""
    return JWTAuthProvider(
        secret_key="test-secret-key",
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
def auth_token(auth_provider: JWTAuthProvider, test_user: TokenUser) -> str:
    """Create auth token for test user."""
    return str(auth_provider.create_token(test_user))


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers."""
    return {"Authorization": f"Bearer {auth_token}"}


async def add_profile(
    session_factory: async_sessionmaker[AsyncSession],
    id: UUID | None = None,
    email: str = "member@example.com",
    name: str | None = "Member",
    referral_code: str | None = None,
    referred_by: UUID | None = None,
    referral_count: int = 0,
    created_at: datetime | None = None,
) -> ProfileModel:
    """Insert a profile row directly."""
    model = ProfileModel(
        id=id or uuid4(),
        email=email,
        name=name,
        phone="+1 555 0100",
        referral_code=referral_code or uuid4().hex[:8],
        referred_by=referred_by,
        referral_count=referral_count,
        created_at=created_at or datetime.utcnow(),
    )
    async with session_factory() as session:
        session.add(model)
        await session.commit()
    return model


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client (no auth, no database)."""
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    uow_factory: Callable[[], SQLAlchemyUnitOfWork],
    identity_provider: FakeIdentityProvider,
    auth_provider: JWTAuthProvider,
) -> Any:
    """
    Create an app wired to the test database and the fake identity provider.

    Overrides:
    - Services use a UoW factory bound to the test database
    - The identity provider is the in-memory fake
    - Tokens are validated with the test secret
    """
    from api.dependencies.auth import get_auth_provider
    from api.v1.dependencies import (
        get_auth_service,
        get_profile_service,
        get_qr_service,
        get_referral_service,
        get_registration_service,
    )
    from core.config import settings
    from domain.services.auth_service import AuthService
    from domain.services.profile_service import ProfileService
    from domain.services.qr_service import QrCodeService
    from domain.services.referral_service import ReferralService
    from domain.services.registration_service import RegistrationService
    from infrastructure.database.session import get_async_session
    from infrastructure.qr.encoder import QrCodeEncoder
    from main import create_app

    app = create_app()

    referral_service = ReferralService(uow_factory)
    registration_service = RegistrationService(
        uow_factory,
        identity_provider=identity_provider,
        referral_service=referral_service,
        poll_delays=(0, 0),
    )
    qr_service = QrCodeService(
        uow_factory, encoder=QrCodeEncoder(), base_url=settings.public_base_url
    )
    profile_service = ProfileService(uow_factory, base_url=settings.public_base_url)
    auth_service = AuthService(identity_provider)

    async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    app.dependency_overrides[get_referral_service] = lambda: referral_service
    app.dependency_overrides[get_registration_service] = lambda: registration_service
    app.dependency_overrides[get_qr_service] = lambda: qr_service
    app.dependency_overrides[get_profile_service] = lambda: profile_service
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_async_session] = override_get_async_session

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def api_client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Test client against the overridden app, no credentials."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def authenticated_client(
    app: Any,
    session_factory: async_sessionmaker[AsyncSession],
    test_user: TokenUser,
    auth_headers: dict[str, str],
) -> AsyncGenerator[AsyncClient, None]:
    """Test client sending the test user's token; the user has a profile."""
    await add_profile(
        session_factory,
        id=test_user.id,
        email=test_user.email,
        name=test_user.display_name,
        referral_code="tstusr23",
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url="http://test", headers=auth_headers
    ) as c:
        yield c
