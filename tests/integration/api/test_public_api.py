"""Integration tests for referral checks, public QR codes, admin and health."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser
from tests.conftest import add_profile


class TestReferralValidation:
    @pytest.mark.asyncio
    async def test_known_code(
        self, api_client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
    ):
        await add_profile(session_factory, referral_code="ab12cd34")

        response = await api_client.get("/api/v1/referrals/validate", params={"code": " AB12CD34"})

        assert response.status_code == 200
        assert response.json() == {"code": "ab12cd34", "status": "valid", "valid": True}

    @pytest.mark.asyncio
    async def test_unknown_code(self, api_client: AsyncClient):
        response = await api_client.get("/api/v1/referrals/validate", params={"code": "nobody23"})

        assert response.status_code == 200
        assert response.json()["status"] == "not_found"
        assert response.json()["valid"] is False

    @pytest.mark.asyncio
    async def test_lookup_failure_is_503_not_invalid(self, app, api_client: AsyncClient):
        from api.v1.dependencies import get_referral_service
        from domain.services.referral_service import ReferralService

        def broken_uow_factory():
            raise RuntimeError("connection pool exhausted")

        app.dependency_overrides[get_referral_service] = lambda: ReferralService(
            broken_uow_factory
        )

        response = await api_client.get("/api/v1/referrals/validate", params={"code": "ab12cd34"})

        assert response.status_code == 503
        assert response.json()["error_code"] == "REFERRAL_LOOKUP_UNAVAILABLE"


class TestRegistrationQr:
    @pytest.mark.asyncio
    async def test_registration_qr(self, api_client: AsyncClient):
        response = await api_client.get("/api/v1/qr/registration")

        assert response.status_code == 200
        body = response.json()
        assert body["target_url"] == "https://community.test/register"
        assert body["qr_code_url"].startswith("data:image/png;base64,")


class TestAdminOverview:
    @pytest.mark.asyncio
    async def test_overview_for_admin(
        self,
        api_client: AsyncClient,
        session_factory: async_sessionmaker[AsyncSession],
        auth_provider: JWTAuthProvider,
        admin_user: TokenUser,
    ):
        await add_profile(session_factory, email="low@example.com", referral_count=1)
        await add_profile(session_factory, email="top@example.com", referral_count=6)
        await add_profile(session_factory, email="mid@example.com", referral_count=2)
        token = auth_provider.create_token(admin_user)

        response = await api_client.get(
            "/api/v1/admin/overview", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["stats"] == {
            "total_users": 3,
            "total_referrals": 9,
            "average_referrals": 3.0,
            "unlocked_cards": 1,
        }
        assert [p["email"] for p in body["data"]] == [
            "top@example.com",
            "mid@example.com",
            "low@example.com",
        ]

    @pytest.mark.asyncio
    async def test_regular_member_is_forbidden(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/api/v1/admin/overview")

        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert "timestamp" in data
        assert "environment" in data

    @pytest.mark.asyncio
    async def test_health_sets_tracking_headers(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert "x-request-id" in response.headers
        assert response.headers["x-frame-options"] == "DENY"

    @pytest.mark.asyncio
    async def test_detailed_health_checks_database(
        self, api_client: AsyncClient, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        await add_profile(session_factory)

        response = await api_client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["profiles"] == 1
