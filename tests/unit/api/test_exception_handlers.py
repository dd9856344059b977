"""Unit tests for exception handlers."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from api.exception_handlers import setup_exception_handlers
from core.exceptions import ProfileNotFoundError, ProfileProvisioningError


def _create_test_app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


class TestExceptionHandlers:
    @pytest.mark.asyncio
    async def test_app_exception_returns_error_code_and_message(self) -> None:
        app = _create_test_app()

        @app.get("/raise-app")
        async def _() -> None:
            raise ProfileNotFoundError("some-id")

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            response = await c.get("/raise-app")

        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "PROFILE_NOT_FOUND"
        assert "some-id" in body["message"]
        assert body["details"]["profile_id"] == "some-id"

    @pytest.mark.asyncio
    async def test_provisioning_error_names_failed_steps(self) -> None:
        app = _create_test_app()

        @app.get("/raise-provisioning")
        async def _() -> None:
            raise ProfileProvisioningError(
                "user-1", {"poll": "not created", "create_profile": "timeout"}
            )

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            response = await c.get("/raise-provisioning")

        assert response.status_code == 500
        body = response.json()
        assert body["error_code"] == "PROFILE_PROVISIONING_FAILED"
        assert "poll, create_profile" in body["message"]
        assert body["details"]["failed_steps"]["create_profile"] == "timeout"

    @pytest.mark.asyncio
    async def test_http_exception_returns_standard_format(self) -> None:
        from starlette.exceptions import HTTPException

        app = _create_test_app()

        @app.get("/raise-http")
        async def _() -> None:
            raise HTTPException(status_code=403, detail="Forbidden")

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            response = await c.get("/raise-http")

        assert response.status_code == 403
        body = response.json()
        assert body["error_code"] == "HTTP_ERROR"
        assert body["message"] == "Forbidden"

    @pytest.mark.asyncio
    async def test_validation_error_returns_field_details(self) -> None:
        from pydantic import BaseModel, Field

        app = _create_test_app()

        class Body(BaseModel):
            name: str = Field(..., min_length=1)

        @app.post("/validate")
        async def _(body: Body) -> dict[str, bool]:
            return {"ok": True}

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            response = await c.post("/validate", json={"name": ""})

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "body.name"

    @pytest.mark.asyncio
    async def test_unhandled_exception_returns_500(self) -> None:
        import json
        from unittest.mock import MagicMock

        app = _create_test_app()

        mock_request = MagicMock()
        mock_request.state.request_id = "test-req-id"

        handler = app.exception_handlers.get(Exception)
        assert handler is not None, "Global exception handler not registered"

        response = await handler(mock_request, RuntimeError("Something went wrong"))  # type: ignore[misc]

        assert response.status_code == 500
        body = json.loads(response.body)
        assert body["error_code"] == "INTERNAL_ERROR"
        assert body["details"]["request_id"] == "test-req-id"

    @pytest.mark.asyncio
    async def test_database_error_returns_503(self) -> None:
        from sqlalchemy.exc import OperationalError

        app = _create_test_app()

        @app.get("/raise-db")
        async def _() -> None:
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            response = await c.get("/raise-db")

        assert response.status_code == 503
        body = response.json()
        assert body["error_code"] == "DATABASE_ERROR"
        assert "connection refused" not in body["message"]


class TestRateLimitHandler:
    @pytest.mark.asyncio
    async def test_rate_limited_response(self) -> None:
        import json

        from starlette.requests import Request

        from core.rate_limit import rate_limit_exceeded_handler

        request = Request(
            {
                "type": "http",
                "method": "POST",
                "path": "/api/v1/auth/register",
                "headers": [(b"x-forwarded-for", b"203.0.113.9")],
                "client": ("10.0.0.1", 1234),
                "query_string": b"",
            }
        )

        response = await rate_limit_exceeded_handler(request, Exception("5 per 1 minute"))

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        body = json.loads(response.body)
        assert body["error_code"] == "RATE_LIMIT_EXCEEDED"
        assert body["details"]["limit"] == "5 per 1 minute"
