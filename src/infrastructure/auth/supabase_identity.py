"""Supabase Auth (GoTrue) identity provider over its REST API."""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

import httpx
import structlog

from core.config import settings
from core.exceptions import (
    EmailNotConfirmedError,
    IdentityCreationError,
    IdentityProviderError,
    IdentityRateLimitedError,
    InvalidCredentialsError,
)
from domain.entities.session import AuthSession, IdentityUser, SignInResult, SignUpResult

logger = structlog.get_logger()

_RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "over_email_send_rate_limit")


def _error_payload(response: httpx.Response) -> tuple[str, str]:
    """Extract (error_code, message) from a GoTrue error response."""
    try:
        body = response.json()
    except ValueError:
        return "", response.text or f"HTTP {response.status_code}"

    if not isinstance(body, dict):
        return "", str(body)

    code = str(body.get("error_code") or body.get("error") or "")
    message = (
        body.get("msg")
        or body.get("message")
        or body.get("error_description")
        or body.get("error")
        or f"HTTP {response.status_code}"
    )
    return code, str(message)


def _is_rate_limited(status_code: int, code: str, message: str) -> bool:
    if status_code == 429:
        return True
    haystack = f"{code} {message}".lower()
    return any(marker in haystack for marker in _RATE_LIMIT_MARKERS)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_user(data: dict[str, Any] | None) -> Optional[IdentityUser]:
    if not data or not data.get("id"):
        return None
    return IdentityUser(
        id=UUID(str(data["id"])),
        email=data.get("email") or "",
        email_confirmed_at=_parse_datetime(
            data.get("email_confirmed_at") or data.get("confirmed_at")
        ),
        metadata=data.get("user_metadata") or {},
    )


def _parse_session(data: dict[str, Any]) -> Optional[AuthSession]:
    access_token = data.get("access_token")
    if not access_token:
        return None
    expires_at = data.get("expires_at")
    return AuthSession(
        access_token=access_token,
        refresh_token=data.get("refresh_token"),
        token_type=data.get("token_type") or "bearer",
        expires_in=data.get("expires_in"),
        expires_at=(
            datetime.fromtimestamp(int(expires_at), tz=timezone.utc) if expires_at else None
        ),
    )


class SupabaseIdentityProvider:
    """Identity provider backed by Supabase Auth.

    A session is only returned from sign-up when the project has email
    confirmation disabled; otherwise the user object comes back alone.
    """

    def __init__(
        self,
        auth_url: str = settings.supabase_auth_url,
        api_key: str = settings.supabase_anon_key,
        timeout: float = settings.identity_timeout_seconds,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth_url = auth_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._auth_url,
            headers={"apikey": self._api_key, "Content-Type": "application/json"},
            timeout=self._timeout,
            transport=self._transport,
        )

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
        redirect_to: str | None = None,
    ) -> SignUpResult:
        params = {"redirect_to": redirect_to} if redirect_to else None
        payload = {"email": email, "password": password, "data": metadata or {}}

        try:
            async with self._client() as client:
                response = await client.post("/signup", json=payload, params=params)
        except httpx.HTTPError as e:
            logger.error("identity_signup_unreachable", error=str(e))
            raise IdentityCreationError(
                "Could not reach the sign-up service. Please try again", status_code=502
            ) from e

        if response.is_error:
            code, message = _error_payload(response)
            logger.warning(
                "identity_signup_rejected",
                status_code=response.status_code,
                error_code=code,
                message=message,
            )
            if _is_rate_limited(response.status_code, code, message):
                raise IdentityRateLimitedError()
            status_code = response.status_code if response.status_code < 500 else 502
            raise IdentityCreationError(message, status_code=status_code)

        data = response.json()
        # With autoconfirm on, GoTrue wraps the user in a session payload
        if "access_token" in data:
            return SignUpResult(user=_parse_user(data.get("user")), session=_parse_session(data))
        return SignUpResult(user=_parse_user(data), session=None)

    async def sign_in(self, email: str, password: str) -> SignInResult:
        try:
            async with self._client() as client:
                response = await client.post(
                    "/token",
                    params={"grant_type": "password"},
                    json={"email": email, "password": password},
                )
        except httpx.HTTPError as e:
            logger.error("identity_signin_unreachable", error=str(e))
            raise IdentityProviderError("Could not reach the sign-in service") from e

        if response.is_error:
            code, message = _error_payload(response)
            lowered = f"{code} {message}".lower()
            if _is_rate_limited(response.status_code, code, message):
                raise IdentityRateLimitedError(
                    "Too many login attempts. Please try again later"
                )
            if "not confirmed" in lowered or "email_not_confirmed" in lowered:
                raise EmailNotConfirmedError()
            if "invalid" in lowered and ("credentials" in lowered or "grant" in lowered):
                raise InvalidCredentialsError()
            status_code = response.status_code if response.status_code < 500 else 502
            raise IdentityProviderError(message, status_code=status_code)

        data = response.json()
        user = _parse_user(data.get("user"))
        session = _parse_session(data)
        if user is None or session is None:
            logger.error("identity_signin_without_session")
            raise IdentityProviderError("Session not established. Please try again")
        return SignInResult(user=user, session=session)

    async def sign_out(self, access_token: str) -> None:
        try:
            async with self._client() as client:
                response = await client.post(
                    "/logout", headers={"Authorization": f"Bearer {access_token}"}
                )
        except httpx.HTTPError as e:
            raise IdentityProviderError("Could not reach the sign-out service") from e

        # An already-revoked or expired token is as good as signed out
        if response.is_error and response.status_code not in (401, 403, 404):
            _, message = _error_payload(response)
            raise IdentityProviderError(message)

    async def get_user(self, access_token: str) -> Optional[IdentityUser]:
        try:
            async with self._client() as client:
                response = await client.get(
                    "/user", headers={"Authorization": f"Bearer {access_token}"}
                )
        except httpx.HTTPError as e:
            raise IdentityProviderError("Could not reach the identity service") from e

        if response.status_code in (401, 403):
            return None
        if response.is_error:
            _, message = _error_payload(response)
            raise IdentityProviderError(message)
        return _parse_user(response.json())
