"""JWT validation for Supabase-issued access tokens.

Supabase signs access tokens with ES256 (keys published via JWKS); tokens
minted locally for tests use HS256 with the shared secret.

Payload fields used here:
    {
        "sub": "user-uuid",
        "email": "user@example.com",
        "role": "authenticated",
        "user_metadata": { "name": "Jane Doe", "phone": "+1 555 0100" },
        "exp": 1234567890
    }
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

import httpx
import structlog
from jose import JWTError, jwt
from jose.backends import ECKey

from core.config import settings
from infrastructure.auth.provider import TokenUser

logger = structlog.get_logger()

# kid -> JWK, fetched lazily and refreshed on unknown kid
_jwks_cache: dict[str, Any] | None = None


async def _get_jwks_keys(refresh: bool = False) -> dict[str, Any]:
    """Fetch and cache JWKS keys from Supabase."""
    global _jwks_cache
    if _jwks_cache is not None and not refresh:
        return _jwks_cache

    jwks_url = settings.supabase_jwks_url
    if not jwks_url:
        return {}

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(jwks_url, timeout=10.0)
            response.raise_for_status()
            keys = response.json().get("keys", [])
    except (httpx.HTTPError, ValueError):
        logger.exception("jwks_fetch_failed", url=jwks_url)
        return {}

    _jwks_cache = {key["kid"]: key for key in keys if key.get("kid")}
    logger.info("jwks_fetched", key_count=len(_jwks_cache))
    return _jwks_cache


class JWTAuthProvider:
    """Validates bearer tokens and, for tests, mints HS256 ones."""

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        expire_minutes: int = settings.jwt_expire_minutes,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Validate a JWT and extract the user it was issued to.

        Args:
            token: The JWT to validate

        Returns:
            TokenUser if valid, None if invalid or expired
        """
        try:
            header = jwt.get_unverified_header(token)
            if header.get("alg") == "ES256":
                payload = await self._decode_es256(token, header.get("kid"))
            else:
                payload = jwt.decode(
                    token,
                    self._secret_key,
                    algorithms=[self._algorithm],
                    options={"verify_aud": False},
                )
        except JWTError:
            return None

        if not payload:
            return None

        user_id = payload.get("sub")
        email = payload.get("email")
        if not user_id or not email:
            return None

        metadata = payload.get("user_metadata") or {}
        display_name = metadata.get("name") or metadata.get("full_name") or payload.get("name")

        try:
            return TokenUser(
                id=UUID(user_id),
                email=email,
                display_name=display_name,
                role=payload.get("role"),
            )
        except ValueError:
            return None

    async def _decode_es256(self, token: str, kid: str | None) -> Optional[dict]:
        if not kid:
            return None

        key_data = (await _get_jwks_keys()).get(kid)
        if not key_data:
            # Unknown kid usually means the signing key was rotated
            key_data = (await _get_jwks_keys(refresh=True)).get(kid)
            if not key_data:
                logger.warning("jwks_key_not_found", kid=kid)
                return None

        return jwt.decode(
            token,
            ECKey(key_data, algorithm="ES256"),
            algorithms=["ES256"],
            options={"verify_aud": False},
        )

    def create_token(self, user: TokenUser) -> str:
        """Mint an HS256 token for ``user`` (tests and local development)."""
        expire = datetime.now(timezone.utc) + timedelta(minutes=self._expire_minutes)
        payload: dict = {
            "sub": str(user.id),
            "email": user.email,
            "aud": "authenticated",
            "role": user.role or "authenticated",
            "exp": expire,
            "user_metadata": {"name": user.display_name},
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
