"""Unit tests for JWTAuthProvider.

Covers:
- HS256 tokens minted for tests and local development
- _get_jwks_keys() fetching, caching, refresh and error handling
- the ES256 path with a mocked JWKS endpoint
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import httpx
import pytest
from jose import jwt as jose_jwt

from infrastructure.auth import jwt_provider as jwt_provider_module
from infrastructure.auth.jwt_provider import JWTAuthProvider, _get_jwks_keys
from infrastructure.auth.provider import TokenUser

JWKS_URL = "https://example.supabase.co/auth/v1/.well-known/jwks.json"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_hs256_token(payload: dict, secret: str = "test-secret") -> str:
    """Create an HS256-signed JWT with a given payload."""
    return jose_jwt.encode(payload, secret, algorithm="HS256")


def _mock_jwks_client(keys: list[dict]) -> AsyncMock:
    mock_response = MagicMock()
    mock_response.json.return_value = {"keys": keys}
    mock_response.raise_for_status = MagicMock()

    client = AsyncMock()
    client.get.return_value = mock_response
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_jwks_cache():
    """Reset the module-level JWKS cache before and after every test."""
    jwt_provider_module._jwks_cache = None
    yield
    jwt_provider_module._jwks_cache = None


@pytest.fixture
def hs256_provider() -> JWTAuthProvider:
    """JWTAuthProvider configured for HS256 (local/test tokens)."""
    return JWTAuthProvider(secret_key="test-secret", algorithm="HS256", expire_minutes=30)


# ---------------------------------------------------------------------------
# Tests: HS256 round trip and claims
# ---------------------------------------------------------------------------


class TestHs256Tokens:
    async def test_created_token_validates(self, hs256_provider: JWTAuthProvider):
        user = TokenUser(id=uuid4(), email="member@example.com", display_name="Member")

        result = await hs256_provider.validate_token(hs256_provider.create_token(user))

        assert result is not None
        assert result.id == user.id
        assert result.display_name == "Member"
        assert result.role == "authenticated"

    async def test_display_name_from_supabase_metadata(self, hs256_provider: JWTAuthProvider):
        token = _make_hs256_token(
            {
                "sub": str(uuid4()),
                "email": "member@example.com",
                "user_metadata": {"name": "Jane Doe", "phone": "+1 555 0100"},
                "exp": 9999999999,
            }
        )

        result = await hs256_provider.validate_token(token)

        assert result is not None
        assert result.display_name == "Jane Doe"

    async def test_wrong_secret_is_rejected(self, hs256_provider: JWTAuthProvider):
        token = _make_hs256_token(
            {"sub": str(uuid4()), "email": "m@example.com", "exp": 9999999999}, secret="other"
        )

        assert await hs256_provider.validate_token(token) is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "user@example.com", "exp": 9999999999},
            {"sub": str(uuid4()), "exp": 9999999999},
            {"sub": "", "email": "user@example.com", "exp": 9999999999},
            {"sub": "not-a-uuid", "email": "user@example.com", "exp": 9999999999},
        ],
    )
    async def test_missing_or_bad_claims_return_none(
        self, hs256_provider: JWTAuthProvider, payload: dict
    ):
        assert await hs256_provider.validate_token(_make_hs256_token(payload)) is None


# ---------------------------------------------------------------------------
# Tests: _get_jwks_keys
# ---------------------------------------------------------------------------


class TestGetJwksKeys:
    async def test_should_return_empty_dict_when_no_supabase_url(self):
        with patch.object(jwt_provider_module, "settings") as mock_settings:
            mock_settings.supabase_jwks_url = ""

            assert await _get_jwks_keys() == {}

    async def test_should_fetch_and_cache_jwks_keys(self):
        client = _mock_jwks_client(
            [
                {"kid": "key-1", "kty": "EC", "crv": "P-256", "x": "aa", "y": "bb"},
                {"kid": "key-2", "kty": "EC", "crv": "P-256", "x": "cc", "y": "dd"},
            ]
        )

        with (
            patch.object(jwt_provider_module, "settings") as mock_settings,
            patch.object(jwt_provider_module.httpx, "AsyncClient", return_value=client),
        ):
            mock_settings.supabase_jwks_url = JWKS_URL

            result = await _get_jwks_keys()
            assert set(result) == {"key-1", "key-2"}

            client.get.reset_mock()
            assert await _get_jwks_keys() == result
            client.get.assert_not_called()

            await _get_jwks_keys(refresh=True)
            client.get.assert_called_once()

    async def test_should_return_empty_dict_on_http_error(self):
        client = _mock_jwks_client([])
        client.get.side_effect = httpx.ConnectError("Connection refused")

        with (
            patch.object(jwt_provider_module, "settings") as mock_settings,
            patch.object(jwt_provider_module.httpx, "AsyncClient", return_value=client),
        ):
            mock_settings.supabase_jwks_url = JWKS_URL

            assert await _get_jwks_keys() == {}

    async def test_should_skip_keys_without_kid(self):
        client = _mock_jwks_client(
            [
                {"kty": "EC", "crv": "P-256", "x": "aa", "y": "bb"},
                {"kid": "good-key", "kty": "EC", "crv": "P-256", "x": "cc", "y": "dd"},
            ]
        )

        with (
            patch.object(jwt_provider_module, "settings") as mock_settings,
            patch.object(jwt_provider_module.httpx, "AsyncClient", return_value=client),
        ):
            mock_settings.supabase_jwks_url = JWKS_URL

            assert list(await _get_jwks_keys()) == ["good-key"]


# ---------------------------------------------------------------------------
# Tests: ES256
# ---------------------------------------------------------------------------


class TestDecodeEs256:
    async def test_should_return_none_without_kid(self, hs256_provider: JWTAuthProvider):
        assert await hs256_provider._decode_es256("dummy.token.value", None) is None

    async def test_should_refetch_once_for_unknown_kid(self, hs256_provider: JWTAuthProvider):
        with patch.object(
            jwt_provider_module, "_get_jwks_keys", new_callable=AsyncMock
        ) as mock_get_jwks:
            mock_get_jwks.return_value = {"other-kid": {"kty": "EC"}}

            result = await hs256_provider._decode_es256("dummy.token.value", "missing-kid")

            assert result is None
            assert mock_get_jwks.call_count == 2
            mock_get_jwks.assert_called_with(refresh=True)

    async def test_should_decode_with_matching_key(self, hs256_provider: JWTAuthProvider):
        fake_key_data = {"kid": "test-kid", "kty": "EC", "crv": "P-256"}
        fake_payload = {"sub": str(uuid4()), "email": "test@example.com"}

        with (
            patch.object(
                jwt_provider_module, "_get_jwks_keys", new_callable=AsyncMock
            ) as mock_get_jwks,
            patch.object(jwt_provider_module, "ECKey") as mock_eckey_cls,
            patch.object(jwt_provider_module, "jwt") as mock_jwt,
        ):
            mock_get_jwks.return_value = {"test-kid": fake_key_data}
            mock_jwt.decode.return_value = fake_payload

            result = await hs256_provider._decode_es256("es256.token.value", "test-kid")

            assert result == fake_payload
            mock_eckey_cls.assert_called_once_with(fake_key_data, algorithm="ES256")
            mock_jwt.decode.assert_called_once_with(
                "es256.token.value",
                mock_eckey_cls.return_value,
                algorithms=["ES256"],
                options={"verify_aud": False},
            )

    async def test_validate_token_takes_es256_path(self, hs256_provider: JWTAuthProvider):
        user_id = str(uuid4())
        fake_payload = {
            "sub": user_id,
            "email": "es256user@example.com",
            "user_metadata": {"full_name": "ES256 User"},
            "role": "authenticated",
        }

        with patch.object(jwt_provider_module, "jwt") as mock_jwt:
            mock_jwt.get_unverified_header.return_value = {"alg": "ES256", "kid": "k1"}

            with patch.object(
                hs256_provider, "_decode_es256", new_callable=AsyncMock
            ) as mock_es256:
                mock_es256.return_value = fake_payload

                result = await hs256_provider.validate_token("es256.token.here")

                mock_es256.assert_called_once_with("es256.token.here", "k1")
                assert result is not None
                assert str(result.id) == user_id
                assert result.display_name == "ES256 User"

    async def test_validate_token_returns_none_when_es256_fails(
        self, hs256_provider: JWTAuthProvider
    ):
        with patch.object(jwt_provider_module, "jwt") as mock_jwt:
            mock_jwt.get_unverified_header.return_value = {"alg": "ES256", "kid": "k1"}

            with patch.object(
                hs256_provider, "_decode_es256", new_callable=AsyncMock
            ) as mock_es256:
                mock_es256.return_value = None

                assert await hs256_provider.validate_token("es256.token.here") is None
