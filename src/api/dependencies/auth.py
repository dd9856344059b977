"""Authentication dependencies for FastAPI."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import settings
from core.exceptions import AuthenticationError, AuthorizationError, ErrorCode
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)

# Singleton auth provider
_auth_provider: JWTAuthProvider | None = None


def get_auth_provider() -> JWTAuthProvider:
    """Get or create the auth provider singleton."""
    global _auth_provider
    if _auth_provider is None:
        _auth_provider = JWTAuthProvider()
    return _auth_provider


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(security),
    ],
    auth_provider: JWTAuthProvider = Depends(get_auth_provider),
) -> TokenUser:
    """
    Dependency to get the current authenticated user.

    Raises:
        AuthenticationError: If no token provided or token is invalid
    """
    if not credentials:
        raise AuthenticationError(
            message="Authorization header required",
            error_code=ErrorCode.UNAUTHORIZED,
        )

    user = await auth_provider.validate_token(credentials.credentials)

    if not user:
        raise AuthenticationError(
            message="Invalid or expired token",
            error_code=ErrorCode.INVALID_TOKEN,
        )

    return user


async def get_optional_token(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(security),
    ],
) -> str | None:
    """Raw bearer token if one was sent."""
    return credentials.credentials if credentials else None


async def get_required_token(
    token: Annotated[str | None, Depends(get_optional_token)],
) -> str:
    """Raw bearer token, required."""
    if not token:
        raise AuthenticationError(message="Authorization header required")
    return token


async def get_admin_user(
    user: Annotated[TokenUser, Depends(get_current_user)],
) -> TokenUser:
    """
    Dependency that only lets configured admin emails through.

    Raises:
        AuthorizationError: If the user is not an admin
    """
    if user.email.lower() not in settings.admin_emails_list:
        raise AuthorizationError("Admin access required")
    return user


# Type aliases for convenience in route handlers
CurrentUser = Annotated[TokenUser, Depends(get_current_user)]
AdminUser = Annotated[TokenUser, Depends(get_admin_user)]
BearerToken = Annotated[str, Depends(get_required_token)]
OptionalBearerToken = Annotated[str | None, Depends(get_optional_token)]
