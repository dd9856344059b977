"""Authentication and identity provider protocols."""

from dataclasses import dataclass
from typing import Any, Optional, Protocol
from uuid import UUID

from domain.entities.session import IdentityUser, SignInResult, SignUpResult


@dataclass
class TokenUser:
    """Represents a user extracted from an auth token."""

    id: UUID
    email: str
    display_name: Optional[str] = None
    role: Optional[str] = None


class IAuthProvider(Protocol):
    """Protocol for authentication providers."""

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Validate an authentication token.

        Args:
            token: The bearer token to validate

        Returns:
            TokenUser if valid, None if invalid
        """
        ...

    def create_token(self, user: TokenUser) -> str:
        """
        Create an authentication token for a user.

        Args:
            user: The user to create a token for

        Returns:
            The generated token string
        """
        ...


class IIdentityProvider(Protocol):
    """Protocol for the external service that owns user accounts."""

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any] | None = None,
        redirect_to: str | None = None,
    ) -> SignUpResult:
        """
        Create an account.

        Returns:
            SignUpResult whose session is None while email confirmation is pending

        Raises:
            IdentityRateLimitedError: Provider is throttling sign-ups
            IdentityCreationError: Provider rejected the account
        """
        ...

    async def sign_in(self, email: str, password: str) -> SignInResult:
        """
        Exchange email/password for a session.

        Raises:
            InvalidCredentialsError, EmailNotConfirmedError,
            IdentityRateLimitedError, IdentityProviderError
        """
        ...

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind ``access_token``."""
        ...

    async def get_user(self, access_token: str) -> Optional[IdentityUser]:
        """Resolve the user for a session token, None if the token is not valid."""
        ...
