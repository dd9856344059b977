"""Sign-in, sign-out and session state."""

import structlog

from domain.entities.session import IdentityUser, SessionState, SignInResult
from infrastructure.auth.provider import IIdentityProvider

logger = structlog.get_logger()


class AuthService:
    """Thin layer over the identity provider.

    Session tokens are always passed in explicitly; nothing here keeps a
    current session.
    """

    def __init__(self, identity_provider: IIdentityProvider) -> None:
        self._identity = identity_provider

    async def sign_in(self, email: str, password: str) -> SignInResult:
        result = await self._identity.sign_in(email.strip(), password)
        logger.info("sign_in_succeeded", user_id=str(result.user.id))
        return result

    async def sign_out(self, access_token: str) -> None:
        await self._identity.sign_out(access_token)
        logger.info("sign_out_succeeded")

    async def session_state(
        self, access_token: str | None
    ) -> tuple[SessionState, IdentityUser | None]:
        """Classify a token as signed-out, pending confirmation or signed-in."""
        if not access_token:
            return SessionState.SIGNED_OUT, None

        user = await self._identity.get_user(access_token)
        if user is None:
            return SessionState.SIGNED_OUT, None
        if not user.is_confirmed:
            return SessionState.PENDING_CONFIRMATION, user
        return SessionState.SIGNED_IN, user
