"""Registration and session API routes."""

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import BearerToken, OptionalBearerToken
from api.v1.dependencies import get_auth_service, get_qr_service, get_registration_service
from api.v1.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RegistrationResponse,
    SessionResponse,
    SessionStateResponse,
    SessionTokens,
    WarningResponse,
)
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.profile import ProfileResponse
from core.rate_limit import limiter
from domain.services.auth_service import AuthService
from domain.services.qr_service import QrCodeService
from domain.services.registration_service import RegistrationService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new member",
    responses={
        201: {"description": "Member registered (check warnings for referral problems)"},
        400: {"model": ErrorResponse, "description": "Account could not be created"},
        429: {"model": ErrorResponse, "description": "Sign-ups are being rate limited"},
        500: {"model": ErrorResponse, "description": "Profile could not be provisioned"},
    },
)
@limiter.limit("5/minute")  # type: ignore[untyped-decorator]
async def register(
    request: Request,
    body: RegisterRequest,
    ref: str | None = Query(None, description="Referral code from the shared link"),
    service: RegistrationService = Depends(get_registration_service),
    qr_service: QrCodeService = Depends(get_qr_service),
) -> RegistrationResponse:
    """Register a member, optionally crediting the member whose code they used.

    The code may come in the body or as the ``ref`` query parameter of the
    shared link. An invalid code does not stop registration.
    """
    referral_code = body.referral_code or (ref.strip() if ref else None)
    result = await service.register(
        name=body.name,
        email=body.email,
        phone=body.phone,
        password=body.password,
        referral_code=referral_code,
    )

    await qr_service.ensure_qr_code(result.profile)

    message = "Registration successful!"
    if result.requires_confirmation:
        message = (
            "Registration successful! Once you confirm your email, you'll be able "
            "to access your referral link and dashboard."
        )

    return RegistrationResponse(
        profile=ProfileResponse.from_entity(result.profile),
        session_state=result.session_state.value,
        session=SessionTokens.from_entity(result.session) if result.session else None,
        referral_status=result.referral.status.value,
        referral_applied=result.referral_applied,
        warnings=[WarningResponse(code=w.code.value, message=w.message) for w in result.warnings],
        message=message,
    )


@router.post(
    "/login",
    response_model=SessionResponse,
    summary="Sign in with email and password",
    responses={
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
        403: {"model": ErrorResponse, "description": "Email not confirmed"},
        429: {"model": ErrorResponse, "description": "Too many login attempts"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def login(
    request: Request,
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> SessionResponse:
    """Exchange email and password for a session."""
    result = await service.sign_in(body.email, body.password)
    return SessionResponse(
        user_id=result.user.id,
        email=result.user.email,
        session=SessionTokens.from_entity(result.session),
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Sign out",
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def logout(
    request: Request,
    token: BearerToken,
    service: AuthService = Depends(get_auth_service),
) -> None:
    """Revoke the caller's session."""
    await service.sign_out(token)
    return None


@router.get(
    "/session",
    response_model=SessionStateResponse,
    summary="Get session state",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_session_state(
    request: Request,
    token: OptionalBearerToken,
    service: AuthService = Depends(get_auth_service),
) -> SessionStateResponse:
    """Report whether the caller is signed out, awaiting confirmation, or signed in."""
    state, user = await service.session_state(token)
    return SessionStateResponse(
        state=state.value,
        user_id=user.id if user else None,
        email=user.email if user else None,
    )
