"""Profile API routes."""

from fastapi import APIRouter, Depends, Request

from api.dependencies.auth import CurrentUser
from api.v1.dependencies import get_profile_service, get_qr_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.profile import (
    DashboardResponse,
    QrCodeResponse,
    ReferralListResponse,
    ReferralResponse,
)
from core.rate_limit import limiter
from domain.services.profile_service import ProfileService
from domain.services.qr_service import QrCodeService

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get(
    "/me",
    response_model=DashboardResponse,
    summary="Get my dashboard",
    responses={
        200: {"description": "Profile, referral link, progress and referrals"},
        404: {"model": ErrorResponse, "description": "Profile not found"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_my_dashboard(
    request: Request,
    user: CurrentUser,
    service: ProfileService = Depends(get_profile_service),
) -> DashboardResponse:
    """Get the current member's dashboard."""
    dashboard = await service.get_dashboard(user.id)
    return DashboardResponse.from_entity(dashboard)


@router.get(
    "/me/referrals",
    response_model=ReferralListResponse,
    summary="List my referrals",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_my_referrals(
    request: Request,
    user: CurrentUser,
    service: ProfileService = Depends(get_profile_service),
) -> ReferralListResponse:
    """Members who joined with the current member's code, newest first."""
    referrals = await service.get_referrals(user.id)
    data = [
        ReferralResponse(id=r.id, name=r.name, email=r.email, created_at=r.created_at)
        for r in referrals
    ]
    return ReferralListResponse(data=data, meta={"total": len(data)})


@router.post(
    "/me/qr-code",
    response_model=QrCodeResponse,
    summary="Get or generate my referral QR code",
    responses={
        200: {"description": "QR code (null if it could not be generated)"},
        404: {"model": ErrorResponse, "description": "Profile not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def ensure_my_qr_code(
    request: Request,
    user: CurrentUser,
    service: ProfileService = Depends(get_profile_service),
    qr_service: QrCodeService = Depends(get_qr_service),
) -> QrCodeResponse:
    """Return the member's referral QR code, generating it on first use."""
    profile = await service.get_profile(user.id)
    qr_code_url = await qr_service.ensure_qr_code(profile)
    return QrCodeResponse(qr_code_url=qr_code_url, target_url=qr_service.referral_link(profile))
