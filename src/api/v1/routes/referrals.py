"""Referral code API routes."""

from fastapi import APIRouter, Depends, Query, Request

from api.v1.dependencies import get_referral_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.referral import ReferralCodeCheckResponse
from core.exceptions import ReferralLookupUnavailableError
from core.rate_limit import limiter
from domain.entities.registration import ReferralStatus
from domain.services.referral_service import ReferralService

router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.get(
    "/validate",
    response_model=ReferralCodeCheckResponse,
    summary="Check a referral code",
    responses={
        200: {"description": "Whether the code belongs to a member"},
        503: {"model": ErrorResponse, "description": "Lookup temporarily unavailable"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def validate_referral_code(
    request: Request,
    code: str = Query(..., max_length=64),
    service: ReferralService = Depends(get_referral_service),
) -> ReferralCodeCheckResponse:
    """Check a code so the registration form can show it before submitting."""
    result = await service.validate_code(code)
    if result.status == ReferralStatus.UNAVAILABLE:
        raise ReferralLookupUnavailableError()
    return ReferralCodeCheckResponse(
        code=result.code,
        status=result.status.value,
        valid=result.is_valid,
    )
