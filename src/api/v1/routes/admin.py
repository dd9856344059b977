"""Admin API routes."""

from fastapi import APIRouter, Depends, Request

from api.dependencies.auth import AdminUser
from api.v1.dependencies import get_profile_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.profile import AdminOverviewResponse
from core.rate_limit import limiter
from domain.services.profile_service import ProfileService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get(
    "/overview",
    response_model=AdminOverviewResponse,
    summary="Referral program overview",
    responses={403: {"model": ErrorResponse, "description": "Admin access required"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_overview(
    request: Request,
    user: AdminUser,
    service: ProfileService = Depends(get_profile_service),
) -> AdminOverviewResponse:
    """All members ranked by referrals, with totals."""
    overview = await service.get_admin_overview()
    return AdminOverviewResponse.from_entity(overview)
