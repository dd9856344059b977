"""Public QR code routes."""

from fastapi import APIRouter, Depends, Request

from api.v1.dependencies import get_qr_service
from api.v1.schemas.profile import QrCodeResponse
from core.rate_limit import limiter
from domain.services.qr_service import QrCodeService

router = APIRouter(prefix="/qr", tags=["qr"])


@router.get(
    "/registration",
    response_model=QrCodeResponse,
    summary="QR code for the registration page",
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_registration_qr(
    request: Request,
    qr_service: QrCodeService = Depends(get_qr_service),
) -> QrCodeResponse:
    """QR code pointing at the plain registration page, for posters and flyers."""
    return QrCodeResponse(
        qr_code_url=await qr_service.registration_qr(),
        target_url=qr_service.registration_link(),
    )
