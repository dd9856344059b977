"""Health check endpoints."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from infrastructure.database.models import ProfileModel
from infrastructure.database.session import get_async_session

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

VERSION = "1.0.0"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    environment: str
    database: str | None = None
    profiles: int | None = None
    identity_provider_configured: bool | None = None


@router.get("/health", response_model=HealthResponse, summary="Basic health check")
async def health_check() -> HealthResponse:
    """Liveness probe; does not touch the database."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        timestamp=datetime.utcnow().isoformat(),
        environment=settings.app_env,
    )


@router.get(
    "/health/detailed",
    response_model=HealthResponse,
    summary="Detailed health check",
)
async def detailed_health_check(
    db: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    """
    Readiness check: database connectivity and the profile store.

    Reports ``degraded`` instead of failing so dashboards can show what broke.
    """
    db_status = "unknown"
    profile_count: int | None = None

    try:
        await db.execute(text("SELECT 1"))
        profile_count = (await db.execute(select(func.count(ProfileModel.id)))).scalar_one()
        db_status = "healthy"
    except Exception as e:
        logger.warning("health_database_unreachable", error=str(e))
        db_status = f"unhealthy: {str(e)}"

    overall_status = "healthy" if db_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall_status,
        version=VERSION,
        timestamp=datetime.utcnow().isoformat(),
        environment=settings.app_env,
        database=db_status,
        profiles=profile_count,
        identity_provider_configured=bool(settings.supabase_auth_url and settings.supabase_anon_key),
    )
