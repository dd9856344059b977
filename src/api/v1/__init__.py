"""API v1 router configuration."""

from fastapi import APIRouter

from api.v1.routes.admin import router as admin_router
from api.v1.routes.auth import router as auth_router
from api.v1.routes.profiles import router as profiles_router
from api.v1.routes.qr import router as qr_router
from api.v1.routes.referrals import router as referrals_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(referrals_router)
router.include_router(profiles_router)
router.include_router(qr_router)
router.include_router(admin_router)
