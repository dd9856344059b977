"""Main FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.exception_handlers import setup_exception_handlers
from api.middleware.logging import RequestLoggingMiddleware
from api.middleware.request_id import RequestIDMiddleware
from api.middleware.security import SecurityHeadersMiddleware
from api.routes.health import VERSION
from api.routes.health import router as health_router
from api.v1 import router as v1_router
from core.config import settings
from core.logging import setup_logging
from core.rate_limit import limiter, rate_limit_exceeded_handler
from infrastructure.database.session import dispose_engine

logger = structlog.get_logger()

setup_logging()

API_DESCRIPTION = """\
## Community Referral Program

Members register, get a personal referral code, link and QR code, and unlock
the community card after five successful referrals.

### Registration
`POST /api/v1/auth/register` accepts an optional referral code (in the body or
as `?ref=`). An invalid or uncountable referral never blocks registration; it
is reported in `warnings`.

### Authentication
Member endpoints require the Supabase access token:
```
Authorization: Bearer <your_token>
```

### Rate Limits
- Registration: 5 requests/minute
- Other GET endpoints: 30 requests/minute
- Other POST endpoints: 10 requests/minute
"""

OPENAPI_TAGS = [
    {"name": "health", "description": "Liveness and dependency checks"},
    {"name": "auth", "description": "Registration, sign-in and session state"},
    {"name": "referrals", "description": "Referral code checks"},
    {"name": "profiles", "description": "Member dashboard, referrals and QR code"},
    {"name": "qr", "description": "Public QR codes"},
    {"name": "admin", "description": "Program overview for administrators"},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "app_starting",
        public_base_url=settings.public_base_url,
        identity_provider_configured=bool(settings.supabase_auth_url),
    )
    yield
    await dispose_engine()


def _add_middleware(app: FastAPI) -> None:
    # Starlette runs the last added middleware first
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    # QR data URLs are several KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description=API_DESCRIPTION,
        version=VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        openapi_tags=OPENAPI_TAGS,
        license_info={"name": "MIT"},
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    setup_exception_handlers(app)
    _add_middleware(app)

    app.include_router(health_router)
    app.include_router(v1_router, prefix="/api/v1")

    logger.info("app_created", environment=settings.app_env)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )
