"""Per-client rate limiting with slowapi.

Registration is the tightest limit because each attempt creates an identity
provider account. Limits are declared on the routes.
"""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.config import settings
from core.exceptions import ErrorCode

logger = structlog.get_logger()


def client_address(request: Request) -> str:
    """Client IP, honouring the first X-Forwarded-For hop set by the proxy."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


limiter = Limiter(key_func=client_address, enabled=settings.rate_limit_enabled)


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    limit = exc.detail if isinstance(exc, RateLimitExceeded) else str(exc)
    logger.warning(
        "rate_limit_exceeded",
        client=client_address(request),
        path=request.url.path,
        limit=limit,
    )
    return JSONResponse(
        status_code=429,
        content={
            "error_code": ErrorCode.RATE_LIMIT_EXCEEDED.value,
            "message": "Too many requests. Please wait a moment and try again",
            "details": {"limit": limit},
        },
        headers={"Retry-After": "60"},
    )
