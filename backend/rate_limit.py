"""
Rate limiting for the public ingress routes.
IP-based limits; one Limiter per app so each deployed service keeps its own counters.
Returns 429 with Retry-After for graceful back-off.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from config import Settings

RETRY_AFTER_SECONDS = 60


def _get_identifier(request: Request) -> str:
    """
    Rate limit key: IP-based. When X-Forwarded-For is set (e.g. behind proxy),
    use the leftmost client IP; otherwise use direct client host.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=_get_identifier,
        default_limits=[settings.rate_limit_default],
        headers_enabled=True,
        retry_after="http-date",
        enabled=settings.rate_limit_enabled,
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with JSON body and Retry-After header. Security/CORS headers come from the outer middleware."""
    body = {
        "error": "rate_limited",
        "retry_after_seconds": RETRY_AFTER_SECONDS,
    }
    return JSONResponse(
        status_code=429,
        content=body,
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )
