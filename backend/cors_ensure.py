"""
Security and CORS headers on every response.
CORS is reflected only for an exact allow-listed Origin (never "*"); security headers are unconditional.
"""

from typing import Dict, Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}

PREFLIGHT_MAX_AGE = "600"


def is_allowed_origin(origin: Optional[str], allowed_origins: Iterable[str]) -> bool:
    return bool(origin) and origin in tuple(allowed_origins)


def cors_headers_for_origin(
    origin: Optional[str],
    allowed_origins: Iterable[str],
    allow_headers: str = "content-type",
) -> Dict[str, str]:
    """Return CORS header dict if origin is allowed; else empty dict."""
    if not is_allowed_origin(origin, allowed_origins):
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Vary": "Origin",
        "Access-Control-Allow-Methods": "POST, OPTIONS, GET",
        "Access-Control-Allow-Headers": allow_headers,
    }


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Runs outermost, so error, 404 and 429 responses get the same headers as
    normal ones. Values set by a handler win over the defaults here.
    """

    def __init__(self, app, allowed_origins: Iterable[str] = (), allow_headers: str = "content-type"):
        super().__init__(app)
        self.allowed_origins = tuple(allowed_origins)
        self.allow_headers = allow_headers

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        headers = dict(SECURITY_HEADERS)
        headers["Cache-Control"] = "no-store"
        headers.update(cors_headers_for_origin(request.headers.get("origin"), self.allowed_origins, self.allow_headers))
        for name, value in headers.items():
            response.headers.setdefault(name, value)
        return response
