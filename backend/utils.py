"""
Shared utilities for request handling and similar.
"""

import json
from typing import Any


def get_client_ip(request) -> str:
    """
    Extract client IP from FastAPI/Starlette request.
    - Checks x-forwarded-for header first (for proxies/load balancers)
    - Falls back to request.client.host
    - Returns "unknown" if unavailable
    """
    if request is None:
        return "unknown"
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
        return ip if ip else "unknown"
    if getattr(request, "client", None) and request.client:
        host = getattr(request.client, "host", None)
        return host if host else "unknown"
    return "unknown"


def parse_json_body(raw: bytes) -> Any:
    """Decode a request body as JSON; an empty body reads as {}. Raises ValueError on bad input."""
    text = raw.decode("utf-8")
    if not text.strip():
        return {}
    try:
        return json.loads(text)
    except RecursionError as e:
        raise ValueError("JSON nested too deeply") from e
