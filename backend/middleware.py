"""
Request dependencies: resolved settings and bearer-token authentication.
"""

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request

from config import Settings


def get_settings(request: Request) -> Settings:
    """Settings resolved at startup and attached to the app by its factory."""
    return request.app.state.settings


async def verify_bearer_token(request: Request, authorization: Optional[str] = Header(None)) -> None:
    """
    Require `Authorization: Bearer <API_TOKEN>`, compared as an exact string.
    An unset token never matches, so an unconfigured logger rejects everything.
    """
    settings = get_settings(request)
    expected = f"Bearer {settings.api_token}"
    if not settings.api_token or not authorization:
        raise HTTPException(status_code=401, detail="unauthorized")
    if not hmac.compare_digest(authorization.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="unauthorized")
