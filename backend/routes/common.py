"""
Routes every service exposes: CORS preflight and health.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.responses import Response

from config import Settings
from cors_ensure import PREFLIGHT_MAX_AGE
from middleware import get_settings

router = APIRouter()


@router.options("/{path:path}")
async def preflight(path: str):
    """204 with no body; CORS headers are added by SecurityHeadersMiddleware for allow-listed origins."""
    return Response(status_code=204, headers={"Access-Control-Max-Age": PREFLIGHT_MAX_AGE})


@router.get("/.well-known/health")
async def health(settings: Settings = Depends(get_settings)):
    return JSONResponse(content={"ok": True, "service": settings.asset_id, "version": settings.version})
