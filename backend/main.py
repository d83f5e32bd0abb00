"""
Ops Intake - FastAPI application factories.
One deployable app per service: contact intake, join intake, transit broker, sheet logger.
`main:app` builds the service named by OPS_SERVICE.
"""

import logging
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import ConfigError, Settings, check_production_settings, default_asset_id, load_settings
from cors_ensure import SECURITY_HEADERS, SecurityHeadersMiddleware, cors_headers_for_origin
from forms import FORM_SCHEMAS
from forwarder import build_forwarder
from rate_limit import build_limiter, rate_limit_exceeded_handler
from routes import common, intake, sheet_logger, transit
from sheets import ServiceAccountTokenProvider, SheetsClient

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Map HTTPException detail to the {"error": code} body. Unknown routes and methods are both not_found."""
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content={"error": "not_found"})
    detail = exc.detail
    content = detail if isinstance(detail, dict) else {"error": detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


async def global_exception_handler(request: Request, exc: Exception):
    """Return error with security and CORS headers; this response bypasses the header middleware."""
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    settings: Settings = request.app.state.settings
    headers = dict(SECURITY_HEADERS)
    headers["Cache-Control"] = "no-store"
    headers.update(cors_headers_for_origin(
        request.headers.get("origin"), settings.allowed_origins, request.app.state.cors_allow_headers,
    ))
    return JSONResponse(status_code=500, content={"error": "internal_error"}, headers=headers)


def _base_app(settings: Settings, title: str, cors_allow_headers: str) -> FastAPI:
    app = FastAPI(
        title=title,
        version=settings.version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.cors_allow_headers = cors_allow_headers

    # Rate limiting: IP-based, applies to all routes except preflight and health.
    app.state.limiter = build_limiter(settings)
    app.state.limiter.exempt(common.preflight)
    app.state.limiter.exempt(common.health)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Middleware order (last added = outermost): SecurityHeaders -> SlowAPI -> app.
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(
        SecurityHeadersMiddleware,
        allowed_origins=settings.allowed_origins,
        allow_headers=cors_allow_headers,
    )
    app.include_router(common.router)
    return app


def create_transit_app(settings: Settings, verifier: Optional[transit.EnvelopeVerifier] = None) -> FastAPI:
    app = _base_app(settings, "Ops Transit Broker", "content-type, x-asset-id")
    app.state.verifier = verifier or transit.accept_all
    app.include_router(transit.router)
    return app


def create_intake_app(
    form: str,
    settings: Settings,
    transit_app: Optional[FastAPI] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Intake app for one form. The downstream is fixed here: an in-process transit
    app (TRANSIT_BINDING) wins over TRANSIT_URL, which wins over none.
    """
    schema = FORM_SCHEMAS.get(form)
    if schema is None:
        raise ConfigError(f"Unknown form: {form!r}")
    if transit_app is None and settings.transit_binding:
        transit_settings = settings.model_copy(update={
            "service": "transit",
            "asset_id": default_asset_id("transit"),
            "rate_limit_enabled": False,
        })
        transit_app = create_transit_app(transit_settings)

    app = _base_app(settings, f"Ops {form.title()} Intake", "content-type")
    app.state.form_schema = schema
    app.state.forwarder = build_forwarder(settings, transit_app=transit_app, transport=transport)
    app.include_router(intake.build_router(schema))
    return app


def create_sheet_logger_app(
    settings: Settings,
    sheets_client: Optional[SheetsClient] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    check_production_settings(settings)
    if sheets_client is None and settings.service_account_info:
        try:
            token_provider = ServiceAccountTokenProvider(settings.service_account_info, transport=transport)
        except ValueError as e:
            raise ConfigError(f"Invalid service account credentials: {e}") from e
        sheets_client = SheetsClient(
            settings.sheet_id,
            token_provider,
            sheet_range=settings.sheet_range,
            transport=transport,
        )
    elif sheets_client is None:
        logger.warning("Sheet logger has no service account credentials; /log will answer sheet_error")

    app = _base_app(settings, "Ops Sheet Logger", "content-type, authorization")
    app.state.sheets_client = sheets_client
    app.include_router(sheet_logger.router)
    return app


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    if settings.service == "transit":
        return create_transit_app(settings)
    if settings.service == "sheet":
        return create_sheet_logger_app(settings)
    return create_intake_app(settings.service, settings)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
