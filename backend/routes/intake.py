"""
Form intake: POST /ingress/<form>.

Origin gate -> body-size gate -> JSON parse -> honeypot gate -> sanitize -> validate
-> per-field byte cap -> envelope -> best-effort relay. The first failure ends the request.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from activity_logging import (
    ACTION_RELAY_FAILED,
    ACTION_SUBMISSION_ACCEPTED,
    ACTION_SUBMISSION_REJECTED,
    ACTION_SUBMISSION_RELAYED,
    log_submission_event,
)
from config import Settings
from cors_ensure import is_allowed_origin
from middleware import get_settings
from sanitizer import sanitize
from schemas import Envelope, FormSchema
from utils import get_client_ip, parse_json_body
from validator import ValidationError, enforce_byte_limits, validate

logger = logging.getLogger(__name__)


def _reject(request: Request, settings: Settings, status_code: int, code: str, message: Optional[str] = None):
    log_submission_event(ACTION_SUBMISSION_REJECTED, {
        "form": request.app.state.form_schema.form,
        "asset_id": settings.asset_id,
        "status": status_code,
        "reason": code if message is None else f"{code}: {message}",
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("user-agent"),
    })
    detail = code if message is None else {"error": code, "message": message}
    return HTTPException(status_code=status_code, detail=detail)


def extract_fields(payload: Any) -> Any:
    """Accept either {form, fields} or a flat object of fields."""
    if isinstance(payload, dict) and "form" in payload:
        return payload.get("fields")
    return payload


def strip_honeypots(fields: Dict[str, Any], honeypot_fields: Iterable[str]) -> Optional[Dict[str, Any]]:
    """
    Drop honeypot keys before schema validation. Returns None when any of them was
    filled in, which marks the submission as automated.
    """
    names = set(honeypot_fields)
    for name in names:
        value = fields.get(name)
        if value is None or value is False or value in ("", []):
            continue
        return None
    return {k: v for k, v in fields.items() if k not in names}


async def ingress(request: Request, settings: Settings = Depends(get_settings)):
    schema: FormSchema = request.app.state.form_schema

    if not is_allowed_origin(request.headers.get("origin"), settings.allowed_origins):
        raise _reject(request, settings, 403, "forbidden_origin")

    body = await request.body()
    if len(body) > settings.max_body_bytes:
        raise _reject(request, settings, 413, "payload_too_large")

    try:
        payload = parse_json_body(body)
    except ValueError:
        raise _reject(request, settings, 400, "invalid_json")

    shape = extract_fields(payload)
    if not isinstance(shape, dict):
        raise _reject(request, settings, 400, "invalid_payload")

    shape = strip_honeypots(shape, settings.honeypot_fields)
    if shape is None:
        raise _reject(request, settings, 400, "bot_detected")

    try:
        fields = validate(schema.form, schema, sanitize(shape))
        enforce_byte_limits(fields, settings.max_field_bytes)
    except ValidationError as e:
        raise _reject(request, settings, 400, "validation_error", str(e))
    except RecursionError:
        # Parsed, but nested too deeply for the recursive sanitizer
        raise _reject(request, settings, 400, "invalid_payload")

    envelope = Envelope(asset_id=settings.asset_id, form=schema.form, fields=fields)
    meta = {"form": schema.form, "asset_id": settings.asset_id, "ip_address": get_client_ip(request)}

    forwarder = request.app.state.forwarder
    if forwarder is not None:
        try:
            status_code = await forwarder.forward(envelope)
        except Exception as e:
            # Unreachable or timed out: the submission is still valid, fall through to validated_only
            logger.warning("Transit %s forward failed: %r", forwarder.name, e)
            log_submission_event(ACTION_RELAY_FAILED, {**meta, "reason": type(e).__name__})
        else:
            if 200 <= status_code < 300:
                log_submission_event(ACTION_SUBMISSION_RELAYED, {**meta, "status": status_code})
                return JSONResponse(status_code=202, content={"status": "accepted_by_transit"})
            log_submission_event(ACTION_RELAY_FAILED, {**meta, "status": status_code, "reason": "transit_rejected"})
            return JSONResponse(status_code=status_code, content={"status": "transit_rejected", "code": status_code})

    log_submission_event(ACTION_SUBMISSION_ACCEPTED, {**meta, "status": 200})
    return JSONResponse(status_code=200, content={"status": "validated_only", "message": "Transit not configured"})


def build_router(schema: FormSchema) -> APIRouter:
    router = APIRouter()
    router.add_api_route(f"/ingress/{schema.form}", ingress, methods=["POST"])
    return router
