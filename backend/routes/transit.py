"""
Transit broker: POST /core.
Bootstrap trust boundary: shape check plus ACK. No decryption or signature check yet;
an EnvelopeVerifier can be injected to run before the ACK.
"""

import logging
from typing import Any, Callable, Dict, Mapping

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from activity_logging import ACTION_ENVELOPE_ACKED, log_submission_event
from config import Settings
from forms import KNOWN_FORMS
from middleware import get_settings
from schemas import utc_now_iso
from utils import parse_json_body

router = APIRouter()
logger = logging.getLogger(__name__)

EnvelopeVerifier = Callable[[Dict[str, Any], Mapping[str, str]], None]


class VerificationError(Exception):
    """Raised by an EnvelopeVerifier to refuse an envelope."""


def accept_all(envelope: Dict[str, Any], headers: Mapping[str, str]) -> None:
    """Default verifier for the bootstrap deployment."""
    return None


@router.post("/core")
async def core(request: Request, settings: Settings = Depends(get_settings)):
    body = await request.body()
    if len(body) > settings.max_body_bytes:
        raise HTTPException(status_code=413, detail="payload_too_large")
    try:
        envelope = parse_json_body(body)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid_json")

    if not isinstance(envelope, dict):
        raise HTTPException(status_code=400, detail="invalid_payload")
    form = envelope.get("form")
    if not isinstance(form, str) or form not in KNOWN_FORMS:
        raise HTTPException(status_code=400, detail="unknown_form")

    verifier: EnvelopeVerifier = request.app.state.verifier
    try:
        verifier(envelope, request.headers)
    except VerificationError as e:
        logger.warning("Envelope from %s failed verification: %s", request.headers.get("x-asset-id"), e)
        raise HTTPException(status_code=401, detail="verification_failed")

    log_submission_event(ACTION_ENVELOPE_ACKED, {
        "form": form,
        "asset_id": request.headers.get("x-asset-id"),
        "status": 202,
    })
    return JSONResponse(status_code=202, content={"status": "ack", "form": form, "received_at": utc_now_iso()})
