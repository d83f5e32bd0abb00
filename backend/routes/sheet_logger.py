"""
Sheet logger: POST /log (Bearer auth) appends `[timestamp, JSON payload]` to a Google Sheet.
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from activity_logging import ACTION_SHEET_APPENDED, log_submission_event
from middleware import verify_bearer_token
from sheets import SheetError

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/log", dependencies=[Depends(verify_bearer_token)])
async def log_row(request: Request):
    body = await request.body()
    try:
        payload = json.loads(body.decode("utf-8"))
    except (ValueError, RecursionError):
        raise HTTPException(status_code=400, detail="bad_json")

    sheets_client = request.app.state.sheets_client
    try:
        if sheets_client is None:
            raise SheetError("sheet_not_configured")
        await sheets_client.append_row(payload)
    except SheetError as e:
        logger.error("Sheet append failed: %s", e)
        raise HTTPException(status_code=500, detail="sheet_error")
    except Exception as e:
        logger.exception("Sheet append failed unexpectedly: %s", e)
        raise HTTPException(status_code=500, detail="sheet_error")

    log_submission_event(ACTION_SHEET_APPENDED, {"status": 200})
    return JSONResponse(content={"ok": True})
