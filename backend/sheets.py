"""
Google Sheets sink for the sheet logger.

Every append performs a full service-account exchange: an RS256-signed JWT
assertion is traded for an OAuth access token, which then authorizes one
values:append call. Tokens are not cached between requests.
"""

import json
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from firebase_admin import credentials
from google.auth import jwt as google_jwt

from config import GOOGLE_TOKEN_URI
from schemas import utc_now_iso

logger = logging.getLogger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_TTL_SECONDS = 3600


class SheetError(RuntimeError):
    """Token exchange or append failed; surfaced to the caller as 500 sheet_error."""


class ServiceAccountTokenProvider:
    """Signs JWT-bearer assertions with a service-account key and exchanges them for access tokens."""

    def __init__(
        self,
        service_account_info: Dict[str, Any],
        scope: str = SHEETS_SCOPE,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        # Certificate validates the service-account shape and loads the signing key
        self._certificate = credentials.Certificate(dict(service_account_info))
        self.service_account_email = self._certificate.service_account_email
        self.token_uri = service_account_info.get("token_uri") or GOOGLE_TOKEN_URI
        self.scope = scope
        self.timeout = timeout
        self.transport = transport

    def build_assertion(self, now: Optional[int] = None) -> str:
        issued_at = int(time.time()) if now is None else int(now)
        claims = {
            "iss": self.service_account_email,
            "scope": self.scope,
            "aud": self.token_uri,
            "exp": issued_at + ASSERTION_TTL_SECONDS,
            "iat": issued_at,
        }
        return google_jwt.encode(self._certificate.signer, claims).decode("ascii")

    async def get_access_token(self) -> str:
        data = {"grant_type": JWT_BEARER_GRANT, "assertion": self.build_assertion()}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self.token_uri, data=data)
        except httpx.HTTPError as e:
            raise SheetError("token_error") from e
        if not resp.is_success:
            logger.warning("Token exchange rejected: status=%s", resp.status_code)
            raise SheetError("token_error")
        try:
            token = resp.json().get("access_token")
        except ValueError as e:
            raise SheetError("token_error") from e
        if not token:
            raise SheetError("token_error")
        return token


class SheetsClient:
    def __init__(
        self,
        sheet_id: str,
        token_provider,
        sheet_range: str = "A1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sheet_id = sheet_id
        self.sheet_range = sheet_range
        self.token_provider = token_provider
        self.timeout = timeout
        self.transport = transport

    def append_url(self) -> str:
        return (
            f"{SHEETS_API_URL}/{quote(self.sheet_id, safe='')}"
            f"/values/{quote(self.sheet_range, safe='!')}:append"
        )

    async def append_row(self, payload: Any) -> None:
        """Append `[timestamp, compact JSON of payload]` to the configured range."""
        if not self.sheet_id:
            raise SheetError("sheet_not_configured")
        token = await self.token_provider.get_access_token()
        body = {"values": [[utc_now_iso(), json.dumps(payload, separators=(",", ":"), ensure_ascii=False)]]}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    self.append_url(),
                    params={"valueInputOption": "RAW"},
                    json=body,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            raise SheetError("append_failed") from e
        if not resp.is_success:
            logger.warning("Sheet append rejected: status=%s", resp.status_code)
            raise SheetError("append_failed")
