"""
Downstream relay of validated envelopes to the transit broker.

Two implementations share one interface and are chosen when the intake app is built:
InProcessForwarder calls a transit ASGI app directly (service binding), HttpForwarder
POSTs to TRANSIT_URL. Delivery is best-effort: one call, bounded timeout, no retry.
"""

import asyncio
import logging
from typing import Optional

import httpx

from config import Settings
from schemas import Envelope

logger = logging.getLogger(__name__)

TRANSIT_PATH = "/core"
BINDING_BASE_URL = "https://transit.internal"


class Forwarder:
    """Deliver one envelope and return the downstream HTTP status code."""

    name = "forwarder"

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        raise NotImplementedError

    def _url(self) -> str:
        raise NotImplementedError

    async def _post(self, envelope: Envelope) -> int:
        async with self._client() as client:
            resp = await client.post(
                self._url(),
                json=envelope.to_wire(),
                headers={"X-Asset-ID": envelope.asset_id},
            )
        return resp.status_code

    async def forward(self, envelope: Envelope) -> int:
        return await self._post(envelope)


class HttpForwarder(Forwarder):
    name = "http"

    def __init__(self, base_url: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(timeout)
        self.base_url = base_url
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _url(self) -> str:
        # An absolute path replaces whatever path TRANSIT_URL carries
        return str(httpx.URL(self.base_url).join(TRANSIT_PATH))


class InProcessForwarder(Forwarder):
    name = "binding"

    def __init__(self, app, timeout: float = 5.0):
        super().__init__(timeout)
        self.app = app

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=self.app), base_url=BINDING_BASE_URL)

    def _url(self) -> str:
        return TRANSIT_PATH

    async def forward(self, envelope: Envelope) -> int:
        # ASGITransport ignores httpx timeouts; bound the call here instead
        return await asyncio.wait_for(self._post(envelope), timeout=self.timeout)


def build_forwarder(
    settings: Settings,
    transit_app=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Optional[Forwarder]:
    """Binding preferred, else URL, else None (intake answers validated_only)."""
    if transit_app is not None:
        return InProcessForwarder(transit_app, timeout=settings.transit_timeout_seconds)
    if settings.transit_url:
        return HttpForwarder(settings.transit_url, timeout=settings.transit_timeout_seconds, transport=transport)
    logger.info("No transit downstream configured for %s; submissions will be validated only", settings.asset_id)
    return None
