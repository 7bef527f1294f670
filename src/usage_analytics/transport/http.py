"""httpx-based transport."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from .base import Transport, TransportResponse


logger = logging.getLogger(__name__)


@dataclass
class HttpTransport(Transport):
    """
    Transport backed by a shared httpx.AsyncClient.

    Pass `client` to reuse an existing client (for example one mounted on
    httpx.MockTransport or httpx.ASGITransport in tests); otherwise one is
    created lazily and closed by close().
    """
    timeout: float = 30.0
    client: httpx.AsyncClient | None = None

    _owns_client: bool = field(default=False, init=False)

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self.client

    async def post(self, url: str, body: str, headers: dict[str, str] | None = None) -> TransportResponse:
        response = await self._get_client().post(url, content=body, headers=headers)
        return TransportResponse(status_code=response.status_code, text=response.text)

    async def get(self, url: str, params: dict[str, str] | None = None) -> TransportResponse:
        response = await self._get_client().get(url, params=params)
        return TransportResponse(status_code=response.status_code, text=response.text)

    async def close(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None
            self._owns_client = False
            logger.debug("HTTP transport closed")
