"""httpx transport for the portal query and command endpoints."""

from __future__ import annotations

import logging
import time

import httpx

from app import settings
from command_encoder import TransportRequest
from portal_transport import TransportError, TransportResponse


_logger = logging.getLogger("portalgrid.transport")


class PortalTransportError(TransportError):
    pass


class PortalClient:
    """Sends encoded grid requests; network trouble becomes PortalTransportError.

    Non-2xx replies are returned, not raised: the caller decides what an
    application-level failure means for its operation.
    """

    def __init__(self, base_url: str | None = None, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url or settings.portal_base_url(),
                timeout=settings.request_timeout(),
            )
        self._client = client

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    async def send(self, request: TransportRequest) -> TransportResponse:
        content = request.body.encode("utf-8") if request.body is not None else None
        start = time.perf_counter()
        try:
            res = await self._client.request(
                request.method,
                request.url,
                headers=request.header_dict(),
                content=content,
            )
        except httpx.HTTPError as exc:
            _logger.warning("portal_request_failed method=%s error=%s", request.method, exc)
            raise PortalTransportError(f"portal_request_failed:{request.method}:{exc}") from exc
        elapsed_ms = (time.perf_counter() - start) * 1000
        _logger.debug("portal_response method=%s status=%s ms=%.1f", request.method, res.status_code, elapsed_ms)
        if not res.content:
            return TransportResponse(res.status_code, None)
        try:
            body = res.json()
        except ValueError as exc:
            if res.is_success:
                raise PortalTransportError(f"portal_response_invalid:{res.status_code}") from exc
            body = {"description": res.text[:200]}
        return TransportResponse(res.status_code, body)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
