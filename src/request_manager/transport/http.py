"""
HTTP transport built on httpx.

Performs each request with a shared httpx.AsyncClient.
"""

import time
from typing import Any, Dict, Optional

import httpx
import structlog

from request_manager.exceptions import TransportError
from request_manager.transport.interface import TransportAdapter, TransportResponse

logger = structlog.get_logger(__name__)

# Request option keys forwarded to httpx.AsyncClient.request()
_FORWARDED_OPTIONS = (
    "headers",
    "params",
    "json",
    "data",
    "content",
    "cookies",
    "follow_redirects",
    "timeout",
)


class HttpxTransport(TransportAdapter):
    """
    httpx-based transport.

    Non-2xx responses are returned like any other response; only failures
    to obtain a response at all (connection errors, protocol errors, ...)
    raise TransportError.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        follow_redirects: bool = True,
    ):
        """
        Initialize the transport.

        Args:
            client: Preconfigured client to use instead of creating one.
                A client passed in is not closed by disconnect().
            follow_redirects: Default redirect policy for a created client
        """
        self._client = client
        self._owns_client = client is None
        self._follow_redirects = follow_redirects

    async def connect(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            return

        # No client-level timeout: requests are never bounded on the
        # manager's behalf.
        self._client = httpx.AsyncClient(
            timeout=None,
            follow_redirects=self._follow_redirects,
        )
        self._owns_client = True
        logger.info("http_transport_connected")

    async def disconnect(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            logger.info("http_transport_disconnected")

    async def send(self, options: Dict[str, Any]) -> TransportResponse:
        """Perform one HTTP request described by options."""
        if self._client is None:
            await self.connect()

        url = options.get("url") or options.get("uri")
        if not url:
            raise TransportError("Request options carry no url")

        method = str(options.get("method", "GET")).upper()
        kwargs = {
            key: options[key]
            for key in _FORWARDED_OPTIONS
            if options.get(key) is not None
        }

        started = time.perf_counter()
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.debug("http_request_error", url=url, error=str(e))
            raise TransportError(f"Request to {url} failed: {e}", url=url) from e
        elapsed_ms = (time.perf_counter() - started) * 1000

        logger.debug(
            "http_request_done",
            method=method,
            url=url,
            status=response.status_code,
            elapsed_ms=round(elapsed_ms, 2),
        )

        return TransportResponse(
            status_code=response.status_code,
            url=str(response.url),
            headers=dict(response.headers),
            body=response.text,
            elapsed_ms=elapsed_ms,
        )
