"""httpx-backed transport."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from corral.config import Config
from corral.transports.base import RawResponse

if TYPE_CHECKING:
    from corral.descriptor import RequestDescriptor

logger = logging.getLogger(__name__)


def build_async_client(
    config: Config | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` with Corral's defaults.

    Centralizes timeout, user agent and redirect policy so every request
    sent through the pool behaves the same. *transport* lets tests plug in
    ``httpx.MockTransport``.
    """
    config = config or Config()
    headers: dict[str, str] = {"User-Agent": str(config.user_agent)}
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout_s),
        follow_redirects=config.follow_redirects,
        headers=headers,
        transport=transport,
    )


class HttpTransport:
    """Send descriptors with a shared ``httpx.AsyncClient``.

    Connection-level failures propagate as httpx exceptions; every status
    code comes back as a ``RawResponse``.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize with a config, or an existing client to borrow."""
        self._config = config or Config()
        self._owns_client = client is None
        self._client = client or build_async_client(self._config, transport=transport)

    async def send(self, descriptor: RequestDescriptor) -> RawResponse:
        """Perform one HTTP exchange."""
        timeout = (
            httpx.Timeout(descriptor.timeout_s)
            if descriptor.timeout_s is not None
            else httpx.USE_CLIENT_DEFAULT
        )
        response = await self._client.request(
            descriptor.method,
            descriptor.target,
            content=descriptor.body,
            headers=dict(descriptor.headers),
            timeout=timeout,
        )
        logger.debug(
            "%s %s -> %d", descriptor.method, descriptor.target, response.status_code
        )
        return RawResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
            url=str(response.url),
        )

    async def aclose(self) -> None:
        """Close the client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()
