"""Mock transport for offline use and testing."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from corral.transports.base import RawResponse

if TYPE_CHECKING:
    from corral.descriptor import RequestDescriptor


class MockTransport:
    """Transport that never touches the network.

    Every request succeeds with a deterministic JSON echo of what was sent.
    """

    def __init__(self) -> None:
        self.sent: list[RequestDescriptor] = []

    async def send(self, descriptor: RequestDescriptor) -> RawResponse:
        """Return a 200 response echoing method, URL and body."""
        self.sent.append(descriptor)
        body = descriptor.body.decode("utf-8", errors="replace") if descriptor.body else None
        payload = {"method": descriptor.method, "url": descriptor.target, "body": body}
        return RawResponse(
            status_code=200,
            body=json.dumps(payload).encode("utf-8"),
            headers={"content-type": "application/json"},
            url=descriptor.target,
        )
