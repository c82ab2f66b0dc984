"""Transport protocol: the minimal seam between the pool and the network."""

from __future__ import annotations

import codecs
from dataclasses import dataclass, field
import json
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from corral.descriptor import RequestDescriptor


@dataclass(frozen=True)
class RawResponse:
    """A transport-neutral HTTP response."""

    status_code: int
    body: bytes = b""
    headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )
    url: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "headers",
            MappingProxyType({k.lower(): v for k, v in dict(self.headers).items()}),
        )

    @property
    def ok(self) -> bool:
        """Whether the status is in the 2xx range."""
        return 200 <= self.status_code <= 299

    @property
    def text(self) -> str:
        return self.body.decode(self._charset(), errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)

    def _charset(self) -> str:
        content_type = self.headers.get("content-type", "")
        for param in content_type.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                charset = value.strip('"')
                try:
                    return codecs.lookup(charset).name
                except LookupError:
                    break
        return "utf-8"


@runtime_checkable
class Transport(Protocol):
    """Send one request and return its response.

    Implementations raise on connection-level failures (timeouts included);
    any status code, including 4xx/5xx, is returned as a ``RawResponse``.
    """

    async def send(self, descriptor: RequestDescriptor) -> RawResponse:
        """Perform the network call described by *descriptor*."""
        ...
