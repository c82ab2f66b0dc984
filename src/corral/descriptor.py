"""RequestDescriptor: immutable description of one outbound call."""

from __future__ import annotations

from dataclasses import dataclass, field
import json as _json
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

import httpx

from corral.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

_ALLOWED_SCHEMES = frozenset({"http", "https"})


def _freeze_headers(headers: Mapping[str, str] | None) -> Mapping[str, str]:
    # Copy even proxies: a proxy still reads through to the caller's dict.
    return MappingProxyType(dict(headers or {}))


@dataclass(frozen=True, slots=True)
class RequestDescriptor:
    """What to send: target, method, body, headers and timeout.

    ``timeout_s=None`` defers to the transport's configured default.
    """

    target: str
    method: str = "GET"
    body: bytes | None = None
    headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )
    timeout_s: float | None = None

    def __post_init__(self) -> None:
        """Validate eagerly so bad descriptors fail before submission."""
        if not isinstance(self.target, str) or not self.target.strip():
            raise ConfigurationError(
                "target must be a non-empty URL string",
                hint="Pass target='https://api.example.com/items'.",
            )
        try:
            scheme = httpx.URL(self.target).scheme
        except httpx.InvalidURL as e:
            raise ConfigurationError(
                f"target is not a valid URL: {self.target!r}",
                hint=str(e),
            ) from e
        if scheme not in _ALLOWED_SCHEMES:
            raise ConfigurationError(
                f"target must be an http(s) URL, got {self.target!r}",
                hint="Include the scheme, e.g. 'https://'.",
            )

        if not isinstance(self.method, str) or not self.method.strip():
            raise ConfigurationError(
                "method must be a non-empty string",
                hint="Use an HTTP verb such as 'GET' or 'POST'.",
            )
        object.__setattr__(self, "method", self.method.strip().upper())

        if self.body is not None and not isinstance(self.body, bytes):
            raise ConfigurationError(
                f"body must be bytes or None, got {type(self.body).__name__}",
                hint="Encode text with .encode('utf-8') or use RequestDescriptor.create(json=...).",
            )

        if self.timeout_s is not None and (
            isinstance(self.timeout_s, bool)
            or not isinstance(self.timeout_s, (int, float))
            or self.timeout_s <= 0
        ):
            raise ConfigurationError(
                f"timeout_s must be a positive number or None, got {self.timeout_s!r}",
                hint="Pass timeout_s=10.0, or None to use the transport default.",
            )

        object.__setattr__(self, "headers", _freeze_headers(self.headers))

    @classmethod
    def create(
        cls,
        target: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        content: bytes | str | None = None,
        headers: Mapping[str, str] | None = None,
        timeout_s: float | None = None,
    ) -> RequestDescriptor:
        """Build a descriptor, merging query *params* and encoding the body.

        Args:
            target: Absolute http(s) URL.
            method: HTTP verb.
            params: Query parameters merged into *target*.
            json: JSON-serializable body. Mutually exclusive with *content*.
            content: Raw body; ``str`` is encoded as UTF-8.
            headers: Request headers.
            timeout_s: Per-request timeout in seconds.
        """
        if json is not None and content is not None:
            raise ConfigurationError(
                "json and content are mutually exclusive",
                hint="Pass either json=... or content=..., not both.",
            )

        url = target
        if params:
            try:
                url = str(httpx.URL(target).copy_merge_params(dict(params)))
            except httpx.InvalidURL as e:
                raise ConfigurationError(
                    f"target is not a valid URL: {target!r}", hint=str(e)
                ) from e

        merged_headers = dict(headers or {})
        body: bytes | None = None
        if json is not None:
            body = _json.dumps(json, separators=(",", ":")).encode("utf-8")
            if not any(k.lower() == "content-type" for k in merged_headers):
                merged_headers["Content-Type"] = "application/json"
        elif isinstance(content, str):
            body = content.encode("utf-8")
        else:
            body = content

        return cls(
            target=url,
            method=method,
            body=body,
            headers=merged_headers,
            timeout_s=timeout_s,
        )
