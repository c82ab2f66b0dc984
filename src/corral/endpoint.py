"""Per-endpoint request builders and the single-request executor.

``fetch()`` is ``submit()`` over a one-entry batch with a ceiling of 1, so a
request's continuation runs through exactly the same code whether it is
issued alone or inside a larger batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import string
from types import MappingProxyType
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from corral.continuation import Continuation
from corral.descriptor import RequestDescriptor
from corral.errors import ConfigurationError, error_for_outcome
from corral.outcome import Success, is_failure
from corral.pool import submit
from corral.request import PendingRequest

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from corral.config import Config
    from corral.pool import Pool
    from corral.transports.base import Transport

_DEFAULT_LABEL = "request"
_FORMATTER = string.Formatter()


async def fetch(
    request: PendingRequest | RequestDescriptor,
    mapper: Callable[[Any], Any] | None = None,
    *,
    pool: Pool | None = None,
    config: Config | None = None,
    transport: Transport | None = None,
) -> Any:
    """Run one request and return its mapped value.

    Args:
        request: A pending request, or a bare descriptor.
        mapper: Optional mapper appended to the request's continuation.
        pool: Run through an existing pool instead of a short-lived one.
        config: Config for the short-lived pool (ignored with *pool*).
        transport: Transport for the short-lived pool (ignored with *pool*).

    Returns:
        The payload when the mapped value is ``Success``; otherwise the
        mapped value itself.

    Raises:
        RequestFailedError: A subclass matching the failure outcome
            (``ConnectionFailedError``, ``StatusError``, ``MappingError``,
            ``RequestCancelledError``).
    """
    if isinstance(request, RequestDescriptor):
        request = PendingRequest(request)
    elif not isinstance(request, PendingRequest):
        raise ConfigurationError(
            f"Expected PendingRequest or RequestDescriptor, got {type(request).__name__}",
            hint="Use Endpoint.build(...) or RequestDescriptor.create(...).",
        )
    if mapper is not None:
        request = request.then(mapper)

    label = request.label or _DEFAULT_LABEL
    batch = {label: request}
    if pool is not None:
        result = await pool.submit(batch, 1)
    else:
        result = await submit(batch, 1, config=config, transport=transport)

    value = result[label]
    if is_failure(value):
        raise error_for_outcome(value, label=request.label)
    if isinstance(value, Success):
        return value.payload
    return value


@dataclass(frozen=True)
class Endpoint:
    """Reusable builder for one remote endpoint.

    ``url`` may contain ``{placeholders}`` filled from keyword arguments to
    ``build()``/``fetch()``. ``mapper`` is the endpoint's canonical
    continuation (raw response to domain value).

    Example:
        users = Endpoint(
            "https://api.example.com/users/{id}",
            mapper=decode_model(User),
        )
        alice = await users.fetch(id=1)
        both = await submit({"a": users.build(id=1), "b": users.build(id=2)})
    """

    url: str
    method: str = "GET"
    mapper: Callable[[Any], Any] | None = None
    headers: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )
    timeout_s: float | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.url, str) or not self.url.strip():
            raise ConfigurationError(
                "Endpoint url must be a non-empty string",
                hint="Pass Endpoint('https://api.example.com/items/{id}').",
            )
        if self.mapper is not None and not callable(self.mapper):
            raise ConfigurationError(
                f"Endpoint mapper must be callable, got {type(self.mapper).__name__}",
                hint="Pass mapper=decode_json or any function of the outcome.",
            )
        object.__setattr__(
            self, "headers", MappingProxyType(dict(self.headers or {}))
        )

    @property
    def placeholders(self) -> tuple[str, ...]:
        """Names of ``{placeholders}`` in the URL template."""
        return tuple(
            name
            for _, name, _, _ in _FORMATTER.parse(self.url)
            if name is not None and name != ""
        )

    def build(
        self,
        *,
        label: str | None = None,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        content: bytes | str | None = None,
        headers: Mapping[str, str] | None = None,
        timeout_s: float | None = None,
        **path_params: Any,
    ) -> PendingRequest:
        """Build a not-yet-executed request with the canonical mapper attached.

        Keyword arguments beyond the named ones fill URL placeholders and
        are percent-encoded as single path segments.
        Call-site *headers* override endpoint headers.
        """
        missing = [p for p in self.placeholders if p not in path_params]
        if missing:
            raise ConfigurationError(
                f"Missing URL parameter(s) for {self.name or self.url}: {', '.join(missing)}",
                hint=f"Pass them as keywords, e.g. build({missing[0]}=...).",
            )
        unknown = sorted(set(path_params) - set(self.placeholders))
        if unknown:
            raise ConfigurationError(
                f"Unknown URL parameter(s) for {self.name or self.url}: {', '.join(unknown)}",
                hint="Use params={...} for query-string values.",
            )

        merged_headers = {**self.headers, **(headers or {})}
        descriptor = RequestDescriptor.create(
            self.url.format(
                **{k: quote(str(v), safe="") for k, v in path_params.items()}
            ),
            method=self.method,
            params=params,
            json=json,
            content=content,
            headers=merged_headers,
            timeout_s=timeout_s if timeout_s is not None else self.timeout_s,
        )
        continuation = Continuation()
        if self.mapper is not None:
            continuation = continuation.then(self.mapper)
        return PendingRequest(descriptor, continuation, label=label)

    async def fetch(
        self,
        *,
        pool: Pool | None = None,
        config: Config | None = None,
        transport: Transport | None = None,
        **build_kwargs: Any,
    ) -> Any:
        """Build and run one request; see ``corral.fetch``."""
        return await fetch(
            self.build(**build_kwargs),
            pool=pool,
            config=config,
            transport=transport,
        )
