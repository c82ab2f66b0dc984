"""Composable continuations attached to pending requests.

A continuation is an ordered tuple of mappers stored next to the request
rather than a callback closure, so composition can be checked without
running anything:

    attach_mapper(attach_mapper(p, f), g)  ==  attach_mapper(p, compose(f, g))

Mappers run synchronously in the coordinator once the raw outcome exists. A
mapper that raises ends the chain with ``MappingFailure``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import functools
import logging
from typing import TYPE_CHECKING, Any, TypeVar

from pydantic import BaseModel

from corral.errors import ConfigurationError, error_for_outcome
from corral.outcome import MappingFailure, StatusFailure, Success, is_failure

if TYPE_CHECKING:
    from collections.abc import Callable

    from corral.outcome import Outcome
    from corral.request import PendingRequest

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class Continuation:
    """Ordered mappers applied to one request's raw outcome."""

    mappers: tuple[Callable[[Any], Any], ...] = ()

    def then(self, mapper: Callable[[Any], Any]) -> Continuation:
        """Return a new continuation with *mapper* appended."""
        if not callable(mapper):
            raise ConfigurationError(
                f"mapper must be callable, got {type(mapper).__name__}",
                hint="Pass a function taking the previous value, e.g. decode_json.",
            )
        return Continuation((*self.mappers, mapper))

    def apply(self, outcome: Outcome) -> Any:
        """Run the chain over *outcome*.

        Returns the last mapper's value, the outcome unchanged for an empty
        chain, or ``MappingFailure`` if any mapper raises (``CancelledError``
        included).
        """
        value: Any = outcome
        for mapper in self.mappers:
            try:
                value = mapper(value)
            except (Exception, asyncio.CancelledError) as exc:
                # Mappers are synchronous, so a CancelledError here is the
                # mapper's own and must not cancel the batch.
                logger.debug(
                    "Mapper %s raised %s: %s",
                    getattr(mapper, "__name__", repr(mapper)),
                    type(exc).__name__,
                    exc,
                )
                return MappingFailure(exc)
        return value


def compose(*mappers: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Compose mappers left to right: ``compose(f, g)(x) == g(f(x))``."""

    def composed(value: Any) -> Any:
        for mapper in mappers:
            value = mapper(value)
        return value

    composed.__name__ = "compose(" + ", ".join(
        getattr(m, "__name__", type(m).__name__) for m in mappers
    ) + ")"
    return composed


def attach_mapper(
    pending: PendingRequest, mapper: Callable[[Any], Any]
) -> PendingRequest:
    """Return a copy of *pending* with *mapper* appended to its continuation."""
    return pending.then(mapper)


# --- Mapper helpers ---------------------------------------------------------


def on_success(fn: Callable[[Any], T]) -> Callable[[Any], Any]:
    """Lift *fn* to act on ``Success`` payloads only.

    Failure variants pass through unchanged; any other value (the output of
    an earlier mapper) is handed to *fn* directly.
    """

    @functools.wraps(fn)
    def mapper(value: Any) -> Any:
        if isinstance(value, Success):
            return fn(value.payload)
        if is_failure(value):
            return value
        return fn(value)

    return mapper


def _json_body(response: Any) -> Any:
    return response.json()


def _text_body(response: Any) -> str:
    return response.text


decode_json = on_success(_json_body)
decode_json.__name__ = "decode_json"
decode_json.__doc__ = "Decode a successful response body as JSON."

decode_text = on_success(_text_body)
decode_text.__name__ = "decode_text"
decode_text.__doc__ = "Decode a successful response body as text."


def decode_model(model: type[M]) -> Callable[[Any], Any]:
    """Validate a successful response body into a Pydantic *model*."""

    def validate(response: Any) -> M:
        body = getattr(response, "body", None)
        if isinstance(body, (bytes, str)):
            return model.model_validate_json(body)
        return model.model_validate(response)

    validate.__name__ = f"decode_model({model.__name__})"
    return on_success(validate)


def expect_status(*codes: int) -> Callable[[Any], Any]:
    """Make *codes* the accepted statuses for this request.

    A ``Success`` whose status is not listed becomes ``StatusFailure`` (e.g.
    only 201 counts for a create call); a ``StatusFailure`` whose status is
    listed becomes ``Success`` (e.g. 404 is a valid "absent" answer).
    """
    accepted = frozenset(codes)

    def check(value: Any) -> Any:
        if isinstance(value, StatusFailure):
            if value.status_code in accepted and value.response is not None:
                return Success(value.response)
            return value
        if not isinstance(value, Success):
            return value
        response = value.payload
        status = getattr(response, "status_code", None)
        if status in accepted:
            return value
        return StatusFailure(
            status_code=status if isinstance(status, int) else 0,
            body=getattr(response, "body", b""),
            response=response,
        )

    check.__name__ = f"expect_status{tuple(sorted(accepted))}"
    return check


def unwrap(value: Any) -> Any:
    """Return a ``Success`` payload, raise for failures, pass anything else through."""
    if isinstance(value, Success):
        return value.payload
    if is_failure(value):
        raise error_for_outcome(value)
    return value
