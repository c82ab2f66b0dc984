"""Tagged outcomes of attempting one request.

Every pending request produces exactly one of these. Failures are values,
not exceptions, so a batch never loses a label because one request broke.
"""

from __future__ import annotations

import dataclasses
import typing

if typing.TYPE_CHECKING:
    from corral.transports.base import RawResponse


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TPayload]:
    """The transport returned an accepted response."""

    payload: TPayload

    @property
    def ok(self) -> bool:
        return True


@dataclasses.dataclass(frozen=True, slots=True)
class ConnectionFailure:
    """No response was received (timeout, DNS, refused connection)."""

    reason: str
    #: Original transport exception, when one was raised.
    error: BaseException | None = dataclasses.field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return False


@dataclasses.dataclass(frozen=True, slots=True)
class StatusFailure:
    """A response was received but its status marks it as a failure."""

    status_code: int
    body: bytes = b""
    response: RawResponse | None = dataclasses.field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return False


@dataclasses.dataclass(frozen=True, slots=True)
class MappingFailure:
    """A mapper raised while transforming the raw outcome."""

    error: BaseException

    @property
    def ok(self) -> bool:
        return False


@dataclasses.dataclass(frozen=True, slots=True)
class CancelledFailure:
    """The request left the queue before dispatch because its batch was cancelled."""

    @property
    def ok(self) -> bool:
        return False


Outcome = (
    Success[typing.Any]
    | ConnectionFailure
    | StatusFailure
    | MappingFailure
    | CancelledFailure
)

FAILURE_TYPES: tuple[type, ...] = (
    ConnectionFailure,
    StatusFailure,
    MappingFailure,
    CancelledFailure,
)


def is_failure(value: object) -> bool:
    """Return True when *value* is one of the failure outcome variants."""
    return isinstance(value, FAILURE_TYPES)
