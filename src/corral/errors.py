"""Exception hierarchy for Corral."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from corral.outcome import Outcome


class CorralError(Exception):
    """Base exception for all Corral errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(CorralError):
    """Configuration, descriptor or batch validation failed."""


class DuplicateLabelError(ConfigurationError):
    """A batch contained the same label more than once.

    Raised before any request is dispatched.
    """

    def __init__(self, duplicates: Iterable[str], *, hint: str | None = None) -> None:
        self.duplicates = tuple(duplicates)
        listed = ", ".join(repr(d) for d in self.duplicates)
        super().__init__(
            f"Duplicate label(s) in batch: {listed}",
            hint=hint or "Every request in a batch needs a unique label.",
        )


class InvalidConcurrencyError(ConfigurationError):
    """Concurrency ceiling is not a positive integer or UNLIMITED."""

    def __init__(self, value: object, *, hint: str | None = None) -> None:
        self.value = value
        super().__init__(
            f"concurrency must be a positive integer or UNLIMITED, got {value!r}",
            hint=hint or "Pass concurrency=4, concurrency=UNLIMITED, or leave it unset.",
        )


class InternalError(CorralError):
    """A Corral internal error (bug) or invariant violation."""


class RequestFailedError(CorralError):
    """A single request ended in a failure outcome.

    Only raised at single-result call sites (``fetch()``, ``unwrap``); batch
    submission records failures as values instead.
    """

    def __init__(
        self,
        message: str,
        *,
        outcome: Outcome,
        label: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.outcome = outcome
        self.label = label


class ConnectionFailedError(RequestFailedError):
    """The transport never received a response (timeout, DNS, refused)."""

    @property
    def reason(self) -> str:
        return getattr(self.outcome, "reason", "")


class StatusError(RequestFailedError):
    """A response arrived but its status marks it as a failure."""

    @property
    def status_code(self) -> int | None:
        return getattr(self.outcome, "status_code", None)

    @property
    def body(self) -> bytes:
        return getattr(self.outcome, "body", b"")


class MappingError(RequestFailedError):
    """A mapper raised while transforming the raw outcome."""


class RequestCancelledError(RequestFailedError):
    """The request was removed from the queue before dispatch."""


def error_for_outcome(outcome: Outcome, *, label: str | None = None) -> RequestFailedError:
    """Build the typed error that corresponds to a failure *outcome*."""
    from corral.outcome import (
        CancelledFailure,
        ConnectionFailure,
        MappingFailure,
        StatusFailure,
    )

    where = f" for {label!r}" if label else ""
    err: RequestFailedError
    if isinstance(outcome, ConnectionFailure):
        err = ConnectionFailedError(
            f"Connection failed{where}: {outcome.reason}",
            outcome=outcome,
            label=label,
            hint="Check the target host and timeout; Corral does not retry.",
        )
        if outcome.error is not None:
            err.__cause__ = outcome.error
        return err
    if isinstance(outcome, StatusFailure):
        return StatusError(
            f"Request{where} failed with status {outcome.status_code}",
            outcome=outcome,
            label=label,
        )
    if isinstance(outcome, MappingFailure):
        err = MappingError(
            f"Mapper{where} raised {type(outcome.error).__name__}: {outcome.error}",
            outcome=outcome,
            label=label,
        )
        err.__cause__ = outcome.error
        return err
    if isinstance(outcome, CancelledFailure):
        return RequestCancelledError(
            f"Request{where} was cancelled before dispatch",
            outcome=outcome,
            label=label,
        )
    raise InternalError(
        f"Not a failure outcome: {type(outcome).__name__}",
        hint="This is a Corral internal error. Please report it.",
    )


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
