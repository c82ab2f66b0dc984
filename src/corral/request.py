"""Pending requests and batch normalization."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from corral.continuation import Continuation
from corral.descriptor import RequestDescriptor
from corral.errors import ConfigurationError, DuplicateLabelError

if TYPE_CHECKING:
    from collections.abc import Callable

    from corral.outcome import Outcome


@dataclass(frozen=True, slots=True)
class PendingRequest:
    """A descriptor plus the continuation that maps its outcome.

    Handles are immutable and reusable: ``then()`` returns a new handle, and
    the same handle may be submitted in any number of batches.
    """

    descriptor: RequestDescriptor
    continuation: Continuation = field(default_factory=Continuation)
    label: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.descriptor, RequestDescriptor):
            raise ConfigurationError(
                f"Expected RequestDescriptor, got {type(self.descriptor).__name__}",
                hint="Use RequestDescriptor.create(...) or Endpoint.build(...).",
            )

    def then(self, mapper: Callable[[Any], Any]) -> PendingRequest:
        """Return a copy with *mapper* appended to the continuation."""
        return replace(self, continuation=self.continuation.then(mapper))

    def with_label(self, label: str) -> PendingRequest:
        return replace(self, label=label)

    def map_outcome(self, outcome: Outcome) -> Any:
        """Apply this request's continuation to its raw *outcome*."""
        return self.continuation.apply(outcome)


BatchInput = (
    Mapping[str, PendingRequest]
    | Iterable[PendingRequest]
    | Iterable[tuple[str, PendingRequest]]
)


def normalize_batch(batch: BatchInput) -> tuple[tuple[str, PendingRequest], ...]:
    """Validate and normalize *batch* into ordered ``(label, request)`` pairs.

    Args:
        batch: A mapping of label to request, an iterable of labelled
            requests, or an iterable of ``(label, request)`` pairs.

    Returns:
        Pairs in insertion order, which is the FIFO dispatch order.

    Raises:
        DuplicateLabelError: If a label occurs more than once.
        ConfigurationError: If an entry is not a PendingRequest or a label
            is missing or empty.
    """
    if isinstance(batch, (str, bytes)):
        raise ConfigurationError(
            f"batch must be a mapping or iterable of requests, got {type(batch).__name__}",
            hint="Pass {'label': pending_request, ...}.",
        )

    pairs: list[tuple[str, PendingRequest]] = []
    if isinstance(batch, Mapping):
        for label, pending in batch.items():
            pairs.append((label, _require_pending(pending, label)))
    else:
        try:
            items = list(batch)
        except TypeError as e:
            raise ConfigurationError(
                f"batch must be a mapping or iterable of requests, got {type(batch).__name__}",
                hint="Pass {'label': pending_request, ...}.",
            ) from e
        for i, item in enumerate(items):
            if isinstance(item, PendingRequest):
                if item.label is None:
                    raise ConfigurationError(
                        f"batch[{i}] has no label",
                        hint="Build it with label=... or submit a mapping of label to request.",
                    )
                pairs.append((item.label, item))
            elif isinstance(item, tuple) and len(item) == 2:
                label, pending = item
                pairs.append((label, _require_pending(pending, label)))
            else:
                raise ConfigurationError(
                    f"batch[{i}] must be a PendingRequest or (label, PendingRequest), "
                    f"got {type(item).__name__}",
                    hint="Use Endpoint.build(label=...) or pass (label, request) pairs.",
                )

    for label, _ in pairs:
        if not isinstance(label, str) or not label.strip():
            raise ConfigurationError(
                f"Labels must be non-empty strings, got {label!r}",
                hint="Give every request a short, unique string label.",
            )

    counts = Counter(label for label, _ in pairs)
    duplicates = [label for label, n in counts.items() if n > 1]
    if duplicates:
        raise DuplicateLabelError(duplicates)

    return tuple(pairs)


def _require_pending(value: object, label: object) -> PendingRequest:
    if isinstance(value, RequestDescriptor):
        return PendingRequest(value)
    if not isinstance(value, PendingRequest):
        raise ConfigurationError(
            f"Entry {label!r} must be a PendingRequest, got {type(value).__name__}",
            hint="Wrap descriptors with PendingRequest(descriptor) or use Endpoint.build().",
        )
    return value
