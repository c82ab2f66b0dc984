"""PoolResult: one mapped value per submitted label."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from corral.outcome import CancelledFailure, is_failure

if TYPE_CHECKING:
    from collections.abc import Iterator

    from corral.outcome import Outcome


class PoolResult(Mapping[str, Any]):
    """Read-only mapping of label to mapped value.

    Iteration follows batch order. ``outcomes`` keeps the raw outcome for
    each label (before any mapper ran) and ``metrics`` summarizes the run.

    Metrics keys: ``duration_s``, ``n_requests``, ``concurrency``,
    ``peak_in_flight``, ``n_failed``, ``n_cancelled``.
    """

    __slots__ = ("_metrics", "_outcomes", "_values")

    def __init__(
        self,
        values: Mapping[str, Any],
        outcomes: Mapping[str, Outcome],
        *,
        metrics: Mapping[str, Any] | None = None,
    ) -> None:
        self._values = MappingProxyType(dict(values))
        self._outcomes = MappingProxyType(dict(outcomes))
        self._metrics = MappingProxyType(dict(metrics or {}))

    def __getitem__(self, label: str) -> Any:
        return self._values[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"PoolResult({dict(self._values)!r})"

    @property
    def outcomes(self) -> Mapping[str, Outcome]:
        return self._outcomes

    @property
    def metrics(self) -> Mapping[str, Any]:
        return self._metrics

    def failed(self) -> list[str]:
        """Labels whose mapped value is a failure outcome."""
        return [label for label, value in self._values.items() if is_failure(value)]

    def cancelled(self) -> list[str]:
        """Labels that never left the queue."""
        return [
            label
            for label, outcome in self._outcomes.items()
            if isinstance(outcome, CancelledFailure)
        ]


def build_result(
    order: tuple[str, ...],
    values: Mapping[str, Any],
    outcomes: Mapping[str, Outcome],
    *,
    duration_s: float,
    concurrency: int,
    peak_in_flight: int,
) -> PoolResult:
    """Assemble a PoolResult in batch *order*."""
    ordered_values = {label: values[label] for label in order}
    ordered_outcomes = {label: outcomes[label] for label in order}
    n_failed = sum(1 for v in ordered_values.values() if is_failure(v))
    n_cancelled = sum(
        1 for o in ordered_outcomes.values() if isinstance(o, CancelledFailure)
    )
    return PoolResult(
        ordered_values,
        ordered_outcomes,
        metrics={
            "duration_s": duration_s,
            "n_requests": len(order),
            "concurrency": concurrency,
            "peak_in_flight": peak_in_flight,
            "n_failed": n_failed,
            "n_cancelled": n_cancelled,
        },
    )
