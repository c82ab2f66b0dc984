"""Concurrency ceiling resolution and the in-flight counter.

Keeps a single source of truth for how batch fan-out is bounded.
"""

from __future__ import annotations

import enum
from typing import Final

from corral.errors import InternalError, InvalidConcurrencyError


class _Unlimited(enum.Enum):
    UNLIMITED = "unlimited"

    def __repr__(self) -> str:
        return "UNLIMITED"


#: Sentinel ceiling: dispatch the whole batch at once.
UNLIMITED: Final = _Unlimited.UNLIMITED

Concurrency = int | _Unlimited


def validate_concurrency(value: object) -> Concurrency:
    """Return *value* when it is a valid ceiling, else raise.

    Valid ceilings are positive ``int`` values (``bool`` excluded) and
    ``UNLIMITED``.
    """
    if value is UNLIMITED:
        return UNLIMITED
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidConcurrencyError(value)
    return value


def resolve_concurrency(
    requested: object,
    *,
    n_requests: int,
    default: Concurrency,
) -> int:
    """Resolve the effective ceiling for a batch.

    Priority:
    1) Explicit *requested* ceiling when not ``None``.
    2) The configured *default*.
    ``UNLIMITED`` becomes the batch size (at least 1).
    """
    ceiling = validate_concurrency(default if requested is None else requested)
    if ceiling is UNLIMITED:
        return max(1, n_requests)
    return ceiling


class ConcurrencyLimiter:
    """Counts in-flight requests against a ceiling.

    Owned and mutated by the single coordinating task, so plain integer
    updates are atomic with respect to every completion it observes.
    """

    __slots__ = ("_ceiling", "_in_flight", "_peak")

    def __init__(self, ceiling: int) -> None:
        if isinstance(ceiling, bool) or not isinstance(ceiling, int) or ceiling <= 0:
            raise InvalidConcurrencyError(ceiling)
        self._ceiling = ceiling
        self._in_flight = 0
        self._peak = 0

    @property
    def ceiling(self) -> int:
        return self._ceiling

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak(self) -> int:
        """Highest in-flight count observed so far."""
        return self._peak

    @property
    def available(self) -> int:
        return self._ceiling - self._in_flight

    def has_capacity(self) -> bool:
        return self._in_flight < self._ceiling

    def acquire(self) -> None:
        if self._in_flight >= self._ceiling:
            raise InternalError(
                f"acquire() past ceiling {self._ceiling}",
                hint="This is a Corral internal error. Please report it.",
            )
        self._in_flight += 1
        self._peak = max(self._peak, self._in_flight)

    def release(self) -> None:
        if self._in_flight <= 0:
            raise InternalError(
                "release() without a matching acquire()",
                hint="This is a Corral internal error. Please report it.",
            )
        self._in_flight -= 1

    def __repr__(self) -> str:
        return (
            f"ConcurrencyLimiter(ceiling={self._ceiling}, "
            f"in_flight={self._in_flight}, peak={self._peak})"
        )
