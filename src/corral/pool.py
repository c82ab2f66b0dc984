"""Pool coordinator: bounded-concurrency dispatch with per-label mapping."""

from __future__ import annotations

import asyncio
from collections import deque
import contextlib
from dataclasses import dataclass
import enum
import logging
import time
from typing import TYPE_CHECKING, Any

from corral.config import Config
from corral.errors import ConfigurationError, InternalError
from corral.limiter import ConcurrencyLimiter, resolve_concurrency
from corral.outcome import (
    CancelledFailure,
    ConnectionFailure,
    MappingFailure,
    StatusFailure,
    Success,
)
from corral.request import normalize_batch
from corral.result import build_result
from corral.transports._errors import describe_error

if TYPE_CHECKING:
    from collections.abc import Callable

    from corral.descriptor import RequestDescriptor
    from corral.outcome import Outcome
    from corral.request import BatchInput, PendingRequest
    from corral.result import PoolResult
    from corral.transports.base import RawResponse, Transport

logger = logging.getLogger(__name__)


class RequestState(enum.Enum):
    """Lifecycle of one request inside a batch. Transitions only move forward."""

    CREATED = "created"
    QUEUED = "queued"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    MAPPED = "mapped"
    CONSUMED = "consumed"


_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.CREATED: frozenset({RequestState.QUEUED}),
    RequestState.QUEUED: frozenset({RequestState.IN_FLIGHT, RequestState.CONSUMED}),
    RequestState.IN_FLIGHT: frozenset({RequestState.COMPLETED}),
    RequestState.COMPLETED: frozenset({RequestState.MAPPED}),
    RequestState.MAPPED: frozenset({RequestState.CONSUMED}),
    RequestState.CONSUMED: frozenset(),
}


@dataclass
class PoolHooks:
    """Optional callbacks for observers (progress, tracing, tests)."""

    on_transition: Callable[[str, RequestState, RequestState], None] | None = None


class CancelScope:
    """Cancels the not-yet-dispatched part of a batch.

    Queued requests end as ``CancelledFailure`` right away; requests already
    in flight finish normally and still land in the result.
    """

    def __init__(self, event: asyncio.Event | None = None) -> None:
        self._event = event or asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class _Entry:
    label: str
    pending: PendingRequest
    index: int
    state: RequestState = RequestState.CREATED
    outcome: Outcome | None = None


class Pool:
    """Runs labelled batches of pending requests against one transport.

    Example:
        async with Pool(config=Config(use_mock=True)) as pool:
            result = await pool.submit({"a": users.build(id=1)}, concurrency=2)
    """

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        config: Config | None = None,
        hooks: PoolHooks | None = None,
    ) -> None:
        self._config = config or Config()
        self._owns_transport = transport is None
        self._transport = transport or _get_transport(self._config)
        self._hooks = hooks or PoolHooks()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    async def __aenter__(self) -> Pool:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the transport if this pool created it."""
        if not self._owns_transport:
            return
        aclose = getattr(self._transport, "aclose", None)
        if callable(aclose):
            try:
                await aclose()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                # Cleanup should never mask the primary failure.
                logger.warning("Transport cleanup failed: %s", exc)

    async def submit(
        self,
        batch: BatchInput,
        concurrency: object = None,
        *,
        cancel: CancelScope | asyncio.Event | None = None,
    ) -> PoolResult:
        """Run every request in *batch* and return one mapped value per label.

        Args:
            batch: Mapping of label to ``PendingRequest``, or an iterable of
                labelled requests / ``(label, request)`` pairs.
            concurrency: Positive int, ``UNLIMITED``, or None for the
                configured default.
            cancel: Optional scope; cancelling it drops queued requests.

        Returns:
            PoolResult with exactly one entry per submitted label.

        Raises:
            DuplicateLabelError: If labels repeat. Nothing is dispatched.
            InvalidConcurrencyError: If the ceiling is invalid. Nothing is
                dispatched.
        """
        pairs = normalize_batch(batch)
        ceiling = resolve_concurrency(
            concurrency,
            n_requests=len(pairs),
            default=self._config.concurrency,
        )
        scope = _as_scope(cancel)
        limiter = ConcurrencyLimiter(ceiling)
        entries = [
            _Entry(label=label, pending=pending, index=i)
            for i, (label, pending) in enumerate(pairs)
        ]

        start_time = time.perf_counter()
        logger.debug("Submitting %d request(s) concurrency=%d", len(entries), ceiling)

        values: dict[str, Any] = {}
        queue: deque[_Entry] = deque()
        for entry in entries:
            self._advance(entry, RequestState.QUEUED)
            queue.append(entry)

        in_flight: dict[asyncio.Task[RawResponse], _Entry] = {}
        cancel_waiter: asyncio.Task[None] | None = None

        try:
            while queue or in_flight:
                if scope is not None and scope.cancelled:
                    self._cancel_queued(queue, values)
                self._dispatch(queue, in_flight, limiter)
                if not in_flight:
                    continue

                waiters: set[asyncio.Task[Any]] = set(in_flight)
                if scope is not None and queue and not scope.cancelled:
                    if cancel_waiter is None:
                        cancel_waiter = asyncio.create_task(scope.wait())
                    waiters.add(cancel_waiter)

                done, _ = await asyncio.wait(
                    waiters, return_when=asyncio.FIRST_COMPLETED
                )

                completed = sorted(
                    ((in_flight.pop(task), task) for task in done if task in in_flight),
                    key=lambda pair: pair[0].index,
                )
                # Free every finished slot before any mapper runs.
                for entry, task in completed:
                    entry.outcome = _classify(task)
                    limiter.release()
                    self._advance(entry, RequestState.COMPLETED)
                    logger.debug(
                        "Completed %r: %s", entry.label, type(entry.outcome).__name__
                    )
                if scope is not None and scope.cancelled:
                    self._cancel_queued(queue, values)
                self._dispatch(queue, in_flight, limiter)

                for entry, _task in completed:
                    values[entry.label] = self._map(entry)
        except asyncio.CancelledError:
            self._cancel_queued(queue, values)
            logger.debug(
                "Batch cancelled; draining %d in-flight request(s)", len(in_flight)
            )
            await _drain(list(in_flight))
            raise
        except BaseException:
            for task in in_flight:
                task.cancel()
            await _drain(list(in_flight))
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if len(values) != len(entries):
            missing = [e.label for e in entries if e.label not in values]
            raise InternalError(
                f"Batch finished without results for: {missing}",
                hint="This is a Corral internal error. Please report it.",
            )

        for entry in entries:
            if entry.state is RequestState.MAPPED:
                self._advance(entry, RequestState.CONSUMED)

        result = build_result(
            tuple(e.label for e in entries),
            values,
            {e.label: e.outcome for e in entries if e.outcome is not None},
            duration_s=time.perf_counter() - start_time,
            concurrency=ceiling,
            peak_in_flight=limiter.peak,
        )
        logger.debug(
            "Batch done: %d request(s) failed=%d cancelled=%d in %.3fs",
            len(entries),
            result.metrics["n_failed"],
            result.metrics["n_cancelled"],
            result.metrics["duration_s"],
        )
        return result

    def _dispatch(
        self,
        queue: deque[_Entry],
        in_flight: dict[asyncio.Task[RawResponse], _Entry],
        limiter: ConcurrencyLimiter,
    ) -> None:
        """Start queued requests in FIFO order while capacity remains."""
        while queue and limiter.has_capacity():
            entry = queue.popleft()
            limiter.acquire()
            self._advance(entry, RequestState.IN_FLIGHT)
            task = asyncio.create_task(
                self._transmit(entry.pending.descriptor),
                name=f"corral:{entry.label}",
            )
            in_flight[task] = entry

    def _cancel_queued(self, queue: deque[_Entry], values: dict[str, Any]) -> None:
        while queue:
            entry = queue.popleft()
            entry.outcome = CancelledFailure()
            values[entry.label] = entry.outcome
            self._advance(entry, RequestState.CONSUMED)
            logger.debug("Cancelled queued request %r", entry.label)

    def _map(self, entry: _Entry) -> Any:
        if entry.outcome is None:
            raise InternalError(
                f"Mapping {entry.label!r} before it completed",
                hint="This is a Corral internal error. Please report it.",
            )
        value = entry.pending.map_outcome(entry.outcome)
        if isinstance(value, MappingFailure):
            logger.warning(
                "Mapper for %r failed: %s: %s",
                entry.label,
                type(value.error).__name__,
                value.error,
            )
        self._advance(entry, RequestState.MAPPED)
        return value

    async def _transmit(self, descriptor: RequestDescriptor) -> RawResponse:
        guard_s = descriptor.timeout_s or self._config.timeout_s
        deadline = asyncio.timeout(guard_s)
        try:
            async with deadline:
                return await self._transport.send(descriptor)
        except TimeoutError as e:
            if deadline.expired():
                raise TimeoutError(f"no response within {guard_s:g}s") from e
            raise

    def _advance(self, entry: _Entry, new: RequestState) -> None:
        old = entry.state
        if new not in _TRANSITIONS[old]:
            raise InternalError(
                f"Illegal transition for {entry.label!r}: {old.value} -> {new.value}",
                hint="This is a Corral internal error. Please report it.",
            )
        entry.state = new
        if self._hooks.on_transition is not None:
            self._hooks.on_transition(entry.label, old, new)


async def submit(
    batch: BatchInput,
    concurrency: object = None,
    *,
    config: Config | None = None,
    transport: Transport | None = None,
    cancel: CancelScope | asyncio.Event | None = None,
    hooks: PoolHooks | None = None,
) -> PoolResult:
    """Run a labelled batch through a short-lived pool.

    Example:
        result = await submit(
            {"alice": users.build(id=1), "bob": users.build(id=2)},
            concurrency=2,
        )
        print(result["alice"])
    """
    async with Pool(transport, config=config, hooks=hooks) as pool:
        return await pool.submit(batch, concurrency, cancel=cancel)


def _classify(task: asyncio.Task[RawResponse]) -> Outcome:
    """Turn a finished transport task into a raw outcome."""
    try:
        response = task.result()
    except asyncio.CancelledError:
        return ConnectionFailure("cancelled: transport call was cancelled")
    except Exception as exc:
        return ConnectionFailure(describe_error(exc), error=exc)

    status = getattr(response, "status_code", None)
    if isinstance(status, bool) or not isinstance(status, int):
        return ConnectionFailure(
            f"transport: expected a response with a status code, got {type(response).__name__}"
        )
    if 200 <= status <= 299:
        return Success(response)
    return StatusFailure(
        status_code=status,
        body=getattr(response, "body", b"") or b"",
        response=response,
    )


def _as_scope(cancel: CancelScope | asyncio.Event | None) -> CancelScope | None:
    if cancel is None or isinstance(cancel, CancelScope):
        return cancel
    if isinstance(cancel, asyncio.Event):
        return CancelScope(cancel)
    raise ConfigurationError(
        f"cancel must be a CancelScope or asyncio.Event, got {type(cancel).__name__}",
        hint="Create one with CancelScope() and call .cancel() to stop queued requests.",
    )


async def _drain(tasks: list[asyncio.Task[Any]]) -> None:
    """Wait for in-flight tasks even if the caller is cancelled again."""
    if not tasks:
        return
    gathered = asyncio.gather(*tasks, return_exceptions=True)
    with contextlib.suppress(asyncio.CancelledError):
        await asyncio.shield(gathered)


def _get_transport(config: Config) -> Transport:
    """Get the default transport for *config*."""
    if config.use_mock:
        from corral.transports.mock import MockTransport

        return MockTransport()

    from corral.transports.http import HttpTransport

    return HttpTransport(config)
