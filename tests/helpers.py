"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off transport classes as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import json
from typing import Any

from corral.descriptor import RequestDescriptor
from corral.transports.base import RawResponse

BASE = "https://svc.test"


def url(path: str) -> str:
    return f"{BASE}/{path.lstrip('/')}"


@dataclass
class Reply:
    """One scripted answer: a response after *delay_s*, or *error*."""

    status: int = 200
    body: Any = b""
    delay_s: float = 0.0
    error: BaseException | None = None

    def encode(self) -> tuple[bytes, dict[str, str]]:
        if isinstance(self.body, bytes):
            return self.body, {"content-type": "application/octet-stream"}
        if isinstance(self.body, str):
            return self.body.encode("utf-8"), {"content-type": "text/plain"}
        return json.dumps(self.body).encode("utf-8"), {
            "content-type": "application/json"
        }


@dataclass
class ScriptedTransport:
    """Transport double that answers from a per-URL script.

    Tracks the in-flight count the transport itself observes so tests can
    assert the ceiling from the outside.
    """

    replies: dict[str, Reply] = field(default_factory=dict)
    default: Reply = field(default_factory=Reply)
    sent: list[str] = field(default_factory=list)
    finished: list[str] = field(default_factory=list)
    in_flight: int = 0
    max_in_flight: int = 0
    closed: bool = False

    def script(self, path: str, **kwargs: Any) -> str:
        target = url(path)
        self.replies[target] = Reply(**kwargs)
        return target

    async def send(self, descriptor: RequestDescriptor) -> RawResponse:
        self.sent.append(descriptor.target)
        reply = self.replies.get(descriptor.target, self.default)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if reply.delay_s:
                await asyncio.sleep(reply.delay_s)
            if reply.error is not None:
                raise reply.error
            body, headers = reply.encode()
            return RawResponse(
                status_code=reply.status,
                body=body,
                headers=headers,
                url=descriptor.target,
            )
        finally:
            self.in_flight -= 1
            self.finished.append(descriptor.target)

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class GateTransport:
    """Transport double whose calls block until the test opens their gate."""

    started: dict[str, asyncio.Event] = field(default_factory=dict)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    sent: list[str] = field(default_factory=list)
    finished: list[str] = field(default_factory=list)

    def gate(self, target: str) -> asyncio.Event:
        return self.gates.setdefault(target, asyncio.Event())

    def started_event(self, target: str) -> asyncio.Event:
        return self.started.setdefault(target, asyncio.Event())

    async def send(self, descriptor: RequestDescriptor) -> RawResponse:
        target = descriptor.target
        self.sent.append(target)
        self.started_event(target).set()
        await self.gate(target).wait()
        self.finished.append(target)
        return RawResponse(status_code=200, body=b'{"ok": true}', url=target)


def get(path: str, **kwargs: Any) -> RequestDescriptor:
    """Shorthand for a GET descriptor against the test host."""
    return RequestDescriptor.create(url(path), **kwargs)
