"""Shared transport-side error helpers.

Transports raise whatever their HTTP library raises; the pool turns that
into a ``ConnectionFailure`` whose reason is built here, so callers can tell
a timeout from a refused connection without substring matching on messages.
"""

from __future__ import annotations

import asyncio

import httpx

from corral.errors import _walk_exception_chain

TIMEOUT = "timeout"
CONNECT = "connect"
PROTOCOL = "protocol"
NETWORK = "network"
TRANSPORT = "transport"


def classify_error(exc: BaseException) -> str:
    """Return a stable failure kind for a transport exception."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    chain = list(_walk_exception_chain(exc))
    for e in chain:
        if isinstance(e, (httpx.TimeoutException, TimeoutError)):
            return TIMEOUT
    for e in chain:
        if isinstance(e, httpx.ConnectError) or isinstance(e, ConnectionError):
            return CONNECT
        if isinstance(e, (httpx.RemoteProtocolError, httpx.LocalProtocolError)):
            return PROTOCOL
        if isinstance(e, (httpx.NetworkError, OSError)):
            return NETWORK
    return TRANSPORT


def describe_error(exc: BaseException) -> str:
    """Return ``"<kind>: <detail>"`` for a transport exception."""
    kind = classify_error(exc)
    detail = str(exc) or type(exc).__name__
    return f"{kind}: {detail}"
