"""Corral: bounded-concurrency request pools with composable result mapping.

Public API:
    - submit(): Run a labelled batch with a concurrency ceiling
    - fetch(): Run one request through the same machinery
    - attach_mapper(): Append a continuation to a pending request
    - Endpoint: Per-endpoint request builder
    - Config: Configuration dataclass
"""

from __future__ import annotations

import logging

from corral.config import Config
from corral.continuation import (
    Continuation,
    attach_mapper,
    compose,
    decode_json,
    decode_model,
    decode_text,
    expect_status,
    on_success,
    unwrap,
)
from corral.descriptor import RequestDescriptor
from corral.endpoint import Endpoint, fetch
from corral.errors import (
    ConfigurationError,
    ConnectionFailedError,
    CorralError,
    DuplicateLabelError,
    InternalError,
    InvalidConcurrencyError,
    MappingError,
    RequestCancelledError,
    RequestFailedError,
    StatusError,
)
from corral.limiter import UNLIMITED, ConcurrencyLimiter
from corral.outcome import (
    CancelledFailure,
    ConnectionFailure,
    MappingFailure,
    Outcome,
    StatusFailure,
    Success,
    is_failure,
)
from corral.pool import CancelScope, Pool, PoolHooks, RequestState, submit
from corral.request import PendingRequest
from corral.result import PoolResult
from corral.transports import HttpTransport, MockTransport, RawResponse, Transport

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("corral-http")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("corral").addHandler(logging.NullHandler())

__all__ = [
    "UNLIMITED",
    "CancelScope",
    "CancelledFailure",
    "ConcurrencyLimiter",
    "Config",
    "ConfigurationError",
    "ConnectionFailedError",
    "ConnectionFailure",
    "Continuation",
    "CorralError",
    "DuplicateLabelError",
    "Endpoint",
    "HttpTransport",
    "InternalError",
    "InvalidConcurrencyError",
    "MappingError",
    "MappingFailure",
    "MockTransport",
    "Outcome",
    "PendingRequest",
    "Pool",
    "PoolHooks",
    "PoolResult",
    "RawResponse",
    "RequestCancelledError",
    "RequestDescriptor",
    "RequestFailedError",
    "RequestState",
    "StatusError",
    "StatusFailure",
    "Success",
    "Transport",
    "attach_mapper",
    "compose",
    "decode_json",
    "decode_model",
    "decode_text",
    "expect_status",
    "fetch",
    "is_failure",
    "on_success",
    "submit",
    "unwrap",
]
