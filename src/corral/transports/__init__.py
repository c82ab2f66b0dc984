"""Transport implementations."""

from .base import RawResponse, Transport
from .http import HttpTransport, build_async_client
from .mock import MockTransport

__all__ = [
    "HttpTransport",
    "MockTransport",
    "RawResponse",
    "Transport",
    "build_async_client",
]
