"""Configuration: frozen Config with environment-resolved transport defaults."""

from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

from corral.errors import ConfigurationError, InvalidConcurrencyError
from corral.limiter import UNLIMITED, Concurrency, validate_concurrency

load_dotenv()

_ENV_TIMEOUT = "CORRAL_TIMEOUT_S"
_ENV_CONCURRENCY = "CORRAL_CONCURRENCY"
_ENV_USER_AGENT = "CORRAL_USER_AGENT"

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_CONCURRENCY = 8
DEFAULT_USER_AGENT = "corral/0.1"


@dataclass(frozen=True)
class Config:
    """Immutable transport and pool defaults.

    Unset fields resolve from ``CORRAL_TIMEOUT_S``, ``CORRAL_CONCURRENCY``
    and ``CORRAL_USER_AGENT``; explicit arguments win. Decoding choices are
    not configured here: they belong to each request's mappers.

    Example:
        config = Config(concurrency=4)
        # timeout_s comes from CORRAL_TIMEOUT_S, else 30 seconds
    """

    #: Default per-request timeout for descriptors that do not set one.
    timeout_s: float | None = None
    #: Default ceiling for ``submit()`` when none is passed.
    concurrency: Concurrency | None = None
    user_agent: str | None = None
    follow_redirects: bool = True
    #: Route requests through ``MockTransport`` instead of the network.
    use_mock: bool = False

    def __post_init__(self) -> None:
        """Resolve environment defaults and validate."""
        if self.timeout_s is None:
            object.__setattr__(self, "timeout_s", _timeout_from_env())
        if (
            isinstance(self.timeout_s, bool)
            or not isinstance(self.timeout_s, (int, float))
            or self.timeout_s <= 0
        ):
            raise ConfigurationError(
                f"timeout_s must be > 0, got {self.timeout_s!r}",
                hint="This is the default per-request timeout in seconds.",
            )

        if self.concurrency is None:
            object.__setattr__(self, "concurrency", _concurrency_from_env())
        try:
            validate_concurrency(self.concurrency)
        except InvalidConcurrencyError as e:
            raise InvalidConcurrencyError(
                self.concurrency,
                hint="This controls how many requests run in parallel by default.",
            ) from e

        if self.user_agent is None:
            object.__setattr__(
                self,
                "user_agent",
                os.environ.get(_ENV_USER_AGENT) or DEFAULT_USER_AGENT,
            )
        if not isinstance(self.user_agent, str) or not self.user_agent.strip():
            raise ConfigurationError(
                "user_agent must be a non-empty string",
                hint=f"Set {_ENV_USER_AGENT} or pass user_agent=...",
            )

    def __str__(self) -> str:
        """Return a compact, developer-friendly representation."""
        return (
            f"Config(timeout_s={self.timeout_s!r}, concurrency={self.concurrency!r}, "
            f"user_agent={self.user_agent!r}, use_mock={self.use_mock})"
        )

    __repr__ = __str__


def _timeout_from_env() -> float:
    raw = os.environ.get(_ENV_TIMEOUT)
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT_S
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{_ENV_TIMEOUT} must be a number, got {raw!r}",
            hint=f"Set {_ENV_TIMEOUT}=30 or unset it.",
        ) from e


def _concurrency_from_env() -> Concurrency:
    raw = os.environ.get(_ENV_CONCURRENCY)
    if raw is None or not raw.strip():
        return DEFAULT_CONCURRENCY
    if raw.strip().lower() == "unlimited":
        return UNLIMITED
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{_ENV_CONCURRENCY} must be an integer or 'unlimited', got {raw!r}",
            hint=f"Set {_ENV_CONCURRENCY}=8 or {_ENV_CONCURRENCY}=unlimited.",
        ) from e
