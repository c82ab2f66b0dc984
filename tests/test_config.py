"""Config resolution and validation tests."""

from __future__ import annotations

import dataclasses

import pytest

from corral import UNLIMITED, Config
from corral.config import DEFAULT_CONCURRENCY, DEFAULT_TIMEOUT_S, DEFAULT_USER_AGENT
from corral.errors import ConfigurationError, InvalidConcurrencyError

pytestmark = pytest.mark.unit


def test_defaults_without_environment() -> None:
    config = Config()

    assert config.timeout_s == DEFAULT_TIMEOUT_S
    assert config.concurrency == DEFAULT_CONCURRENCY
    assert config.user_agent == DEFAULT_USER_AGENT
    assert config.follow_redirects is True
    assert config.use_mock is False


def test_environment_fills_unset_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORRAL_TIMEOUT_S", "2.5")
    monkeypatch.setenv("CORRAL_CONCURRENCY", "3")
    monkeypatch.setenv("CORRAL_USER_AGENT", "tests/1.0")

    config = Config()

    assert config.timeout_s == 2.5
    assert config.concurrency == 3
    assert config.user_agent == "tests/1.0"


def test_explicit_arguments_override_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("CORRAL_TIMEOUT_S", "2.5")
    monkeypatch.setenv("CORRAL_CONCURRENCY", "3")

    config = Config(timeout_s=9.0, concurrency=1)

    assert config.timeout_s == 9.0
    assert config.concurrency == 1


@pytest.mark.parametrize("raw", ["unlimited", "UNLIMITED", " Unlimited "])
def test_unlimited_from_environment(monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("CORRAL_CONCURRENCY", raw)

    assert Config().concurrency is UNLIMITED


def test_blank_environment_values_use_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORRAL_TIMEOUT_S", " ")
    monkeypatch.setenv("CORRAL_CONCURRENCY", "")

    config = Config()

    assert config.timeout_s == DEFAULT_TIMEOUT_S
    assert config.concurrency == DEFAULT_CONCURRENCY


@pytest.mark.parametrize(
    ("var", "raw"),
    [("CORRAL_TIMEOUT_S", "soon"), ("CORRAL_CONCURRENCY", "many")],
)
def test_unparseable_environment_values(
    monkeypatch: pytest.MonkeyPatch, var: str, raw: str
) -> None:
    monkeypatch.setenv(var, raw)

    with pytest.raises(ConfigurationError, match=var) as exc:
        Config()
    assert exc.value.hint


def test_zero_concurrency_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORRAL_CONCURRENCY", "0")

    with pytest.raises(InvalidConcurrencyError) as exc:
        Config()
    assert "parallel" in (exc.value.hint or "")


@pytest.mark.parametrize(
    "kwargs",
    [{"timeout_s": 0}, {"timeout_s": -1}, {"timeout_s": True}, {"user_agent": "  "}],
)
def test_invalid_arguments(kwargs: dict[str, object]) -> None:
    with pytest.raises(ConfigurationError):
        Config(**kwargs)  # type: ignore[arg-type]


def test_config_is_frozen() -> None:
    config = Config(timeout_s=1.0)

    with pytest.raises(dataclasses.FrozenInstanceError):
        config.timeout_s = 2.0  # type: ignore[misc]


def test_str_is_compact() -> None:
    text = str(Config(timeout_s=1.0, concurrency=UNLIMITED, user_agent="ua"))

    assert text == "Config(timeout_s=1.0, concurrency=UNLIMITED, user_agent='ua', use_mock=False)"
