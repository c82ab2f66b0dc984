"""Continuation tests: composition law, failure short-circuit, mapper helpers."""

from __future__ import annotations

from typing import Any

from hypothesis import given
from hypothesis import strategies as st
from pydantic import BaseModel, ValidationError
import pytest

from corral import (
    ConnectionFailure,
    Continuation,
    MappingFailure,
    PendingRequest,
    StatusFailure,
    Success,
    attach_mapper,
    compose,
    decode_json,
    decode_model,
    decode_text,
    expect_status,
    on_success,
    unwrap,
)
from corral.errors import ConfigurationError, ConnectionFailedError, StatusError
from corral.transports.base import RawResponse
from tests.helpers import get

pytestmark = pytest.mark.unit


def _response(status: int = 200, body: bytes = b"{}", **headers: str) -> RawResponse:
    return RawResponse(status_code=status, body=body, headers=headers)


class User(BaseModel):
    id: int
    name: str


# =============================================================================
# Composition
# =============================================================================

_FUNCS: list[Any] = [
    lambda x: x + 1,
    lambda x: x * 2,
    lambda x: x - 3,
    lambda x: -x,
    lambda x: x // 2,
]


@given(
    start=st.integers(min_value=-1000, max_value=1000),
    picks=st.lists(st.integers(min_value=0, max_value=len(_FUNCS) - 1), max_size=6),
)
def test_chained_attach_equals_composed_attach(start: int, picks: list[int]) -> None:
    """attach(attach(p, f), g) maps like attach(p, compose(f, g))."""
    funcs = [_FUNCS[i] for i in picks]
    base = PendingRequest(get("x"))

    chained = base
    for fn in funcs:
        chained = attach_mapper(chained, fn)
    composed = attach_mapper(base, compose(*funcs))

    outcome: Any = start
    assert chained.map_outcome(outcome) == composed.map_outcome(outcome)


def test_empty_continuation_is_identity() -> None:
    outcome = ConnectionFailure("connect: refused")

    assert Continuation().apply(outcome) is outcome
    assert PendingRequest(get("x")).map_outcome(outcome) is outcome


def test_attach_mapper_returns_new_handle() -> None:
    base = PendingRequest(get("x"))

    extended = attach_mapper(base, decode_json)

    assert extended is not base
    assert base.continuation.mappers == ()
    assert extended.continuation.mappers == (decode_json,)
    assert extended.descriptor is base.descriptor


def test_mappers_run_in_attachment_order() -> None:
    calls: list[str] = []

    def first(value: Any) -> Any:
        calls.append("first")
        return value

    def second(value: Any) -> Any:
        calls.append("second")
        return value

    Continuation().then(first).then(second).apply(Success(_response()))

    assert calls == ["first", "second"]


def test_raising_mapper_stops_chain_with_mapping_failure() -> None:
    later: list[Any] = []

    def boom(_: Any) -> Any:
        raise ValueError("bad shape")

    result = Continuation().then(boom).then(later.append).apply(Success(_response()))

    assert isinstance(result, MappingFailure)
    assert isinstance(result.error, ValueError)
    assert later == []


def test_non_callable_mapper_is_rejected() -> None:
    with pytest.raises(ConfigurationError, match="callable"):
        Continuation().then("decode_json")  # type: ignore[arg-type]


def test_compose_has_readable_name() -> None:
    assert compose(decode_json, decode_text).__name__ == "compose(decode_json, decode_text)"


# =============================================================================
# Mapper Helpers
# =============================================================================


class TestOnSuccess:
    def test_applies_to_success_payload(self) -> None:
        mapper = on_success(lambda r: r.status_code)

        assert mapper(Success(_response(201))) == 201

    def test_passes_failures_through(self) -> None:
        failure = StatusFailure(status_code=500)
        mapper = on_success(lambda r: pytest.fail("should not run"))

        assert mapper(failure) is failure

    def test_applies_to_plain_values_from_earlier_mappers(self) -> None:
        mapper = on_success(lambda d: d["id"])

        assert mapper({"id": 7}) == 7


class TestDecoders:
    def test_decode_json(self) -> None:
        assert decode_json(Success(_response(body=b'{"a": [1, 2]}'))) == {"a": [1, 2]}

    def test_decode_json_invalid_body_becomes_mapping_failure(self) -> None:
        result = Continuation().then(decode_json).apply(Success(_response(body=b"<html>")))

        assert isinstance(result, MappingFailure)

    def test_decode_text_uses_declared_charset(self) -> None:
        response = _response(
            body="café".encode("latin-1"),
            **{"Content-Type": "text/plain; charset=latin-1"},
        )

        assert decode_text(Success(response)) == "café"

    def test_decode_model(self) -> None:
        mapper = decode_model(User)

        user = mapper(Success(_response(body=b'{"id": 1, "name": "ada"}')))

        assert user == User(id=1, name="ada")

    def test_decode_model_accepts_decoded_dict(self) -> None:
        chain = Continuation().then(decode_json).then(decode_model(User))

        assert chain.apply(Success(_response(body=b'{"id": 2, "name": "bo"}'))) == User(
            id=2, name="bo"
        )

    def test_decode_model_validation_error_is_captured(self) -> None:
        chain = Continuation().then(decode_model(User))

        result = chain.apply(Success(_response(body=b'{"id": "x"}')))

        assert isinstance(result, MappingFailure)
        assert isinstance(result.error, ValidationError)


class TestExpectStatus:
    def test_listed_status_passes(self) -> None:
        outcome = Success(_response(201))

        assert expect_status(201)(outcome) is outcome

    def test_unlisted_success_becomes_status_failure(self) -> None:
        result = expect_status(201)(Success(_response(200, body=b"ok")))

        assert result == StatusFailure(status_code=200, body=b"ok")

    def test_listed_failure_status_becomes_success(self) -> None:
        response = _response(404, body=b"")
        failure = StatusFailure(status_code=404, response=response)

        result = expect_status(200, 404)(failure)

        assert isinstance(result, Success)
        assert result.payload is response

    def test_other_failures_pass_through(self) -> None:
        failure = ConnectionFailure("timeout: slow")

        assert expect_status(200)(failure) is failure


class TestUnwrap:
    def test_returns_success_payload(self) -> None:
        assert unwrap(Success(5)) == 5

    def test_passes_plain_values(self) -> None:
        assert unwrap({"a": 1}) == {"a": 1}

    def test_raises_typed_error_for_failures(self) -> None:
        with pytest.raises(StatusError) as exc:
            unwrap(StatusFailure(status_code=503, body=b"down"))
        assert exc.value.status_code == 503

        with pytest.raises(ConnectionFailedError):
            unwrap(ConnectionFailure("connect: refused"))
