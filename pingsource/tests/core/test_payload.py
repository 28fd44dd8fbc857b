"""Unit tests for payload interpretation."""

import pytest

from pingsource.core.models import StructuredBody, WrappedBody
from pingsource.core.payload import interpret_payload


def test_json_object_becomes_structured_body() -> None:
    """A JSON object payload is passed through as a mapping."""
    body = interpret_payload('{"a":1}')
    assert isinstance(body, StructuredBody)
    assert body.to_data() == {"a": 1}


def test_nested_object_preserved() -> None:
    """Nested JSON values survive unchanged."""
    body = interpret_payload('{"msg": "hi", "tags": ["x", "y"], "meta": {"n": null}}')
    assert body.to_data() == {"msg": "hi", "tags": ["x", "y"], "meta": {"n": None}}


def test_plain_text_is_wrapped() -> None:
    """Non-JSON payloads are wrapped as {"body": ...}."""
    body = interpret_payload("not json")
    assert isinstance(body, WrappedBody)
    assert body.to_data() == {"body": "not json"}


@pytest.mark.parametrize(
    "payload",
    ["[1,2,3]", "42", '"quoted"', "true", "null", '{"a":', "", "   "],
)
def test_non_object_payloads_are_wrapped(payload: str) -> None:
    """Arrays, scalars, null, malformed and empty input fall back to wrapping."""
    body = interpret_payload(payload)
    assert body == WrappedBody(body=payload)
    assert body.to_data() == {"body": payload}


def test_interpretation_is_idempotent() -> None:
    """Interpreting the same string twice gives equal results."""
    for payload in ('{"a": {"b": 2}}', "plain", "[1]"):
        assert interpret_payload(payload) == interpret_payload(payload)
        assert interpret_payload(payload).to_data() == interpret_payload(payload).to_data()


def test_each_call_returns_fresh_mapping() -> None:
    """Mutating one result's data never affects the next."""
    first = interpret_payload('{"a": 1}').to_data()
    first["a"] = 99
    assert interpret_payload('{"a": 1}').to_data() == {"a": 1}


@pytest.mark.parametrize(
    "payload",
    [
        '{"value": NaN}',
        '{"v": Infinity}',
        '{"v": -Infinity}',
        '{"a": 1e400}',
        '{"nested": {"b": [1, -1e999]}}',
    ],
)
def test_non_finite_numbers_are_wrapped(payload: str) -> None:
    """Payloads that would not re-encode as JSON fall back to wrapping."""
    body = interpret_payload(payload)
    assert body == WrappedBody(body=payload)
    assert body.to_data() == {"body": payload}


def test_large_finite_numbers_stay_structured() -> None:
    """Ordinary floats and big integers are still passed through."""
    body = interpret_payload('{"f": 1.5e300, "i": 100000000000000000000000}')
    assert isinstance(body, StructuredBody)
    assert body.to_data() == {"f": 1.5e300, "i": 100000000000000000000000}
