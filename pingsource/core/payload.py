"""Payload interpretation for ping events."""

import json
import math

from .models import EventBody, StructuredBody, WrappedBody


def _reject_constant(name: str) -> float:
    raise ValueError(f"{name} is not valid JSON")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"number {text} is out of range")
    return value


def interpret_payload(payload: str) -> EventBody:
    """Decide how a configured payload becomes the event body.

    JSON object text is passed through as structured data. Anything else
    (plain text, malformed JSON, arrays, scalars, null) is wrapped as
    {"body": payload}. NaN, Infinity and numbers too large for a float
    count as malformed, so the result always encodes. Never raises.
    """
    try:
        parsed = json.loads(
            payload,
            parse_constant=_reject_constant,
            parse_float=_parse_finite_float,
        )
    except (TypeError, ValueError):
        return WrappedBody(body=payload)

    if isinstance(parsed, dict):
        return StructuredBody(fields=parsed)
    return WrappedBody(body=payload)
