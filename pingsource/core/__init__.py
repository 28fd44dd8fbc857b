"""Core domain logic for the ping source.

This package holds the event model, payload interpretation, schedule
parsing and the emitter. Transports and the scheduling loop live in
the adapters package.
"""

from .exceptions import EventDataError, PingSourceError, ScheduleParseError, SendError
from .models import (
    AdapterIdentity,
    CloudEvent,
    EventBody,
    RetryPolicy,
    StructuredBody,
    TickResult,
    WrappedBody,
)

__all__ = [
    "AdapterIdentity",
    "CloudEvent",
    "EventBody",
    "EventDataError",
    "PingSourceError",
    "RetryPolicy",
    "ScheduleParseError",
    "SendError",
    "StructuredBody",
    "TickResult",
    "WrappedBody",
]
