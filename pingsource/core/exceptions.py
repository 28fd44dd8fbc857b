"""Exceptions raised by the ping source core.

Only ScheduleParseError crosses the adapter boundary; the others are
raised and handled inside a single tick.
"""


class PingSourceError(Exception):
    """Base class for ping source errors."""


class ScheduleParseError(PingSourceError, ValueError):
    """The schedule expression cannot be turned into a recurrence rule."""

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"unparseable schedule {expression!r}: {reason}")


class EventDataError(PingSourceError):
    """Event data could not be serialized into the envelope."""


class SendError(PingSourceError):
    """An event sender failed to deliver an event.

    Attributes:
        retryable: Whether another attempt may succeed.
        status_code: HTTP status returned by the sink, if any.
    """

    def __init__(
        self,
        message: str,
        retryable: bool = True,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code
