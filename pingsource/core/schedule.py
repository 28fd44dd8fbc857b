"""Schedule expression parsing.

Supported expressions:
- Standard five-field cron: "*/5 * * * *"
- Named descriptors: "@yearly", "@annually", "@monthly", "@weekly",
  "@daily", "@midnight", "@hourly"
- Fixed intervals: "@every 1h30m" (Go-style durations, at least 1s)
- An optional "CRON_TZ=<zone>" or "TZ=<zone>" prefix selecting the
  time zone the expression is evaluated in (UTC otherwise)
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter  # type: ignore[import-untyped]

from .exceptions import ScheduleParseError

logger = logging.getLogger(__name__)

DESCRIPTORS = frozenset(
    {
        "@yearly",
        "@annually",
        "@monthly",
        "@weekly",
        "@daily",
        "@midnight",
        "@hourly",
    }
)

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


class Schedule(ABC):
    """A parsed recurrence rule."""

    def __init__(self, expression: str, tz: tzinfo):
        self.expression = expression
        self.tz = tz

    @abstractmethod
    def next_after(self, moment: datetime) -> datetime:
        """Return the first matching instant strictly after moment.

        Args:
            moment: Timezone-aware reference time.

        Returns:
            Timezone-aware datetime in the schedule's time zone.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.expression!r})"


class CronSchedule(Schedule):
    """Five-field cron expression or named descriptor."""

    def __init__(self, expression: str, cron_expression: str, tz: tzinfo):
        super().__init__(expression, tz)
        self.cron_expression = cron_expression

    def next_after(self, moment: datetime) -> datetime:
        start = _as_aware(moment).astimezone(self.tz)
        next_at: datetime = croniter(self.cron_expression, start).get_next(datetime)
        return next_at


class IntervalSchedule(Schedule):
    """Fixed delay between activations, aligned to whole seconds."""

    def __init__(self, expression: str, interval: timedelta, tz: tzinfo):
        super().__init__(expression, tz)
        self.interval = interval

    def next_after(self, moment: datetime) -> datetime:
        start = _as_aware(moment).astimezone(self.tz)
        return start.replace(microsecond=0) + self.interval


def parse_schedule(expression: str) -> Schedule:
    """Parse a schedule expression into a recurrence rule.

    Args:
        expression: Cron expression, descriptor or "@every <duration>",
            optionally prefixed with "CRON_TZ=<zone>" or "TZ=<zone>".

    Returns:
        Parsed Schedule with at least one future instant.

    Raises:
        ScheduleParseError: If the expression is invalid or never fires.
    """
    text = (expression or "").strip()
    if not text:
        raise ScheduleParseError(expression, "empty expression")

    tz: tzinfo = timezone.utc
    if text.startswith(("CRON_TZ=", "TZ=")):
        prefix, _, rest = text.partition(" ")
        zone_name = prefix.split("=", 1)[1]
        tz = _load_zone(expression, zone_name)
        text = rest.strip()
        if not text:
            raise ScheduleParseError(expression, "missing expression after time zone")

    schedule: Schedule
    if text.startswith("@every"):
        duration = text[len("@every"):].strip()
        schedule = IntervalSchedule(expression, _parse_every(expression, duration), tz)
    elif text.startswith("@"):
        if text not in DESCRIPTORS:
            raise ScheduleParseError(expression, f"unrecognized descriptor {text}")
        schedule = CronSchedule(expression, text, tz)
    else:
        fields = text.split()
        if len(fields) != 5:
            raise ScheduleParseError(
                expression, f"expected exactly 5 fields, found {len(fields)}"
            )
        cron_expression = " ".join(fields)
        if not croniter.is_valid(cron_expression):
            raise ScheduleParseError(expression, "invalid cron fields")
        schedule = CronSchedule(expression, cron_expression, tz)

    try:
        first = schedule.next_after(datetime.now(timezone.utc))
    except (ValueError, KeyError) as e:
        raise ScheduleParseError(expression, f"no future activation: {e}") from e

    logger.debug(f"Parsed schedule {expression!r}, first activation at {first.isoformat()}")
    return schedule


def _load_zone(expression: str, zone_name: str) -> tzinfo:
    if not zone_name:
        raise ScheduleParseError(expression, "empty time zone")
    try:
        return ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ScheduleParseError(expression, f"unknown time zone {zone_name}") from e


def _parse_every(expression: str, duration: str) -> timedelta:
    if not duration:
        raise ScheduleParseError(expression, "missing duration for @every")

    pos = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(duration):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(duration):
        raise ScheduleParseError(expression, f"invalid duration {duration}")

    # Sub-second precision is not supported; truncate like cron does.
    whole = int(seconds)
    if whole < 1:
        raise ScheduleParseError(expression, "@every interval must be at least 1s")
    return timedelta(seconds=whole)


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment
