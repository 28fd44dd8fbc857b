"""Ping source adapter facade.

Binds one schedule and one payload to an event sender and exposes the
single process control surface, start(stop_event).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timezone

from pingsource.adapters.scheduler.cron import CronScheduler
from pingsource.core.emitter import EventEmitter
from pingsource.core.models import AdapterIdentity, RetryPolicy
from pingsource.core.ports import EventSenderPort
from pingsource.core.schedule import parse_schedule

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PingSourceAdapter:
    """Emits the configured payload on every schedule instant."""

    def __init__(
        self,
        schedule: str,
        payload: str,
        identity: AdapterIdentity,
        sender: EventSenderPort,
        retry_policy: RetryPolicy | None = None,
        extensions: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the adapter.

        Args:
            schedule: Cron expression such as "0 * * * *" or "@hourly".
            payload: Data posted to the sink on every tick.
            identity: Name, namespace and resource group of this source.
            sender: EventSenderPort used to deliver events.
            retry_policy: Backoff policy for a single delivery.
            extensions: Extra CloudEvent attributes added to every event.
            clock: Source of the current wall-clock time.
            sleep: Coroutine used for schedule waits and retry backoff.
        """
        self.schedule = schedule
        self.payload = payload
        self.identity = identity
        self.sender = sender
        self.emitter = EventEmitter(
            identity=identity,
            payload=payload,
            sender=sender,
            retry_policy=retry_policy,
            extensions=extensions,
            clock=clock,
            sleep=sleep,
        )
        self._clock = clock
        self._sleep = sleep
        self.scheduler: CronScheduler | None = None

    async def start(self, stop_event: asyncio.Event) -> None:
        """Run until stop_event is set.

        Raises:
            ScheduleParseError: If the schedule cannot be parsed. No event
                is emitted in that case.
        """
        parsed = parse_schedule(self.schedule)

        self.scheduler = CronScheduler(
            parsed, self.emitter, clock=self._clock, sleep=self._sleep
        )
        logger.info(
            f"Ping source {self.identity.namespace}/{self.identity.name} "
            f"emitting on {self.schedule!r} as {self.identity.source}",
            extra={"resource_group": self.identity.resource_group},
        )

        await self.scheduler.run(stop_event)

        stats = self.emitter.stats()
        logger.info(
            f"Ping source stopped: {stats['ticks']} tick(s), "
            f"{stats['delivered']} delivered, {stats['failed']} failed"
        )
