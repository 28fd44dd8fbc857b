"""Cron scheduler adapter.

Implements a long-running asyncio loop that waits for each instant of a
parsed schedule and drives the TickPort at that instant.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from pingsource.core.models import TickResult
from pingsource.core.ports import TickPort
from pingsource.core.schedule import Schedule, parse_schedule

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CronScheduler:
    """Asyncio-based scheduler firing one tick per schedule instant.

    Ticks never overlap: if the previous tick is still running when the
    next instant arrives, that instant is skipped and the timeline moves
    on to the following one.
    """

    def __init__(
        self,
        schedule: Schedule,
        tick_port: TickPort,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize cron scheduler.

        Args:
            schedule: Parsed schedule to follow.
            tick_port: TickPort implementation invoked at each instant.
            clock: Source of the current wall-clock time.
            sleep: Coroutine used to wait between instants.
        """
        self.schedule = schedule
        self.tick_port = tick_port
        self.running = False
        self.ticks_started = 0
        self.ticks_skipped = 0
        self._clock = clock
        self._sleep = sleep
        self._stop_event: asyncio.Event | None = None
        self._inflight: asyncio.Task[TickResult | None] | None = None

    async def run(self, until: asyncio.Event) -> None:
        """Run the schedule until the event is set.

        Blocks the caller. Returns once the stop event has fired and any
        tick already in flight has completed.
        """
        if self.running:
            logger.warning("Cron scheduler already running")
            return

        self.running = True
        self._stop_event = until
        logger.info(f"Starting cron scheduler for schedule {self.schedule.expression!r}")

        try:
            await self._run_loop(until)
        finally:
            await self._drain()
            self.running = False
            logger.info(
                f"Cron scheduler stopped after {self.ticks_started} tick(s), "
                f"{self.ticks_skipped} skipped"
            )

    async def stop(self) -> None:
        """Request the scheduler to stop."""
        if self._stop_event is not None:
            logger.info("Stopping cron scheduler...")
            self._stop_event.set()

    async def _run_loop(self, until: asyncio.Event) -> None:
        """Main scheduling loop."""
        next_at = self.schedule.next_after(self._clock())

        while not until.is_set():
            delay = (next_at - self._clock()).total_seconds()
            if delay > 0:
                logger.debug(f"Next activation at {next_at.isoformat()} (in {delay:.1f}s)")
                if await self._wait(until, delay):
                    break

            self._fire(next_at)

            # Compute from the later of the fired instant and now, so a
            # clock jump does not produce a burst of catch-up ticks.
            now = self._clock()
            next_at = self.schedule.next_after(max(next_at, now))

    async def _wait(self, until: asyncio.Event, delay: float) -> bool:
        """Wait for delay seconds or the stop event.

        Returns:
            True if the stop event fired first.
        """
        sleeper = asyncio.ensure_future(self._sleep(delay))
        stopper = asyncio.ensure_future(until.wait())
        try:
            await asyncio.wait(
                {sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (sleeper, stopper):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sleeper, stopper, return_exceptions=True)
        return until.is_set()

    def _fire(self, instant: datetime) -> None:
        """Start a tick for the given instant unless one is in flight."""
        if self._inflight is not None and not self._inflight.done():
            self.ticks_skipped += 1
            logger.warning(
                f"Skipping activation at {instant.isoformat()}: "
                f"previous tick still running"
            )
            return

        self.ticks_started += 1
        logger.debug(f"Firing tick #{self.ticks_started} for {instant.isoformat()}")
        self._inflight = asyncio.create_task(self._run_tick(self.ticks_started))

    async def _run_tick(self, tick_number: int) -> TickResult | None:
        try:
            return await self.tick_port.tick()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in tick #{tick_number}: {e}", exc_info=True)
            return None

    async def _drain(self) -> None:
        """Wait for an in-flight tick to complete."""
        if self._inflight is not None and not self._inflight.done():
            logger.info("Waiting for in-flight tick to complete...")
            await asyncio.gather(self._inflight, return_exceptions=True)


class _CallbackTickPort(TickPort):
    """Adapts a plain zero-argument callback to the TickPort interface.

    Coroutine functions are awaited on the loop. Anything else runs in a
    worker thread so a slow callback cannot stall the schedule.
    """

    def __init__(self, on_tick: Callable[[], Awaitable[object] | object]):
        self.on_tick = on_tick
        self.calls = 0

    async def tick(self) -> TickResult:
        self.calls += 1
        if inspect.iscoroutinefunction(self.on_tick):
            outcome = self.on_tick()
        else:
            outcome = await asyncio.to_thread(self.on_tick)
        if asyncio.iscoroutine(outcome) or isinstance(outcome, asyncio.Future):
            outcome = await outcome
        if isinstance(outcome, TickResult):
            return outcome
        return TickResult(
            tick_number=self.calls,
            event_id=None,
            delivered=True,
            attempts=1,
            timestamp=datetime.now(timezone.utc),
        )


async def start(
    schedule_expression: str,
    on_tick: Callable[[], Awaitable[object] | object],
    stop_event: asyncio.Event,
    clock: Callable[[], datetime] = _utcnow,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Parse a schedule and invoke on_tick at every instant until stopped.

    Raises:
        ScheduleParseError: If the expression cannot be parsed. Nothing
            is scheduled in that case.
    """
    schedule = parse_schedule(schedule_expression)
    scheduler = CronScheduler(
        schedule, _CallbackTickPort(on_tick), clock=clock, sleep=sleep
    )
    await scheduler.run(stop_event)
