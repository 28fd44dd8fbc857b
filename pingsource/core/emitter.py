"""Event emission for the ping source.

Each tick builds a fresh CloudEvent from the adapter identity and the
configured payload, then delivers it through the sender port with
bounded exponential backoff. Failures are logged and reported in the
TickResult; they never escape to the scheduler.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime, timezone

from .exceptions import EventDataError, SendError
from .models import AdapterIdentity, CloudEvent, RetryPolicy, TickResult
from .payload import interpret_payload
from .ports import EventSenderPort, TickPort

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventEmitter(TickPort):
    """Builds and sends one ping event per tick.

    Uses the sender port but contains no transport-specific logic.
    """

    def __init__(
        self,
        identity: AdapterIdentity,
        payload: str,
        sender: EventSenderPort,
        retry_policy: RetryPolicy | None = None,
        extensions: Mapping[str, str] | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.identity = identity
        self.payload = payload
        self.sender = sender
        self.retry_policy = retry_policy or RetryPolicy()
        self.extensions = dict(extensions or {})
        self._clock = clock
        self._sleep = sleep

        self.ticks = 0
        self.delivered = 0
        self.failed = 0

    def build_event(self) -> CloudEvent:
        """Build the envelope for the current tick."""
        body = interpret_payload(self.payload)
        return CloudEvent.for_ping(
            self.identity,
            body,
            time=self._clock(),
            extensions=self.extensions,
        )

    async def tick(self) -> TickResult:
        """Build the event and deliver it with retries.

        Never raises on delivery or encoding failure; the outcome is
        reported in the returned TickResult.
        """
        self.ticks += 1
        tick_number = self.ticks
        event = self.build_event()
        log_context = {
            "tick": tick_number,
            "event_id": event.id,
            "source": event.source,
            "resource_group": self.identity.resource_group,
        }

        try:
            event.encode_data()
        except EventDataError as e:
            self.failed += 1
            logger.error(f"ping failed to set event data: {e}", extra=log_context)
            return TickResult(
                tick_number=tick_number,
                event_id=event.id,
                delivered=False,
                attempts=0,
                timestamp=event.time,
                error=str(e),
            )

        attempts, error = await self._send_with_retry(event, log_context)

        if error is None:
            self.delivered += 1
            logger.debug(
                f"Delivered ping event {event.id} after {attempts} attempt(s)",
                extra=log_context,
            )
            return TickResult(
                tick_number=tick_number,
                event_id=event.id,
                delivered=True,
                attempts=attempts,
                timestamp=event.time,
            )

        self.failed += 1
        logger.error(
            f"ping failed to send cloudevent after {attempts} attempt(s): {error}",
            extra=log_context,
        )
        return TickResult(
            tick_number=tick_number,
            event_id=event.id,
            delivered=False,
            attempts=attempts,
            timestamp=event.time,
            error=str(error),
        )

    async def _send_with_retry(
        self, event: CloudEvent, log_context: dict[str, object]
    ) -> tuple[int, Exception | None]:
        """Send an event, retrying per the retry policy.

        Returns:
            Tuple of (attempts made, last error or None on success).
        """
        policy = self.retry_policy
        last_error: Exception | None = None

        for attempt in range(1, policy.max_attempts + 1):
            if attempt > 1:
                delay = policy.backoff_for(attempt - 1)
                logger.debug(
                    f"Retrying ping event {event.id} in {delay:.3f}s "
                    f"(attempt {attempt}/{policy.max_attempts})",
                    extra=log_context,
                )
                await self._sleep(delay)

            try:
                await self.sender.send(event)
                return attempt, None
            except asyncio.CancelledError:
                raise
            except SendError as e:
                last_error = e
                if not e.retryable:
                    logger.warning(
                        f"Sink rejected ping event {event.id}, not retrying: {e}",
                        extra=log_context,
                    )
                    return attempt, e
                logger.warning(
                    f"Attempt {attempt}/{policy.max_attempts} to send ping event "
                    f"{event.id} failed: {e}",
                    extra=log_context,
                )
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Attempt {attempt}/{policy.max_attempts} to send ping event "
                    f"{event.id} raised {type(e).__name__}: {e}",
                    extra=log_context,
                )

        return policy.max_attempts, last_error

    def stats(self) -> dict[str, int]:
        """Counters since construction."""
        return {
            "ticks": self.ticks,
            "delivered": self.delivered,
            "failed": self.failed,
        }
