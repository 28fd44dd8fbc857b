"""Port interfaces for the ping source adapter.

These abstract base classes define the boundaries between core
domain logic and external adapters. Implementations live in the
adapters/ package.

Port Interface Categories:

1. **Driven Ports** (core calls out to adapters)
   - EventSenderPort: Deliver an event envelope to the sink

2. **Driving Ports** (adapters call into core)
   - TickPort: Entry point invoked once per schedule activation
"""

from abc import ABC, abstractmethod

from .models import CloudEvent, TickResult


# ============================================================================
# DRIVEN PORTS (Core calls out to adapters)
# ============================================================================


class EventSenderPort(ABC):
    """Port for delivering event envelopes to the configured sink.

    Implementations own the transport (HTTP, log output, ...). They make
    a single delivery attempt per call; retrying is the caller's job.
    Implementations must be safe to call from successive ticks.
    """

    @abstractmethod
    async def send(self, event: CloudEvent) -> None:
        """Deliver one event.

        Args:
            event: The envelope to deliver.

        Raises:
            SendError: If the sink did not accept the event. The
                retryable flag tells the caller whether to try again.
        """

    async def close(self) -> None:
        """Release transport resources. Default is a no-op."""
        return None


# ============================================================================
# DRIVING PORTS (Adapters call into core)
# ============================================================================


class TickPort(ABC):
    """Port invoked by a scheduler at every matching schedule instant."""

    @abstractmethod
    async def tick(self) -> TickResult:
        """Build and send one event.

        Returns:
            TickResult describing what happened. Delivery failures are
            reported in the result, never raised.
        """
