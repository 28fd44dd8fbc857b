"""Logging event sender adapter.

Implements EventSenderPort by writing each event to the log instead of
delivering it. Used when no sink URL is configured.
"""

import json
import logging

from pingsource.core.models import CloudEvent
from pingsource.core.ports import EventSenderPort

logger = logging.getLogger(__name__)


class LoggingEventSender(EventSenderPort):
    """Logs events with human-readable formatting."""

    def __init__(self, level: int = logging.INFO):
        """Initialize logging event sender.

        Args:
            level: Log level used for each event.
        """
        self.level = level
        self.sent_count = 0

    async def send(self, event: CloudEvent) -> None:
        """Log the event attributes and data."""
        self.sent_count += 1
        logger.log(self.level, self.format_event(event), extra={"event_id": event.id})

    @staticmethod
    def format_event(event: CloudEvent) -> str:
        """Render an event the way the CloudEvents tooling prints it."""
        lines = ["Context Attributes,"]
        for key, value in event.attributes().items():
            lines.append(f"  {key}: {value}")
        lines.append("Data,")
        lines.append(f"  {json.dumps(event.data, sort_keys=True)}")
        return "\n".join(lines)
