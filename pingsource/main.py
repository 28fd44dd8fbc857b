"""Composition root for the ping source adapter.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations. All wiring of dependencies
happens here, creating a clear entry point for the process.

Module Structure:
- Configuration loading via config module
- Logging setup
- Event sender selection
- Adapter construction
- Signal-driven shutdown and exit codes
"""

import asyncio
import json
import logging
import signal
import sys
from typing import Any

from pydantic import ValidationError

from pingsource import __version__
from pingsource.adapter import PingSourceAdapter
from pingsource.adapters.sink.http_sender import HTTPEventSender
from pingsource.adapters.sink.log_sender import LoggingEventSender
from pingsource.config import Settings, load_settings
from pingsource.core.exceptions import ScheduleParseError
from pingsource.core.models import AdapterIdentity
from pingsource.core.ports import EventSenderPort


TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# LogRecord attributes that are not caller-supplied extra fields.
_RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure process logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )


def build_sender(settings: Settings) -> EventSenderPort:
    """Select the event sender for the configured sink."""
    logger = logging.getLogger(__name__)

    if settings.k_sink:
        logger.info(f"Event sender: HTTP ({settings.k_sink})")
        return HTTPEventSender(
            sink_url=settings.k_sink,
            timeout_seconds=settings.send_timeout_seconds,
            user_agent=f"pingsource/{__version__} ({settings.k_resource_group})",
        )

    logger.warning("K_SINK not set, events will only be logged")
    return LoggingEventSender()


def build_adapter(settings: Settings, sender: EventSenderPort) -> PingSourceAdapter:
    """Wire the adapter from settings and a sender."""
    identity = AdapterIdentity(
        name=settings.name,
        namespace=settings.namespace,
        resource_group=settings.k_resource_group,
    )
    return PingSourceAdapter(
        schedule=settings.schedule,
        payload=settings.data,
        identity=identity,
        sender=sender,
        retry_policy=settings.retry_policy(),
        extensions=settings.ce_extensions(),
    )


def install_signal_handlers(stop_event: asyncio.Event) -> None:
    """Set stop_event on SIGTERM or SIGINT."""
    logger = logging.getLogger(__name__)
    try:
        loop = asyncio.get_running_loop()

        def _handle_signal(sig: int) -> None:
            logger.info(f"Received signal {sig}, initiating graceful shutdown...")
            stop_event.set()

        loop.add_signal_handler(signal.SIGTERM, _handle_signal, signal.SIGTERM)
        loop.add_signal_handler(signal.SIGINT, _handle_signal, signal.SIGINT)
    except NotImplementedError:
        # Signal handlers not available on Windows
        logger.debug("Signal handlers not available on this platform")
    except RuntimeError as e:
        logger.warning(f"Failed to set up signal handlers: {e}")


async def bootstrap(
    settings: Settings | None = None,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Load configuration, wire adapters, and run until stopped.

    Steps:
    1. Load configuration from environment
    2. Configure logging
    3. Select the event sender
    4. Build the adapter
    5. Run until SIGTERM/SIGINT (or stop_event)

    Raises:
        SystemExit: On invalid configuration or unparseable schedule.
    """
    logger = logging.getLogger(__name__)

    # Step 1: Load configuration
    if settings is None:
        try:
            settings = load_settings()
        except ValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            sys.exit(1)

    # Step 2: Configure logging
    configure_logging(settings.log_level, settings.log_format)
    logger.info(f"Starting ping source {settings.namespace}/{settings.name}...")

    # Steps 3-4: Wire sender and adapter
    sender = build_sender(settings)
    adapter = build_adapter(settings, sender)

    # Step 5: Run
    if stop_event is None:
        stop_event = asyncio.Event()
        install_signal_handlers(stop_event)

    try:
        await adapter.start(stop_event)
    except ScheduleParseError as e:
        logger.error(f"Failed to start ping source: {e}")
        sys.exit(1)
    finally:
        await sender.close()


def main() -> None:
    """Process entry point.

    Exit codes:
        0: Successful shutdown
        1: Invalid configuration, unparseable schedule or fatal error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    logger = logging.getLogger(__name__)
    try:
        asyncio.run(bootstrap())
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
