"""HTTP event sender adapter.

Implements EventSenderPort by POSTing events to the sink URL using the
CloudEvents HTTP binary content mode: context attributes travel as
ce-* headers and the event data is the request body.
"""

import logging
from urllib.parse import quote

import httpx

from pingsource.core.exceptions import SendError
from pingsource.core.models import CloudEvent
from pingsource.core.ports import EventSenderPort

logger = logging.getLogger(__name__)

# Statuses worth another attempt; any other 4xx is a permanent rejection.
RETRYABLE_STATUS_CODES = frozenset({404, 408, 409, 429})


def is_retryable_status(status_code: int) -> bool:
    """Whether a sink response status warrants a retry."""
    return status_code >= 500 or status_code in RETRYABLE_STATUS_CODES


def encode_header_value(value: str) -> str:
    """Percent-encode a ce-* header value.

    Space through tilde pass unchanged except '"' and '%'; every other
    character is sent as its UTF-8 bytes in %XX form.
    """
    return "".join(
        ch if " " <= ch <= "~" and ch not in '"%' else quote(ch, safe="")
        for ch in value
    )


def binary_mode_headers(event: CloudEvent) -> dict[str, str]:
    """Build CloudEvents binary content mode headers for an event."""
    headers = {"Content-Type": event.datacontenttype}
    for key, value in event.attributes().items():
        if key == "datacontenttype":
            continue
        headers[f"ce-{key}"] = encode_header_value(value)
    return headers


class HTTPEventSender(EventSenderPort):
    """Delivers events to an HTTP sink."""

    def __init__(
        self,
        sink_url: str,
        timeout_seconds: float = 10.0,
        user_agent: str = "pingsource",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP event sender.

        Args:
            sink_url: Absolute URL of the event sink.
            timeout_seconds: Timeout for a single delivery attempt.
            user_agent: User-Agent header sent with every request.
            transport: Optional httpx transport (used by tests).
        """
        if not sink_url:
            raise ValueError("sink_url must be a non-empty URL")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self.sink_url = sink_url
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout_seconds,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(self, event: CloudEvent) -> None:
        """POST one event to the sink."""
        client = await self._get_client()

        try:
            response = await client.post(
                self.sink_url,
                content=event.encode_data(),
                headers=binary_mode_headers(event),
            )
        except httpx.RequestError as e:
            raise SendError(
                f"request to {self.sink_url} failed: {type(e).__name__}: {e}",
                retryable=True,
            ) from e

        if response.is_success:
            logger.debug(
                f"Sink accepted event {event.id} with {response.status_code}",
                extra={"event_id": event.id, "status_code": response.status_code},
            )
            return

        raise SendError(
            f"sink returned {response.status_code}: {response.text[:200]}",
            retryable=is_retryable_status(response.status_code),
            status_code=response.status_code,
        )
