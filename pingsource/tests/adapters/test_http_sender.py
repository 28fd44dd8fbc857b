"""Tests for HTTPEventSender against a mocked transport."""

import json
from datetime import UTC, datetime

import httpx
import pytest

from pingsource.adapters.sink.http_sender import (
    HTTPEventSender,
    binary_mode_headers,
    encode_header_value,
    is_retryable_status,
)
from pingsource.core.exceptions import SendError
from pingsource.core.models import AdapterIdentity, CloudEvent, StructuredBody, WrappedBody

SINK_URL = "http://broker-ingress.knative-eventing.svc.cluster.local/default/default"


@pytest.fixture
def event() -> CloudEvent:
    """Create a sample ping event."""
    return CloudEvent.for_ping(
        AdapterIdentity(name="heartbeat", namespace="default"),
        StructuredBody(fields={"message": "ping"}),
        time=datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
        extensions={"team": "infra"},
    )


class RecordingHandler:
    """MockTransport handler that records requests and returns a fixed status."""

    def __init__(self, status_code: int = 202, text: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.text)


class TestHeaders:
    """Tests for binary content mode headers."""

    def test_binary_mode_headers(self, event: CloudEvent) -> None:
        headers = binary_mode_headers(event)

        assert headers["Content-Type"] == "application/json"
        assert headers["ce-specversion"] == "1.0"
        assert headers["ce-id"] == event.id
        assert headers["ce-type"] == "dev.knative.sources.ping"
        assert headers["ce-source"] == "/apis/v1/namespaces/default/pingsources/heartbeat"
        assert headers["ce-time"] == "2024-01-01T12:00:00Z"
        assert headers["ce-team"] == "infra"
        assert "ce-datacontenttype" not in headers

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("infra", "infra"),
            ("two words", "two words"),
            ("équipe", "%C3%A9quipe"),
            ("100%", "100%25"),
            ('say "hi"', "say %22hi%22"),
            ("line\nbreak", "line%0Abreak"),
        ],
    )
    def test_encode_header_value(self, value: str, expected: str) -> None:
        assert encode_header_value(value) == expected

    def test_non_ascii_extension_is_percent_encoded(self) -> None:
        event = CloudEvent.for_ping(
            AdapterIdentity(name="heartbeat", namespace="default"),
            WrappedBody(body="hello"),
            extensions={"team": "équipe"},
        )

        headers = binary_mode_headers(event)

        assert headers["ce-team"] == "%C3%A9quipe"
        assert all(v.isascii() for v in headers.values())


class TestStatusClassification:
    """Tests for retryable status classification."""

    @pytest.mark.parametrize("status", [404, 408, 409, 429, 500, 502, 503, 504])
    def test_retryable(self, status: int) -> None:
        assert is_retryable_status(status) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 413, 415, 422])
    def test_not_retryable(self, status: int) -> None:
        assert is_retryable_status(status) is False


class TestSend:
    """Tests for HTTPEventSender.send."""

    @pytest.mark.asyncio
    async def test_posts_event(self, event: CloudEvent) -> None:
        """Events are POSTed to the sink with ce-* headers and JSON body."""
        handler = RecordingHandler(202)
        sender = HTTPEventSender(SINK_URL, transport=httpx.MockTransport(handler))

        try:
            await sender.send(event)
        finally:
            await sender.close()

        assert len(handler.requests) == 1
        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == SINK_URL
        assert request.headers["ce-id"] == event.id
        assert request.headers["ce-source"] == event.source
        assert request.headers["content-type"] == "application/json"
        assert request.headers["user-agent"] == "pingsource"
        assert json.loads(request.content) == {"message": "ping"}

    @pytest.mark.asyncio
    async def test_wrapped_body_sent(self) -> None:
        """Wrapped payloads are sent as {"body": ...}."""
        handler = RecordingHandler(200)
        sender = HTTPEventSender(SINK_URL, transport=httpx.MockTransport(handler))
        event = CloudEvent.for_ping(
            AdapterIdentity(name="heartbeat", namespace="default"),
            WrappedBody(body="hello"),
        )

        await sender.send(event)
        await sender.close()

        assert json.loads(handler.requests[0].content) == {"body": "hello"}

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self, event: CloudEvent) -> None:
        """5xx responses raise a retryable SendError."""
        handler = RecordingHandler(503, text="unavailable")
        sender = HTTPEventSender(SINK_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(SendError) as exc_info:
            await sender.send(event)
        await sender.close()

        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 503
        assert "503" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_client_error_is_not_retryable(self, event: CloudEvent) -> None:
        """Most 4xx responses raise a non-retryable SendError."""
        handler = RecordingHandler(400, text="bad event")
        sender = HTTPEventSender(SINK_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(SendError) as exc_info:
            await sender.send(event)
        await sender.close()

        assert exc_info.value.retryable is False
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_transport_error_is_retryable(self, event: CloudEvent) -> None:
        """Connection failures raise a retryable SendError."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        sender = HTTPEventSender(SINK_URL, transport=httpx.MockTransport(refuse))

        with pytest.raises(SendError) as exc_info:
            await sender.send(event)
        await sender.close()

        assert exc_info.value.retryable is True
        assert exc_info.value.status_code is None
        assert "ConnectError" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_client_reused_and_closed(self, event: CloudEvent) -> None:
        """One client serves successive sends and close() releases it."""
        handler = RecordingHandler(202)
        sender = HTTPEventSender(SINK_URL, transport=httpx.MockTransport(handler))

        await sender.send(event)
        client = sender._client
        await sender.send(event)
        assert sender._client is client

        await sender.close()
        assert sender._client is None
        await sender.close()

        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_non_ascii_extension_sent(self) -> None:
        """Non-ASCII extension values reach the sink percent-encoded."""
        handler = RecordingHandler(202)
        sender = HTTPEventSender(SINK_URL, transport=httpx.MockTransport(handler))
        event = CloudEvent.for_ping(
            AdapterIdentity(name="heartbeat", namespace="default"),
            WrappedBody(body="hello"),
            extensions={"team": "équipe"},
        )

        try:
            await sender.send(event)
        finally:
            await sender.close()

        assert handler.requests[0].headers["ce-team"] == "%C3%A9quipe"


class TestInitialization:
    """Tests for constructor validation."""

    def test_empty_sink_rejected(self) -> None:
        with pytest.raises(ValueError, match="sink_url"):
            HTTPEventSender("")

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(ValueError, match="timeout"):
            HTTPEventSender(SINK_URL, timeout_seconds=0)