"""Domain models for the ping source adapter.

All models in this module use only Python standard library types,
keeping the core free of transport and configuration dependencies.
"""

import json
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, TypeAlias
from urllib.parse import quote

from .exceptions import EventDataError

CLOUDEVENTS_SPEC_VERSION = "1.0"
PING_SOURCE_EVENT_TYPE = "dev.knative.sources.ping"
PING_SOURCE_RESOURCE_GROUP = "pingsources.sources.knative.dev"
APPLICATION_JSON = "application/json"


def ping_source_source(namespace: str, name: str) -> str:
    """Build the CloudEvents source attribute for a ping source.

    Segments are percent-encoded so that distinct (namespace, name)
    pairs can never produce the same source.
    """
    return (
        f"/apis/v1/namespaces/{quote(namespace, safe='')}"
        f"/pingsources/{quote(name, safe='')}"
    )


@dataclass(frozen=True)
class AdapterIdentity:
    """Static identity of one ping source instance."""

    name: str
    namespace: str
    resource_group: str = PING_SOURCE_RESOURCE_GROUP

    def __post_init__(self) -> None:
        """Validate identity invariants on creation."""
        if not self.name or not self.name.strip():
            raise ValueError("name must be a non-empty string")
        if not self.namespace or not self.namespace.strip():
            raise ValueError("namespace must be a non-empty string")

    @property
    def source(self) -> str:
        return ping_source_source(self.namespace, self.name)


@dataclass(frozen=True)
class StructuredBody:
    """Payload that parsed as a JSON object and is passed through as-is."""

    fields: Mapping[str, Any]

    def __post_init__(self) -> None:
        """Convert fields dict to read-only proxy."""
        if isinstance(self.fields, dict):
            object.__setattr__(self, "fields", MappingProxyType(self.fields))

    def to_data(self) -> dict[str, Any]:
        return dict(self.fields)


@dataclass(frozen=True)
class WrappedBody:
    """Payload that is not a JSON object, wrapped as {"body": ...}."""

    body: str

    def to_data(self) -> dict[str, Any]:
        return {"body": self.body}


EventBody: TypeAlias = StructuredBody | WrappedBody


@dataclass(frozen=True)
class CloudEvent:
    """A CloudEvents 1.0 envelope built fresh for every tick."""

    id: str
    source: str
    type: str
    data: dict[str, Any]
    time: datetime
    specversion: str = CLOUDEVENTS_SPEC_VERSION
    datacontenttype: str = APPLICATION_JSON
    extensions: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Convert extensions dict to read-only proxy."""
        if isinstance(self.extensions, dict):
            object.__setattr__(
                self, "extensions", MappingProxyType(self.extensions)
            )

    @classmethod
    def for_ping(
        cls,
        identity: AdapterIdentity,
        body: EventBody,
        time: datetime | None = None,
        extensions: Mapping[str, str] | None = None,
    ) -> "CloudEvent":
        """Create a ping event for the given identity and body."""
        return cls(
            id=str(uuid.uuid4()),
            source=identity.source,
            type=PING_SOURCE_EVENT_TYPE,
            data=body.to_data(),
            time=time or datetime.now(timezone.utc),
            extensions=dict(extensions or {}),
        )

    def encode_data(self) -> bytes:
        """Serialize data as UTF-8 JSON.

        Raises:
            EventDataError: If data is not JSON serializable.
        """
        try:
            return json.dumps(self.data, allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise EventDataError(f"failed to encode event data: {e}") from e

    def attributes(self) -> dict[str, str]:
        """Context attributes in their canonical string form."""
        attrs = {
            "specversion": self.specversion,
            "id": self.id,
            "source": self.source,
            "type": self.type,
            "datacontenttype": self.datacontenttype,
            "time": self.time.isoformat().replace("+00:00", "Z"),
        }
        attrs.update(self.extensions)
        return attrs


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy for sending a single event.

    The defaults keep total retry time well below one minute so a
    failing send never outlives the next scheduled tick.
    """

    max_attempts: int = 5
    initial_backoff_seconds: float = 0.05
    multiplier: float = 2.0
    max_backoff_seconds: float = 10.0

    def __post_init__(self) -> None:
        """Validate retry policy invariants on creation."""
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be at least 1, got {self.max_attempts}"
            )
        if self.initial_backoff_seconds <= 0:
            raise ValueError("initial_backoff_seconds must be positive")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if self.max_backoff_seconds < self.initial_backoff_seconds:
            raise ValueError(
                "max_backoff_seconds must be >= initial_backoff_seconds"
            )

    def backoff_for(self, retry_number: int) -> float:
        """Delay before the given retry (1 = first retry)."""
        if retry_number < 1:
            raise ValueError("retry_number starts at 1")
        delay = self.initial_backoff_seconds * (
            self.multiplier ** (retry_number - 1)
        )
        return min(delay, self.max_backoff_seconds)

    def total_backoff(self) -> float:
        """Worst-case time spent sleeping between attempts."""
        return sum(
            self.backoff_for(n) for n in range(1, self.max_attempts)
        )


@dataclass(frozen=True)
class TickResult:
    """Outcome of one tick of the emitter."""

    tick_number: int
    event_id: str | None
    delivered: bool
    attempts: int
    timestamp: datetime
    error: str | None = None

    def __post_init__(self) -> None:
        """Validate tick result invariants on creation."""
        if self.attempts < 0:
            raise ValueError(f"attempts must be non-negative, got {self.attempts}")
        if self.delivered and self.error is not None:
            raise ValueError("delivered tick cannot carry an error")
