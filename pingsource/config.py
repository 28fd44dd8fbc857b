"""Configuration loading for the ping source adapter.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings
"""

import json
import re
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pingsource.core.models import PING_SOURCE_RESOURCE_GROUP, RetryPolicy

RESERVED_ATTRIBUTES = frozenset(
    {
        "specversion",
        "id",
        "source",
        "type",
        "datacontenttype",
        "dataschema",
        "subject",
        "time",
        "data",
    }
)

EXTENSION_NAME = re.compile(r"[a-z0-9]+")


class Settings(BaseSettings):
    """Adapter configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Ping source definition
    schedule: str = Field(
        description="Cron format string such as '0 * * * *' or '@hourly'",
    )
    data: str = Field(
        description="Data posted to the sink on every tick",
    )
    name: str = Field(
        description="Name of the ping source",
    )
    namespace: str = Field(
        description="Namespace of the ping source",
    )

    # Sink configuration
    k_sink: str = Field(
        default="",
        description="Sink URL; events are logged instead when empty",
    )
    k_resource_group: str = Field(
        default=PING_SOURCE_RESOURCE_GROUP,
        description="Resource group this adapter runs for",
    )
    k_ce_overrides: str = Field(
        default="",
        description='CloudEvent overrides as JSON: {"extensions": {"key": "value"}}',
    )
    send_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for a single delivery attempt in seconds",
    )

    # Retry configuration
    retry_max_attempts: int = Field(
        default=5,
        description="Maximum delivery attempts per tick",
    )
    retry_initial_backoff_ms: int = Field(
        default=50,
        description="Backoff before the first retry in milliseconds",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    @field_validator("schedule", "name", "namespace")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        """Ensure required strings are not blank."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("send_timeout_seconds")
    @classmethod
    def validate_send_timeout(cls, v: float) -> float:
        """Ensure send timeout is positive."""
        if v <= 0:
            raise ValueError("send_timeout_seconds must be positive")
        return v

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Ensure at least one delivery attempt is made."""
        if v < 1:
            raise ValueError("retry_max_attempts must be at least 1")
        return v

    @field_validator("retry_initial_backoff_ms")
    @classmethod
    def validate_retry_backoff(cls, v: int) -> int:
        """Ensure initial backoff is positive."""
        if v <= 0:
            raise ValueError("retry_initial_backoff_ms must be positive")
        return v

    @field_validator("k_ce_overrides")
    @classmethod
    def validate_ce_overrides(cls, v: str) -> str:
        """Ensure CloudEvent overrides are well-formed JSON."""
        if v.strip():
            _parse_ce_overrides(v)
        return v

    def ce_extensions(self) -> dict[str, str]:
        """Extension attributes from K_CE_OVERRIDES."""
        if not self.k_ce_overrides.strip():
            return {}
        return _parse_ce_overrides(self.k_ce_overrides)

    def retry_policy(self) -> RetryPolicy:
        """Build the delivery retry policy."""
        initial = self.retry_initial_backoff_ms / 1000.0
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            initial_backoff_seconds=initial,
            max_backoff_seconds=max(10.0, initial),
        )


def _parse_ce_overrides(raw: str) -> dict[str, str]:
    try:
        overrides: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"k_ce_overrides is not valid JSON: {e}") from e
    if not isinstance(overrides, dict):
        raise ValueError("k_ce_overrides must be a JSON object")

    extensions = overrides.get("extensions") or {}
    if not isinstance(extensions, dict):
        raise ValueError("k_ce_overrides.extensions must be a JSON object")

    result: dict[str, str] = {}
    for key, value in extensions.items():
        if key in RESERVED_ATTRIBUTES:
            raise ValueError(f"extension name {key!r} is a reserved attribute")
        if not EXTENSION_NAME.fullmatch(key):
            raise ValueError(
                f"extension name {key!r} must be lowercase ASCII letters or digits"
            )
        result[key] = value if isinstance(value, str) else json.dumps(value)
    return result


def load_settings(env_file: str | None = None) -> Settings:
    """Load adapter settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()  # type: ignore[call-arg]


__all__ = ["Settings", "load_settings"]
