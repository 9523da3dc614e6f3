"""
Logger configuration value object.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from relaylog.constants import (
    DEFAULT_BASE_DELAY,
    DEFAULT_CLIENT_ID,
    DEFAULT_FLUSH_INTERVAL,
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REMOTE_TIMEOUT,
)
from relaylog.exceptions import ConfigurationError
from relaylog.types import LogLevel


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return value


class LoggerConfig(BaseModel):
    """Everything a logger pipeline needs, supplied explicitly by the caller.

    Invalid values raise :class:`~relaylog.exceptions.ConfigurationError`
    at construction time. Durations are in seconds.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    level: LogLevel = Field(default=LogLevel.INFO, description="Minimum level that is processed")
    max_batch_size: int = Field(default=DEFAULT_MAX_BATCH_SIZE, ge=1, description="Records per remote batch")
    flush_interval: float = Field(default=DEFAULT_FLUSH_INTERVAL, gt=0, description="Max batch age in seconds")
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0, description="Retries after the first attempt")
    base_delay: float = Field(default=DEFAULT_BASE_DELAY, ge=0, description="Backoff base delay in seconds")

    sensitive_fields: tuple[str, ...] = Field(default=(), description="Extra field-name patterns to redact")
    redaction_transform: Optional[Callable[[dict[str, Any]], Any]] = Field(
        default=None, description="Additional masking applied after pattern redaction"
    )
    redaction_max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1, description="Deepest nesting kept in context")

    on_success: Optional[Callable[..., Any]] = Field(default=None, description="Called with each delivered batch")
    on_error: Optional[Callable[..., Any]] = Field(
        default=None, description="Called with (failure, batch) after the retry budget is spent"
    )

    remote_endpoint: Optional[str] = Field(default=None, description="Collector URL; enables remote delivery")
    remote_headers: dict[str, str] = Field(default_factory=dict, description="Extra HTTP headers")
    remote_timeout: float = Field(default=DEFAULT_REMOTE_TIMEOUT, gt=0, description="HTTP timeout in seconds")
    client_id: str = Field(default=DEFAULT_CLIENT_ID, min_length=1, description="Envelope clientId")

    global_context: dict[str, Any] = Field(default_factory=dict, description="Context added to every record")
    tags: tuple[str, ...] = Field(default=(), description="Tags added to every record")
    include_callsite: bool = Field(default=False, description="Capture file/line of each call")
    enabled: bool = Field(default=True, description="Turn every log call into a no-op when False")

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise ConfigurationError.from_validation(exc) from exc

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: Any) -> LogLevel:
        return LogLevel.parse(v)

    @field_validator("sensitive_fields", "tags", mode="before")
    @classmethod
    def validate_string_tuple(cls, v: Any) -> Any:
        return _split_csv(v)

    def replace(self, **changes: Any) -> "LoggerConfig":
        """Validated copy with ``changes`` applied."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(changes)
        return type(self)(**values)
