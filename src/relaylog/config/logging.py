"""
Logging Configuration loaded from the environment.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from relaylog.constants import (
    DEFAULT_BASE_DELAY,
    DEFAULT_CLIENT_ID,
    DEFAULT_FLUSH_INTERVAL,
    DEFAULT_MAX_BATCH_SIZE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_REMOTE_TIMEOUT,
)
from relaylog.types import LogLevel

from .logger import LoggerConfig


class LogFormat(str, Enum):
    CONSOLE = "console"
    JSON = "json"


class LoggingSettings(BaseSettings):
    """Logging infrastructure configuration (prefix ``RL_LOG_``).

    Only read when instantiated; the default logger never looks at the
    environment on its own.
    """

    model_config = SettingsConfigDict(
        env_prefix="RL_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    level: str = Field(default="INFO", description="Log level (TRACE, DEBUG, INFO, WARN, ERROR, FATAL)")
    sinks: str = Field(default="stdio", description="Comma-separated sink names (stdio, file)")
    format: LogFormat = Field(default=LogFormat.CONSOLE, description="Output format for the stdio sink")
    file_path: str = Field(default="logs/relaylog.log", description="Path for file sink")
    file_max_bytes: int = Field(default=10 * 1024 * 1024, description="Rotate the file sink above this size")
    file_backup_count: int = Field(default=5, description="Rotated files to keep")
    console_timestamp_format: str = Field(default="%Y-%m-%d %H:%M:%S", description="Console timestamp format")
    console_level_width: int = Field(default=5, description="Console level column width")
    console_tags_width: int = Field(default=24, description="Console tags column width")
    console_separator: str = Field(default=" | ", description="Console column separator")

    remote_endpoint: Optional[str] = Field(default=None, description="Collector URL; enables remote delivery")
    remote_timeout: float = Field(default=DEFAULT_REMOTE_TIMEOUT, description="HTTP timeout in seconds")
    client_id: str = Field(default=DEFAULT_CLIENT_ID, description="Envelope clientId")
    max_batch_size: int = Field(default=DEFAULT_MAX_BATCH_SIZE, description="Records per remote batch")
    flush_interval: float = Field(default=DEFAULT_FLUSH_INTERVAL, description="Max batch age in seconds")
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, description="Retries after the first attempt")
    base_delay: float = Field(default=DEFAULT_BASE_DELAY, description="Backoff base delay in seconds")
    sensitive_fields: str = Field(default="", description="Comma-separated extra field patterns to redact")

    include_callsite: bool = Field(default=False, description="Capture file/line of each call")
    intercept_stdlib: bool = Field(default=False, description="Route stdlib logging through relaylog")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        return LogLevel.parse(v).name

    def to_logger_config(self, **overrides: Any) -> LoggerConfig:
        """Build the explicit :class:`LoggerConfig` these settings describe."""
        values: dict[str, Any] = {
            "level": self.level,
            "max_batch_size": self.max_batch_size,
            "flush_interval": self.flush_interval,
            "max_retries": self.max_retries,
            "base_delay": self.base_delay,
            "sensitive_fields": self.sensitive_fields,
            "remote_endpoint": self.remote_endpoint,
            "remote_timeout": self.remote_timeout,
            "client_id": self.client_id,
            "include_callsite": self.include_callsite,
        }
        values.update(overrides)
        return LoggerConfig(**values)
