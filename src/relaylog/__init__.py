"""
relaylog: structured logging with redacted, batched remote delivery.

Every record is rendered locally through a sink and, when remote delivery is
configured, redacted and batched for a collector. Delivery retries with
exponential backoff and reports each batch's outcome exactly once.

Design Pattern: immutable logger handles over one shared pipeline.
Library: structlog (internal diagnostics) + orjson + pydantic + httpx.
"""

from .batching import AccumulatorState, BatchAccumulator
from .config import LogFormat, LoggerConfig, LoggingSettings
from .core import configure_logging, get_logger, shutdown_logging
from .delivery import DeliveryCoordinator, RetryState, backoff_delay
from .exceptions import (
    ConfigurationError,
    DeliveryFailure,
    RedactionFailure,
    RelayLogError,
    SinkFailure,
)
from .logger import Logger, create_logger
from .pipeline import Pipeline
from .redaction import RedactionPolicy, mask_emails, redact
from .sinks import BaseSink, FileSink, MultiSink, StdioSink
from .transport import HttpTransport
from .types import (
    Batch,
    CallSite,
    DeliveryOutcome,
    FlushTrigger,
    LogLevel,
    LogRecord,
    create_record,
)

__all__ = [
    # Entry points
    "create_logger",
    "configure_logging",
    "get_logger",
    "shutdown_logging",
    "Logger",
    "Pipeline",
    # Configuration
    "LoggerConfig",
    "LoggingSettings",
    "LogFormat",
    # Data model
    "LogLevel",
    "LogRecord",
    "CallSite",
    "Batch",
    "FlushTrigger",
    "DeliveryOutcome",
    "create_record",
    # Redaction
    "RedactionPolicy",
    "redact",
    "mask_emails",
    # Batching and delivery
    "AccumulatorState",
    "BatchAccumulator",
    "DeliveryCoordinator",
    "RetryState",
    "backoff_delay",
    "HttpTransport",
    # Sinks
    "BaseSink",
    "StdioSink",
    "FileSink",
    "MultiSink",
    # Errors
    "RelayLogError",
    "ConfigurationError",
    "RedactionFailure",
    "DeliveryFailure",
    "SinkFailure",
]
