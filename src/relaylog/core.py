"""
Process-wide default logger.

The default is built once from an explicit configuration value and can be
replaced with :func:`configure_logging`. Tests and libraries that need
isolation should use :func:`relaylog.create_logger` instead.
"""

from __future__ import annotations

import atexit
import logging
import sys
from typing import Optional

from ._diagnostics import get_logger as get_internal_logger
from .config import LoggerConfig, LoggingSettings
from .formatters import ConsoleFormatter
from .logger import Logger, create_logger
from .sinks import BaseSink, FileSink, LogFormat, MultiSink, StdioSink
from .types import Sink, Transport

# =============================================================================
# Global State
# =============================================================================

_default: Optional[Logger] = None
_stdlib_handler: Optional[logging.Handler] = None
_atexit_registered = False

_log = get_internal_logger("relaylog.core")


def get_logger(name: str | None = None) -> Logger:
    """Get the process default logger, tagged with ``name`` when given."""
    global _default
    if _default is None:
        _default = _build_default(LoggerConfig(), sink=StdioSink(fmt="console"), transport=None)
    return _default.with_tag(name) if name else _default


# =============================================================================
# Configuration Logic
# =============================================================================


def build_sink(
    sinks: str,
    fmt: str = "console",
    file_path: str = "logs/relaylog.log",
    *,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
) -> Optional[Sink]:
    """Create the render sink described by a comma-separated sink list."""
    log_format: LogFormat = "json" if fmt.lower() == "json" else "console"

    created: list[BaseSink] = []
    for name in (s.strip().lower() for s in sinks.split(",")):
        if name == "stdio":
            # stdout for application logs, stderr stays for real errors
            created.append(StdioSink(fmt=log_format, stream=sys.stdout))
        elif name == "file":
            created.append(FileSink(file_path, max_bytes=file_max_bytes, backup_count=file_backup_count))
        elif name:
            _log.warning("unknown_sink", sink=name)

    if not created:
        return None
    if len(created) == 1:
        return created[0]
    return MultiSink(created)


def _build_default(config: LoggerConfig, *, sink: Optional[Sink], transport: Optional[Transport]) -> Logger:
    global _atexit_registered
    logger = create_logger(config, sink=sink, transport=transport)
    if not _atexit_registered:
        atexit.register(shutdown_logging)
        _atexit_registered = True
    return logger


def configure_logging(
    settings: Optional[LoggingSettings] = None,
    *,
    config: Optional[LoggerConfig] = None,
    sink: Optional[Sink] = None,
    transport: Optional[Transport] = None,
) -> Logger:
    """
    Configure the process default logger.

    Args:
        settings: Sink/format/remote settings (``LoggingSettings()`` reads
            ``RL_LOG_*``). Defaults to the built-in settings values.
        config: Explicit logger configuration; overrides the one derived
            from ``settings``.
        sink: Render capability; overrides the sinks named in ``settings``.
        transport: Delivery capability; overrides the HTTP transport.

    Returns:
        The new default logger. The previous default is closed.
    """
    # Import interceptors here to avoid circular imports
    from .interceptors import intercept_stdlib_logging, remove_stdlib_interception

    global _default, _stdlib_handler

    settings = settings or LoggingSettings.model_construct()
    shutdown_logging()

    # 1. Sinks
    if sink is None:
        ConsoleFormatter.configure(
            timestamp_format=settings.console_timestamp_format,
            level_width=settings.console_level_width,
            tags_width=settings.console_tags_width,
            separator=settings.console_separator,
        )
        sink = build_sink(
            settings.sinks,
            settings.format.value,
            settings.file_path,
            file_max_bytes=settings.file_max_bytes,
            file_backup_count=settings.file_backup_count,
        )

    # 2. Pipeline
    config = config or settings.to_logger_config()
    _default = _build_default(config, sink=sink, transport=transport)

    # 3. Stdlib logging (root)
    if _stdlib_handler is not None:
        remove_stdlib_interception(_stdlib_handler)
        _stdlib_handler = None
    if settings.intercept_stdlib:
        _stdlib_handler = intercept_stdlib_logging(_default, level=config.level)

    return _default


def shutdown_logging() -> None:
    """Flush and close the default logger (best effort, never raises)."""
    global _default
    logger, _default = _default, None
    if logger is None:
        return
    try:
        logger.close()
    except Exception as exc:
        _log.warning("shutdown_failed", error=repr(exc))
