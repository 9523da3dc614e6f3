"""
Interceptors for capturing standard library and structlog events.
"""

from __future__ import annotations

import logging
from typing import Any

from structlog.typing import EventDict, WrappedLogger

from ._diagnostics import NAME_KEYS, is_internal, is_internal_event
from .logger import Logger
from .types import LogLevel

# structlog method names that do not match a LogLevel name
_METHOD_LEVELS = {
    "warning": LogLevel.WARN,
    "critical": LogLevel.FATAL,
    "exception": LogLevel.ERROR,
    "msg": LogLevel.INFO,
}


class RedirectStdLibHandler(logging.Handler):
    """
    Redirect standard library logging records into a relaylog logger.

    Third-party libraries keep using ``logging.getLogger(...)`` while their
    output goes through the same sink, redaction and delivery path.
    """

    def __init__(self, logger: Logger, level: int = logging.NOTSET):
        super().__init__(level)
        self._logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            # relaylog's own diagnostics must not loop back into a pipeline
            if is_internal(record.name):
                return

            context: dict[str, Any] = {"logger": self._simplify_logger_name(record.name)}
            if record.exc_info:
                context["exc_info"] = self._format_exception(record.exc_info)

            self._logger.log(LogLevel.from_stdlib(record.levelno), record.getMessage(), context)
        except Exception:
            self.handleError(record)

    @staticmethod
    def _format_exception(exc_info: Any) -> str:
        return logging.Formatter().formatException(exc_info)

    @staticmethod
    def _simplify_logger_name(name: str) -> str:
        """
        Simplify a logger name for display.

        Rules:
        - "uvicorn.access" -> "uvicorn.access"
        - "a.b.c.d" -> "c.d" (keep last 2 parts)
        """
        if not name:
            return "stdlib"
        parts = name.split(".")
        if len(parts) <= 2:
            return name
        return ".".join(parts[-2:])


def intercept_stdlib_logging(logger: Logger, level: LogLevel | int | str = LogLevel.INFO) -> RedirectStdLibHandler:
    """Route the root stdlib logger into ``logger``.

    Existing root handlers are removed, as a second output path would print
    every record twice.
    """
    stdlib_level = int(LogLevel.parse(level))
    handler = RedirectStdLibHandler(logger)
    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(stdlib_level)
    root_logger.addHandler(handler)
    return handler


def remove_stdlib_interception(handler: logging.Handler) -> None:
    logging.getLogger().removeHandler(handler)


class RelayProcessor:
    """
    structlog processor forwarding every event into a relaylog logger.

    The event dict is returned unchanged so the rest of the processor chain
    (and its renderer) keeps working.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        if is_internal_event(event_dict):
            return event_dict

        context = {k: v for k, v in event_dict.items() if k not in ("event", "level", *NAME_KEYS)}
        name = next((event_dict[key] for key in NAME_KEYS if event_dict.get(key)), None)
        if name is not None:
            context["logger"] = name
        level = _METHOD_LEVELS.get(method_name)
        if level is None:
            try:
                level = LogLevel.parse(method_name)
            except ValueError:
                level = LogLevel.INFO
        self._logger.log(level, event_dict.get("event", ""), context)
        return event_dict
