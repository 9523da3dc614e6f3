"""
Log formatters and color utilities.
"""

from __future__ import annotations

from datetime import datetime

from .types import LogLevel, LogRecord

# =============================================================================
# Console Formatter (Aligned Columns)
# =============================================================================

COLORS = {
    "reset": "\033[0m",
    "dim": "\033[2m",
    "timestamp": "\033[90m",
    "tags": "\033[35m",
    "key": "\033[34m",
}

LEVEL_COLORS = {
    LogLevel.TRACE: "\033[90m",
    LogLevel.DEBUG: "\033[36m",
    LogLevel.INFO: "\033[32m",
    LogLevel.WARN: "\033[33m",
    LogLevel.ERROR: "\033[31m",
    LogLevel.FATAL: "\033[1;31m",
}


def colorize(text: str, color: str) -> str:
    """Apply ANSI color to text."""
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


class ConsoleFormatter:
    """Human-readable console rendering of a record (fixed width, right-aligned).

    ``timestamp | LEVEL | tags | message key=value ... (file:line)``
    """

    TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
    TIMESTAMP_WIDTH = 19
    LEVEL_WIDTH = 5
    TAGS_WIDTH = 24
    SEPARATOR = " | "

    @classmethod
    def configure(
        cls,
        *,
        timestamp_format: str | None = None,
        level_width: int | None = None,
        tags_width: int | None = None,
        separator: str | None = None,
    ) -> None:
        """Configure alignment and rendering parameters."""
        if timestamp_format:
            cls.TIMESTAMP_FORMAT = timestamp_format
            cls.TIMESTAMP_WIDTH = len(datetime.now().strftime(timestamp_format))
        if level_width:
            cls.LEVEL_WIDTH = level_width
        if tags_width:
            cls.TAGS_WIDTH = tags_width
        if separator is not None:
            cls.SEPARATOR = separator

    @staticmethod
    def _fit_right(text: str, width: int) -> str:
        if width <= 0:
            return text
        if len(text) > width:
            if width <= 3:
                text = text[-width:]
            else:
                text = "..." + text[-(width - 3) :]
        return f"{text:>{width}}"

    @staticmethod
    def _maybe_color(text: str, color: str, use_color: bool) -> str:
        if not use_color:
            return text
        return colorize(text, color)

    @classmethod
    def format(cls, record: LogRecord, *, use_color: bool = True) -> str:
        """Format a record into an aligned line."""
        timestamp = record.timestamp.astimezone().strftime(cls.TIMESTAMP_FORMAT)
        tags = ".".join(record.tags) or "-"

        level_text = cls._fit_right(record.level.name, cls.LEVEL_WIDTH)
        if use_color:
            level_text = f"{LEVEL_COLORS[record.level]}{level_text}{COLORS['reset']}"

        parts = [record.message]
        for key, value in record.context.items():
            key_text = cls._maybe_color(key, "key", use_color)
            value_text = cls._maybe_color(str(value), "dim", use_color)
            parts.append(f"{key_text}={value_text}")
        if record.callsite is not None:
            parts.append(cls._maybe_color(f"({record.callsite})", "dim", use_color))

        return "".join(
            [
                cls._maybe_color(cls._fit_right(timestamp, cls.TIMESTAMP_WIDTH), "timestamp", use_color),
                cls.SEPARATOR,
                level_text,
                cls.SEPARATOR,
                cls._maybe_color(cls._fit_right(tags, cls.TAGS_WIDTH), "tags", use_color),
                cls.SEPARATOR,
                " ".join(parts),
            ]
        )
