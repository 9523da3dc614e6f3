"""
Render sinks: the local output side of a logger.

A sink is any callable taking a :class:`~relaylog.types.LogRecord`. The
classes here are the stock implementations used by ``configure_logging``.
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, Literal

import orjson

from .exceptions import SinkFailure
from .formatters import ConsoleFormatter
from .types import LogRecord, Sink

LogFormat = Literal["console", "json"]


def orjson_dumps(v: Any, *, default: Any = None) -> str:
    """Fast JSON serialization using orjson."""
    return orjson.dumps(v, default=default, option=orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC).decode()


# =============================================================================
# Sink Abstraction (Strategy Pattern)
# =============================================================================


class BaseSink(ABC):
    """Abstract base class for log sinks."""

    @abstractmethod
    def emit(self, record: LogRecord) -> None:
        """Emit a log record to the sink."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the sink and release resources."""
        ...

    def __call__(self, record: LogRecord) -> None:
        self.emit(record)


class StdioSink(BaseSink):
    """Standard I/O sink with configurable format.

    Args:
        fmt: Output format - "console" (colored human-readable) or "json"
        stream: Output stream (default: stderr)
    """

    def __init__(self, fmt: LogFormat = "console", stream: Any = None):
        self._fmt = fmt
        self._stream = stream or sys.stderr

    def emit(self, record: LogRecord) -> None:
        if self._fmt == "json":
            output = orjson_dumps(record.to_dict())
        else:
            use_color = bool(getattr(self._stream, "isatty", lambda: False)())
            output = ConsoleFormatter.format(record, use_color=use_color)

        self._stream.write(output + "\n")
        self._stream.flush()

    def close(self) -> None:
        pass


class FileSink(BaseSink):
    """Local file sink with size-based rotation (JSON lines).

    Rotated files are named ``<stem>.1<suffix>`` (newest) up to
    ``<stem>.<backup_count><suffix>``.
    """

    def __init__(self, path: str | Path, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 5):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._max_bytes = max_bytes
        self._backup_count = backup_count
        self._file = open(self._path, "a", encoding="utf-8")

    @property
    def path(self) -> Path:
        return self._path

    def _backup_path(self, index: int) -> Path:
        return self._path.with_name(f"{self._path.stem}.{index}{self._path.suffix}")

    def emit(self, record: LogRecord) -> None:
        self._file.write(orjson_dumps(record.to_dict()) + "\n")
        self._file.flush()
        self._maybe_rotate()

    def _maybe_rotate(self) -> None:
        if self._path.stat().st_size <= self._max_bytes:
            return
        self._file.close()
        if self._backup_count > 0:
            oldest = self._backup_path(self._backup_count)
            if oldest.exists():
                oldest.unlink()
            for i in range(self._backup_count - 1, 0, -1):
                src = self._backup_path(i)
                if src.exists():
                    src.rename(self._backup_path(i + 1))
            self._path.rename(self._backup_path(1))
        else:
            self._path.unlink()
        self._file = open(self._path, "a", encoding="utf-8")

    def close(self) -> None:
        self._file.close()


class MultiSink(BaseSink):
    """Fans a record out to several sinks.

    Every sink is tried; failures are collected and reported together as a
    single :class:`SinkFailure` once all sinks have run.
    """

    def __init__(self, sinks: Iterable[Sink]):
        self._sinks = list(sinks)

    @property
    def sinks(self) -> list[Sink]:
        return list(self._sinks)

    def emit(self, record: LogRecord) -> None:
        failed: list[str] = []
        reasons: list[str] = []
        for sink in self._sinks:
            try:
                sink(record)
            except Exception as exc:
                failed.append(type(sink).__name__)
                reasons.append(f"{type(exc).__name__}: {exc}")
        if failed:
            raise SinkFailure(sinks=failed, reason="; ".join(reasons))

    def close(self) -> None:
        for sink in self._sinks:
            close = getattr(sink, "close", None)
            if callable(close):
                close()
