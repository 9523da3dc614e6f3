"""
Value types shared by every relaylog component.

Records, batches and outcomes are immutable. Context payloads are coerced
into a closed value union so that redaction and serialization are total.
"""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timezone
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Union

from .constants import DEFAULT_MAX_DEPTH, TRUNCATED
from .exceptions import DeliveryFailure

ContextValue = Union[str, int, float, bool, None, List["ContextValue"], Dict[str, "ContextValue"]]
Context = Dict[str, ContextValue]


class LogLevel(IntEnum):
    """Severity ordinal. Values line up with the stdlib ``logging`` levels."""

    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40
    FATAL = 50

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: "LogLevel | int | str") -> "LogLevel":
        """Accept a member, an ordinal or a (case-insensitive) level name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            name = value.strip().upper()
            name = _LEVEL_ALIASES.get(name, name)
            try:
                return cls[name]
            except KeyError:
                pass
        raise ValueError(f"unknown log level {value!r}, expected one of {[m.label for m in cls]}")

    @classmethod
    def from_stdlib(cls, levelno: int) -> "LogLevel":
        """Map a stdlib level number onto the closest level at or below it."""
        for member in sorted(cls, reverse=True):
            if levelno >= member:
                return member
        return cls.TRACE


_LEVEL_ALIASES = {"WARNING": "WARN", "CRITICAL": "FATAL"}


class FlushTrigger(str, Enum):
    """Why a batch left the accumulator."""

    SIZE = "size"
    INTERVAL = "interval"
    MANUAL = "manual"
    SHUTDOWN = "shutdown"


# =============================================================================
# Context normalization
# =============================================================================


def normalize_value(value: Any, max_depth: int = DEFAULT_MAX_DEPTH, _depth: int = 0) -> ContextValue:
    """Coerce ``value`` into the closed context value union (deep copy)."""
    if isinstance(value, Enum):
        return normalize_value(value.value, max_depth, _depth)
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, BaseException):
        return {"type": type(value).__name__, "message": str(value)}

    if isinstance(value, Mapping) or isinstance(value, (list, tuple, set, frozenset)):
        if _depth >= max_depth:
            return TRUNCATED
        if isinstance(value, Mapping):
            return {str(k): normalize_value(v, max_depth, _depth + 1) for k, v in value.items()}
        return [normalize_value(v, max_depth, _depth + 1) for v in value]

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields_ = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        return normalize_value(fields_, max_depth, _depth)

    return str(value)


def normalize_context(value: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> Context:
    """Normalize a context payload; non-mapping input is wrapped under ``value``."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        return {"value": normalize_value(value, max_depth, 1)}
    normalized = normalize_value(value, max_depth)
    return normalized if isinstance(normalized, dict) else {"value": normalized}


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class CallSite:
    """Source location of the log call."""

    file: str
    line: int
    function: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


def _empty_context() -> Mapping[str, ContextValue]:
    return MappingProxyType({})


@dataclass(frozen=True)
class LogRecord:
    """A single log event. Build with :func:`create_record`."""

    timestamp: datetime
    level: LogLevel
    message: str
    context: Mapping[str, ContextValue] = field(default_factory=_empty_context)
    tags: tuple[str, ...] = ()
    callsite: Optional[CallSite] = None

    def with_context(self, context: Mapping[str, ContextValue]) -> "LogRecord":
        """Copy of this record carrying ``context`` instead."""
        return replace(self, context=MappingProxyType(dict(context)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.label,
            "message": self.message,
            "context": copy.deepcopy(dict(self.context)),
            "tags": list(self.tags),
            "callsite": dataclasses.asdict(self.callsite) if self.callsite else None,
        }


def create_record(
    level: LogLevel | int | str,
    message: Any,
    context: Any = None,
    *,
    tags: tuple[str, ...] = (),
    callsite: Optional[CallSite] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> LogRecord:
    """Stamp the current UTC time and level onto a new immutable record."""
    return LogRecord(
        timestamp=datetime.now(timezone.utc),
        level=LogLevel.parse(level),
        message=str(message),
        context=MappingProxyType(normalize_context(context, max_depth)),
        tags=tuple(tags),
        callsite=callsite,
    )


# =============================================================================
# Batches & delivery outcomes
# =============================================================================


@dataclass(frozen=True)
class Batch:
    """An ordered snapshot of redacted records handed off for delivery."""

    records: tuple[LogRecord, ...]
    sequence: int
    created_at: float
    trigger: FlushTrigger = FlushTrigger.MANUAL

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[LogRecord]:
        return iter(self.records)


@dataclass(frozen=True)
class DeliveryOutcome:
    """Terminal result of delivering one batch."""

    batch: Batch
    delivered: bool
    attempts: int
    error: Optional[DeliveryFailure] = None


# Capabilities injected by the caller
Sink = Callable[[LogRecord], None]
Transport = Callable[[Batch], Awaitable[None]]
