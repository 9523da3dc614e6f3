"""
Logger handles: the per-call entry point of relaylog.

A :class:`Logger` is an immutable view of a shared :class:`Pipeline`
carrying accumulated tags and context. ``with_tag`` / ``with_context``
return new handles and never touch the original, so handles derived from
the same parent never see each other's metadata.
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Optional

from .callsite import get_callsite
from .config import LoggerConfig
from .pipeline import Pipeline
from .types import ContextValue, DeliveryOutcome, LogLevel, Sink, Transport, create_record, normalize_context


class Logger:
    """Structured logger handle.

    Every level method takes a message, an optional context mapping and
    keyword fields (keywords win over the mapping, both win over the
    handle's own context). Log calls never raise.
    """

    __slots__ = ("_pipeline", "_tags", "_context")

    def __init__(
        self,
        pipeline: Pipeline,
        tags: tuple[str, ...] = (),
        context: Optional[Mapping[str, Any]] = None,
    ):
        self._pipeline = pipeline
        self._tags = tuple(str(tag) for tag in tags)
        self._context = MappingProxyType(normalize_context(context, pipeline.config.redaction_max_depth))

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    @property
    def tags(self) -> tuple[str, ...]:
        return self._tags

    @property
    def context(self) -> Mapping[str, ContextValue]:
        return self._context

    @property
    def stats(self) -> dict[str, Any]:
        return self._pipeline.snapshot()

    def __repr__(self) -> str:
        return f"Logger(tags={list(self._tags)!r}, context={dict(self._context)!r})"

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_tag(self, tag: str) -> "Logger":
        """New handle with ``tag`` appended."""
        return Logger(self._pipeline, self._tags + (str(tag),), self._context)

    def with_context(self, context: Optional[Mapping[str, Any]] = None, **fields: Any) -> "Logger":
        """New handle with ``context`` shallow-merged over this one's."""
        return Logger(self._pipeline, self._tags, _merge(self._context, context, fields))

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def is_enabled_for(self, level: LogLevel | int | str) -> bool:
        return self._pipeline.is_enabled_for(LogLevel.parse(level))

    def log(self, level: LogLevel | int | str, message: Any, context: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        pipeline = self._pipeline
        try:
            level = LogLevel.parse(level)
            if not pipeline.is_enabled_for(level):
                return
            config = pipeline.config
            record = create_record(
                level,
                message,
                _merge(self._context, context, fields),
                tags=self._tags,
                callsite=get_callsite() if config.include_callsite else None,
                max_depth=config.redaction_max_depth,
            )
            pipeline.dispatch(record)
        except Exception:
            pipeline.stats.incr("internal_errors")

    def trace(self, message: Any, context: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        self.log(LogLevel.TRACE, message, context, **fields)

    def debug(self, message: Any, context: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        self.log(LogLevel.DEBUG, message, context, **fields)

    def info(self, message: Any, context: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        self.log(LogLevel.INFO, message, context, **fields)

    def warn(self, message: Any, context: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        self.log(LogLevel.WARN, message, context, **fields)

    warning = warn

    def error(self, message: Any, context: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        self.log(LogLevel.ERROR, message, context, **fields)

    def exception(self, message: Any, context: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        """ERROR record carrying the traceback of the exception being handled."""
        if self._pipeline.is_enabled_for(LogLevel.ERROR):
            fields.setdefault("exc_info", traceback.format_exc())
        self.log(LogLevel.ERROR, message, context, **fields)

    def fatal(self, message: Any, context: Optional[Mapping[str, Any]] = None, **fields: Any) -> None:
        self.log(LogLevel.FATAL, message, context, **fields)

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    def mark(self, name: str) -> None:
        """Start a timing mark. Marks are shared by every handle of the pipeline."""
        self._pipeline.mark(name)

    def measure(self, name: str, start: str, end: Optional[str] = None) -> Optional[float]:
        """Log the milliseconds between mark ``start`` and ``end`` (default: now).

        Returns the duration, or ``None`` (after a WARN record) when a mark
        is unknown.
        """
        try:
            duration_ms = self._pipeline.elapsed(start, end) * 1000
        except KeyError as exc:
            self.warn(
                "Failed to measure performance",
                name=name,
                start_mark=start,
                end_mark=end,
                error=f"unknown mark {exc.args[0]!r}",
            )
            return None
        self.info(f"{name}: {duration_ms:.2f}ms", duration_ms=round(duration_ms, 3), start_mark=start, end_mark=end)
        return duration_ms

    # ------------------------------------------------------------------
    # Delivery control
    # ------------------------------------------------------------------

    async def flush(self) -> Optional[DeliveryOutcome]:
        """Ship the current batch now; resolves with its terminal outcome."""
        return await self._pipeline.flush()

    async def drain(self) -> list[DeliveryOutcome]:
        return await self._pipeline.drain()

    async def aclose(self) -> list[DeliveryOutcome]:
        return await self._pipeline.aclose()

    def close(self) -> None:
        self._pipeline.close()


def _merge(
    base: Mapping[str, Any],
    context: Optional[Mapping[str, Any]],
    fields: Mapping[str, Any],
) -> Mapping[str, Any]:
    if not context and not fields:
        return base
    if context is not None and not isinstance(context, Mapping):
        context = {"value": context}
    return {**base, **(context or {}), **fields}


def create_logger(
    config: Optional[LoggerConfig] = None,
    *,
    sink: Optional[Sink] = None,
    transport: Optional[Transport] = None,
    **options: Any,
) -> Logger:
    """Build an isolated logger with its own pipeline.

    Args:
        config: Configuration; built from ``options`` when omitted.
        sink: Render capability (``None``: no local output).
        transport: Delivery capability (default: HTTP when
            ``remote_endpoint`` is configured).
        **options: ``LoggerConfig`` fields, applied over ``config``.

    Raises:
        ConfigurationError: Invalid configuration values.
    """
    if config is None:
        config = LoggerConfig(**options)
    elif options:
        config = config.replace(**options)
    pipeline = Pipeline(config, sink=sink, transport=transport)
    return Logger(pipeline, tags=config.tags, context=config.global_context)
