"""
The shared pipeline behind every logger handle.

All mutable logging state lives here: the render sink, the batch
accumulator, the delivery coordinator and the counters. Logger handles only
hold a reference to it.
"""

from __future__ import annotations

import asyncio
import dataclasses
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from .batching import BatchAccumulator
from .config import LoggerConfig
from .delivery import DeliveryCoordinator
from .redaction import RedactionPolicy, is_redaction_failure, redact
from .transport import HttpTransport
from .types import Batch, DeliveryOutcome, FlushTrigger, LogLevel, LogRecord, Sink, Transport


@dataclass
class PipelineStats:
    """Counters for one pipeline.

    Log calls may come from several threads, so every update goes through
    the lock.
    """

    records_rendered: int = 0
    records_enqueued: int = 0
    sink_failures: int = 0
    redaction_fallbacks: int = 0
    internal_errors: int = 0
    batches_flushed: int = 0
    flush_triggers: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def incr(self, counter: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, counter, getattr(self, counter) + amount)

    def record_flush(self, trigger: str) -> None:
        with self._lock:
            self.batches_flushed += 1
            self.flush_triggers[trigger] = self.flush_triggers.get(trigger, 0) + 1

    def as_dict(self) -> dict[str, Any]:
        with self._lock:
            data = {f.name: getattr(self, f.name) for f in dataclasses.fields(self) if f.init}
            data["flush_triggers"] = dict(self.flush_triggers)
            return data


class Pipeline:
    """Render + redact + batch + deliver, configured once.

    Args:
        config: Validated logger configuration.
        sink: Render capability; ``None`` disables local output.
        transport: Delivery capability; defaults to :class:`HttpTransport`
            when ``config.remote_endpoint`` is set. ``None`` and no endpoint
            disables remote delivery.
    """

    def __init__(
        self,
        config: LoggerConfig,
        *,
        sink: Optional[Sink] = None,
        transport: Optional[Transport] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.config = config
        self.stats = PipelineStats()
        self._clock = clock
        self._marks: dict[str, float] = {}
        self._marks_lock = threading.Lock()
        self._sink = sink
        self._policy = RedactionPolicy.build(
            config.sensitive_fields,
            transform=config.redaction_transform,
            max_depth=config.redaction_max_depth,
        )

        if transport is None and config.remote_endpoint:
            transport = HttpTransport(
                config.remote_endpoint,
                client_id=config.client_id,
                headers=config.remote_headers,
                timeout=config.remote_timeout,
            )
        self._transport = transport

        self._coordinator: Optional[DeliveryCoordinator] = None
        self._accumulator: Optional[BatchAccumulator] = None
        if transport is not None:
            self._coordinator = DeliveryCoordinator(
                transport,
                max_retries=config.max_retries,
                base_delay=config.base_delay,
                on_success=config.on_success,
                on_error=config.on_error,
            )
            self._accumulator = BatchAccumulator(
                config.max_batch_size,
                config.flush_interval,
                on_flush=self._hand_off_to(self._coordinator),
            )

        self._closed = False
        self._closing: Optional[asyncio.Task[list[DeliveryOutcome]]] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def remote_enabled(self) -> bool:
        return self._accumulator is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def policy(self) -> RedactionPolicy:
        return self._policy

    @property
    def accumulator(self) -> Optional[BatchAccumulator]:
        return self._accumulator

    @property
    def coordinator(self) -> Optional[DeliveryCoordinator]:
        return self._coordinator

    def is_enabled_for(self, level: LogLevel) -> bool:
        return self.config.enabled and not self._closed and level >= self.config.level

    # ------------------------------------------------------------------
    # Record path
    # ------------------------------------------------------------------

    def dispatch(self, record: LogRecord) -> None:
        """Render ``record`` and, with remote delivery on, enqueue a redacted copy."""
        self._render(record)
        if self._accumulator is not None:
            self._enqueue(self._accumulator, record)

    def _render(self, record: LogRecord) -> None:
        if self._sink is None:
            return
        try:
            self._sink(record)
        except Exception:
            # Rendering must never break the caller
            self.stats.incr("sink_failures")
        else:
            self.stats.incr("records_rendered")

    def _enqueue(self, accumulator: BatchAccumulator, record: LogRecord) -> None:
        redacted = redact(record.context, self._policy)
        if is_redaction_failure(redacted):
            self.stats.incr("redaction_fallbacks")
        accumulator.append(record.with_context(redacted))
        self.stats.incr("records_enqueued")

    def _hand_off_to(self, coordinator: DeliveryCoordinator) -> Callable[[Batch], None]:
        def hand_off(batch: Batch) -> None:
            self.stats.record_flush(batch.trigger.value)
            coordinator.submit(batch)

        return hand_off

    # ------------------------------------------------------------------
    # Timing marks
    # ------------------------------------------------------------------

    def mark(self, name: str) -> float:
        """Record the current time under ``name`` (replacing an older mark)."""
        now = self._clock()
        with self._marks_lock:
            self._marks[name] = now
        return now

    def elapsed(self, start: str, end: Optional[str] = None) -> float:
        """Seconds from mark ``start`` to mark ``end`` (default: now).

        Raises:
            KeyError: A named mark was never recorded.
        """
        now = self._clock()
        with self._marks_lock:
            started = self._marks[start]
            ended = self._marks[end] if end is not None else now
        return ended - started

    # ------------------------------------------------------------------
    # Flush / teardown
    # ------------------------------------------------------------------

    async def flush(self) -> Optional[DeliveryOutcome]:
        """Flush the current batch and wait for its terminal outcome."""
        if self._accumulator is None or self._coordinator is None:
            return None
        batch = self._accumulator.flush(FlushTrigger.MANUAL)
        if batch is None:
            return None
        return await self._coordinator.wait(batch)

    async def drain(self) -> list[DeliveryOutcome]:
        """Wait for every in-flight batch, including ones still in backoff."""
        if self._coordinator is None:
            return []
        return await self._coordinator.drain()

    async def aclose(self) -> list[DeliveryOutcome]:
        """Flush what is pending, wait for delivery, then release resources."""
        if self._closed:
            return []
        self._closed = True

        outcomes: list[DeliveryOutcome] = []
        if self._accumulator is not None and self._coordinator is not None:
            self._accumulator.flush(FlushTrigger.SHUTDOWN)
            self._accumulator.close()
            outcomes = await self._coordinator.drain()

        transport_close = getattr(self._transport, "aclose", None)
        if callable(transport_close):
            await transport_close()
        sink_close = getattr(self._sink, "close", None)
        if callable(sink_close):
            sink_close()
        return outcomes

    def close(self) -> None:
        """Best-effort synchronous teardown.

        Outside an event loop this runs :meth:`aclose` to completion. Inside
        a running loop it schedules it; await :meth:`aclose` instead when the
        outcome matters.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.aclose())
            return
        if self._closing is None:
            self._closing = loop.create_task(self.aclose())

    def snapshot(self) -> dict[str, Any]:
        """Point-in-time view of the counters."""
        data = self.stats.as_dict()
        data["pending"] = self._accumulator.pending if self._accumulator is not None else 0
        if self._coordinator is not None:
            data.update(
                delivery_attempts=self._coordinator.attempts,
                batches_delivered=self._coordinator.delivered,
                batches_dropped=self._coordinator.dropped,
                in_flight=self._coordinator.in_flight,
            )
        return data
