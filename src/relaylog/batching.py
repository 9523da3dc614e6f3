"""
Batch accumulator: collects redacted records and decides when a batch ships.

A batch is flushed when it reaches ``max_batch_size`` records, when
``flush_interval`` seconds have elapsed since its first record, or on an
explicit :meth:`BatchAccumulator.flush`. The swap of the current buffer for
an empty one is synchronous, and the flushed records are frozen into a
:class:`~relaylog.types.Batch` before ``on_flush`` sees them.

The accumulator is single-writer: it is only mutated from the event loop
that drives it. Appends from other threads are marshalled onto that loop.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from enum import Enum
from typing import Optional

from ._diagnostics import get_logger
from .types import Batch, FlushTrigger, LogRecord

logger = get_logger("relaylog.batching")


class AccumulatorState(str, Enum):
    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class BatchAccumulator:
    """Size/time triggered batching of log records.

    Args:
        max_batch_size: Records per batch; reaching it flushes immediately.
        flush_interval: Seconds after a batch's first record before it is
            flushed by the timer. Timers need a running event loop.
        on_flush: Receives every flushed batch. Exceptions are logged and
            contained.
    """

    def __init__(
        self,
        max_batch_size: int,
        flush_interval: float,
        on_flush: Callable[[Batch], None],
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")
        if flush_interval <= 0:
            raise ValueError("flush_interval must be > 0")
        self._max_batch_size = max_batch_size
        self._flush_interval = flush_interval
        self._on_flush = on_flush
        self._clock = clock

        self._buffer: list[LogRecord] = []
        self._opened_at: Optional[float] = None
        self._sequence = 0
        self._state = AccumulatorState.EMPTY
        self._timer: Optional[asyncio.TimerHandle] = None
        self._timer_loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def max_batch_size(self) -> int:
        return self._max_batch_size

    @property
    def flush_interval(self) -> float:
        return self._flush_interval

    @property
    def state(self) -> AccumulatorState:
        return self._state

    @property
    def pending(self) -> int:
        """Records waiting in the current batch."""
        return len(self._buffer)

    @property
    def sequence(self) -> int:
        """Sequence number of the most recently flushed batch."""
        return self._sequence

    def append(self, record: LogRecord) -> None:
        """Add a record to the current batch, flushing it when full."""
        loop = _running_loop()
        bound = self._loop
        if loop is None and bound is not None and bound.is_running() and not bound.is_closed():
            bound.call_soon_threadsafe(self._append, record, bound)
            return
        self._append(record, loop)

    def flush(self, trigger: FlushTrigger = FlushTrigger.MANUAL) -> Optional[Batch]:
        """Swap out the current batch and hand it to ``on_flush``.

        Returns the flushed batch, or ``None`` when nothing was pending.
        """
        self._cancel_timer()
        if not self._buffer:
            return None

        self._sequence += 1
        batch = Batch(
            records=tuple(self._buffer),
            sequence=self._sequence,
            created_at=self._opened_at if self._opened_at is not None else self._clock(),
            trigger=trigger,
        )
        self._buffer = []
        self._opened_at = None

        # FLUSHING while on_flush owns the batch; appends made meanwhile start the next one
        self._state = AccumulatorState.FLUSHING
        try:
            self._on_flush(batch)
        except Exception:
            logger.exception("flush_callback_failed", sequence=batch.sequence, size=len(batch))
        finally:
            self._state = AccumulatorState.ACCUMULATING if self._buffer else AccumulatorState.EMPTY
        return batch

    def close(self) -> None:
        """Stop the interval timer. Pending records stay until flushed."""
        self._cancel_timer()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _append(self, record: LogRecord, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        if loop is not None:
            self._loop = loop
            if self._timer is not None and (self._timer_loop is not loop or self._timer_loop.is_closed()):
                # Armed on a loop that is gone; it will never fire
                self._cancel_timer()

        if not self._buffer:
            self._opened_at = self._clock()
            self._state = AccumulatorState.ACCUMULATING
        self._buffer.append(record)

        if len(self._buffer) >= self._max_batch_size:
            self.flush(FlushTrigger.SIZE)
        elif self._timer is None and loop is not None:
            self._arm_timer(loop, self._remaining())

    def _remaining(self) -> float:
        if self._opened_at is None:
            return self._flush_interval
        return max(0.0, self._flush_interval - (self._clock() - self._opened_at))

    def _arm_timer(self, loop: asyncio.AbstractEventLoop, delay: float) -> None:
        self._timer = loop.call_later(delay, self._on_timer)
        self._timer_loop = loop

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            self._timer_loop = None

    def _on_timer(self) -> None:
        self._timer = None
        self._timer_loop = None
        if not self._buffer:
            return
        remaining = self._remaining()
        if remaining > 0 and self._loop is not None:
            # Timer resolution can fire marginally early
            self._arm_timer(self._loop, remaining)
            return
        self.flush(FlushTrigger.INTERVAL)
