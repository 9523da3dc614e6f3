"""
Delivery of flushed batches with bounded exponential-backoff retry.

Each batch gets its own :class:`RetryState` and its own asyncio task, so a
batch stuck in backoff never holds up batches flushed after it. Ordering
across batches is therefore not guaranteed once retries interleave.

``max_retries`` counts retries after the first attempt: a batch is sent at
most ``1 + max_retries`` times. Retry ``n`` waits ``base_delay * 2 ** (n - 1)``
seconds. Exactly one of ``on_success`` / ``on_error`` fires per batch.
Resent batches carry no deduplication id, so a transport that fails after
the collector accepted the payload can cause duplicates.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional

from ._diagnostics import get_logger
from .exceptions import DeliveryFailure
from .types import Batch, DeliveryOutcome, Transport

logger = get_logger("relaylog.delivery")

SuccessCallback = Callable[[Batch], None]
ErrorCallback = Callable[[DeliveryFailure, Batch], None]
SleepFn = Callable[[float], Awaitable[None]]


@dataclass
class RetryState:
    """Per-batch delivery bookkeeping, owned by the coordinator."""

    batch: Batch
    attempts: int = 0
    next_retry_at: Optional[float] = None
    last_error: Optional[DeliveryFailure] = None
    finalized: bool = False


def backoff_delay(base_delay: float, retry: int) -> float:
    """Delay before retry number ``retry`` (1-based)."""
    return base_delay * (2 ** (retry - 1))


def _as_failure(exc: Exception) -> DeliveryFailure:
    if isinstance(exc, DeliveryFailure):
        return exc
    failure = DeliveryFailure(reason=f"{type(exc).__name__}: {exc}")
    failure.__cause__ = exc
    return failure


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class DeliveryCoordinator:
    """Ships batches through a transport and finalizes each exactly once."""

    def __init__(
        self,
        transport: Transport,
        *,
        max_retries: int,
        base_delay: float,
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        self._transport = transport
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._on_success = on_success
        self._on_error = on_error
        self._sleep = sleep

        self._tasks: dict[int, asyncio.Task[DeliveryOutcome]] = {}
        self._deferred: deque[Batch] = deque()

        self.attempts = 0
        self.delivered = 0
        self.dropped = 0

    @property
    def in_flight(self) -> int:
        """Batches submitted but not yet finalized."""
        return len(self._tasks) + len(self._deferred)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def submit(self, batch: Batch) -> None:
        """Start delivering ``batch`` in the background.

        Without a running event loop the batch is parked and launched by
        the next call made from inside a loop.
        """
        loop = _running_loop()
        if loop is None:
            self._deferred.append(batch)
            return
        self._launch_deferred(loop)
        self._launch(loop, batch)

    async def wait(self, batch: Batch) -> Optional[DeliveryOutcome]:
        """Wait for the terminal outcome of a submitted batch."""
        self._launch_deferred(asyncio.get_running_loop())
        task = self._tasks.get(batch.sequence)
        if task is None:
            return None
        return await asyncio.shield(task)

    async def drain(self) -> list[DeliveryOutcome]:
        """Wait until every submitted batch has reached a terminal outcome."""
        outcomes: list[DeliveryOutcome] = []
        seen: set[asyncio.Task[DeliveryOutcome]] = set()
        self._launch_deferred(asyncio.get_running_loop())
        while True:
            pending = [task for task in self._tasks.values() if task not in seen]
            if not pending:
                return outcomes
            seen.update(pending)
            outcomes.extend(await asyncio.gather(*pending))

    def _launch(self, loop: asyncio.AbstractEventLoop, batch: Batch) -> None:
        task = loop.create_task(self.deliver(batch), name=f"relaylog-batch-{batch.sequence}")
        self._tasks[batch.sequence] = task
        task.add_done_callback(lambda _t, seq=batch.sequence: self._tasks.pop(seq, None))

    def _launch_deferred(self, loop: asyncio.AbstractEventLoop) -> None:
        while self._deferred:
            self._launch(loop, self._deferred.popleft())

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def deliver(self, batch: Batch) -> DeliveryOutcome:
        """Send ``batch``, retrying with backoff until success or budget exhaustion."""
        state = RetryState(batch=batch)
        while True:
            state.attempts += 1
            self.attempts += 1
            try:
                await self._transport(batch)
            except Exception as exc:
                state.last_error = _as_failure(exc)
                retry = state.attempts
                if retry <= self._max_retries:
                    delay = backoff_delay(self._base_delay, retry)
                    state.next_retry_at = time.monotonic() + delay
                    logger.warning(
                        "delivery_retry",
                        sequence=batch.sequence,
                        attempt=state.attempts,
                        max_retries=self._max_retries,
                        delay=delay,
                        error=state.last_error.reason,
                    )
                    await self._sleep(delay)
                    continue

                logger.error(
                    "delivery_abandoned",
                    sequence=batch.sequence,
                    attempts=state.attempts,
                    size=len(batch),
                    error=state.last_error.reason,
                )
                return self._finalize(state, delivered=False)
            else:
                return self._finalize(state, delivered=True)

    def _finalize(self, state: RetryState, *, delivered: bool) -> DeliveryOutcome:
        outcome = DeliveryOutcome(
            batch=state.batch,
            delivered=delivered,
            attempts=state.attempts,
            error=None if delivered else state.last_error,
        )
        if state.finalized:
            return outcome
        state.finalized = True
        state.next_retry_at = None

        if delivered:
            self.delivered += 1
            self._invoke("on_success", self._on_success, state.batch)
        else:
            self.dropped += 1
            self._invoke("on_error", self._on_error, state.last_error, state.batch)
        return outcome

    def _invoke(self, name: str, callback: Optional[Callable[..., None]], *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("outcome_callback_failed", callback=name)
