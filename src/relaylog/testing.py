"""
Helpers for testing code that logs through relaylog.

    logger, sink, transport = create_test_logger(max_batch_size=2)
    logger.info("hello", user="x")
    assert sink.messages() == ["hello"]
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Optional

from .exceptions import DeliveryFailure
from .logger import Logger, create_logger
from .types import Batch, LogLevel, LogRecord


class CapturingSink:
    """Sink that keeps every rendered record in memory."""

    def __init__(self) -> None:
        self.records: list[LogRecord] = []

    def __call__(self, record: LogRecord) -> None:
        self.records.append(record)

    def messages(self, level: Optional[LogLevel] = None) -> list[str]:
        return [r.message for r in self.records if level is None or r.level == level]

    def clear(self) -> None:
        self.records.clear()


class RecordingTransport:
    """Transport that records each attempt and can fail on demand.

    Args:
        failures: Attempt outcomes consumed in order; ``True`` makes that
            attempt fail. Once exhausted every attempt succeeds unless
            ``always_fail`` is set.
        always_fail: Fail every attempt.
    """

    def __init__(self, failures: Iterable[bool] = (), *, always_fail: bool = False) -> None:
        self._failures = list(failures)
        self.always_fail = always_fail
        self.attempts: list[Batch] = []
        self.delivered: list[Batch] = []

    async def __call__(self, batch: Batch) -> None:
        self.attempts.append(batch)
        fail = self._failures.pop(0) if self._failures else self.always_fail
        if fail:
            raise DeliveryFailure(reason="simulated failure", status_code=503)
        self.delivered.append(batch)

    @property
    def delivered_records(self) -> list[LogRecord]:
        return [record for batch in self.delivered for record in batch.records]


def create_test_logger(**options: Any) -> tuple[Logger, CapturingSink, RecordingTransport]:
    """Isolated logger wired to a capturing sink and a recording transport."""
    sink = CapturingSink()
    transport = options.pop("transport", None) or RecordingTransport()
    options.setdefault("level", LogLevel.TRACE)
    logger = create_logger(sink=sink, transport=transport, **options)
    return logger, sink, transport
