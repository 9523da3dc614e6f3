"""
End-to-end pipeline tests: logger -> redaction -> batching -> HTTP delivery.

The collector is an in-process httpx.MockTransport.
"""

from __future__ import annotations

import asyncio

import httpx
import orjson
import pytest

from relaylog import HttpTransport, create_logger
from relaylog.constants import REDACTED, REDACTION_FAILED
from relaylog.redaction import mask_emails
from relaylog.testing import CapturingSink, RecordingTransport, create_test_logger
from relaylog.types import FlushTrigger


class Collector:
    """Fake collector answering with a scripted list of status codes."""

    def __init__(self, statuses=()):
        self.statuses = list(statuses)
        self.payloads: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        status = self.statuses.pop(0) if self.statuses else 200
        if status < 300:
            self.payloads.append(orjson.loads(request.content))
        return httpx.Response(status)

    @property
    def messages(self) -> list[str]:
        return [log["message"] for payload in self.payloads for log in payload["logs"]]


def _http_logger(collector: Collector, **options):
    client = httpx.AsyncClient(transport=httpx.MockTransport(collector))
    transport = HttpTransport("https://collector.test/v1/logs", client_id="it", client=client)
    sink = CapturingSink()
    return create_logger(sink=sink, transport=transport, **options), sink, client


class TestHttpDelivery:
    @pytest.mark.asyncio
    async def test_size_triggered_batches_reach_collector(self):
        collector = Collector()
        logger, sink, client = _http_logger(collector, max_batch_size=2)

        for i in range(5):
            logger.info(f"event-{i}", user_password="secret", step=i)
        outcomes = await logger.aclose()

        assert [len(o.batch) for o in outcomes] == [2, 2, 1]
        assert [o.batch.trigger for o in outcomes] == [FlushTrigger.SIZE, FlushTrigger.SIZE, FlushTrigger.SHUTDOWN]
        assert sorted(collector.messages) == [f"event-{i}" for i in range(5)]
        for payload in collector.payloads:
            assert payload["clientId"] == "it"
            for log in payload["logs"]:
                assert log["context"]["user_password"] == REDACTED
        assert len(sink.records) == 5
        await client.aclose()

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        collector = Collector(statuses=[503, 500])
        delivered = []
        logger, _, client = _http_logger(
            collector, max_retries=3, base_delay=0.01, on_success=delivered.append
        )

        logger.warn("flaky collector")
        outcome = await logger.flush()

        assert outcome.delivered is True
        assert outcome.attempts == 3
        assert collector.messages == ["flaky collector"]
        assert delivered == [outcome.batch]
        await logger.aclose()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_budget_exhaustion_drops_batch(self):
        collector = Collector(statuses=[500] * 10)
        errors = []
        logger, _, client = _http_logger(
            collector,
            max_retries=2,
            base_delay=0.0,
            on_error=lambda failure, batch: errors.append(failure.status_code),
        )

        logger.error("never arrives")
        outcome = await logger.flush()

        assert outcome.delivered is False
        assert errors == [500]
        assert collector.payloads == []
        assert logger.stats["batches_dropped"] == 1
        assert logger.stats["delivery_attempts"] == 3
        await logger.aclose()
        await client.aclose()


class TestIntervalDelivery:
    @pytest.mark.asyncio
    async def test_single_record_is_shipped_by_the_timer(self):
        logger, _, transport = create_test_logger(flush_interval=0.05)

        logger.info("lonely")
        await asyncio.sleep(0.2)
        await logger.drain()

        assert [r.message for r in transport.delivered_records] == ["lonely"]
        assert transport.delivered[0].trigger is FlushTrigger.INTERVAL
        assert logger.stats["flush_triggers"] == {"interval": 1}


class TestRedactionInPipeline:
    @pytest.mark.asyncio
    async def test_transform_and_failure_marker(self):
        logger, _, transport = create_test_logger(redaction_transform=mask_emails)

        logger.info("invite", email="jane@example.com", api_key="k")
        await logger.flush()

        (record,) = transport.delivered_records
        assert dict(record.context) == {"email": "j***@example.com", "api_key": REDACTED}

        def broken(context):
            raise ValueError("bad transform")

        failing, _, failing_transport = create_test_logger(redaction_transform=broken)
        failing.info("payload", user="u1")
        await failing.flush()

        (record,) = failing_transport.delivered_records
        assert dict(record.context) == {"_redaction": REDACTION_FAILED}
        assert failing.stats["redaction_fallbacks"] == 1


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_aclose_is_idempotent_and_stops_logging(self):
        logger, sink, transport = create_test_logger()

        logger.info("before close")
        first = await logger.aclose()
        second = await logger.aclose()
        logger.info("after close")

        assert len(first) == 1
        assert second == []
        assert sink.messages() == ["before close"]
        assert len(transport.delivered) == 1

    def test_sync_logging_then_close(self):
        """Records logged without an event loop are delivered on close"""
        logger, _, transport = create_test_logger(max_batch_size=2)

        for i in range(3):
            logger.info(f"sync-{i}")
        logger.close()

        assert sorted(r.message for r in transport.delivered_records) == ["sync-0", "sync-1", "sync-2"]
        assert logger.pipeline.closed is True

    @pytest.mark.asyncio
    async def test_stats_snapshot(self):
        logger, _, _ = create_test_logger(max_batch_size=2)

        logger.info("a")
        logger.info("b")
        logger.info("c")
        await logger.drain()
        stats = logger.stats

        assert stats["records_rendered"] == 3
        assert stats["records_enqueued"] == 3
        assert stats["batches_flushed"] == 1
        assert stats["batches_delivered"] == 1
        assert stats["pending"] == 1
        assert stats["in_flight"] == 0
        await logger.aclose()


class TestTestingHelpers:
    @pytest.mark.asyncio
    async def test_scripted_failures(self):
        transport = RecordingTransport(failures=[True, False])
        logger, _, returned = create_test_logger(transport=transport, base_delay=0.0)

        logger.info("retry me")
        outcome = await logger.flush()

        assert returned is transport
        assert outcome.attempts == 2
        assert len(transport.attempts) == 2
        assert len(transport.delivered) == 1
