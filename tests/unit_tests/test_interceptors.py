"""
Bridge tests: stdlib logging handler and structlog processor.
"""

from __future__ import annotations

import logging
import sys

import structlog

from relaylog.interceptors import (
    RedirectStdLibHandler,
    RelayProcessor,
    intercept_stdlib_logging,
    remove_stdlib_interception,
)
from relaylog.testing import create_test_logger
from relaylog.types import LogLevel


def _stdlib_record(name: str, level: int, msg: str, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, None, exc_info)


class TestRedirectStdLibHandler:
    def test_forwards_level_message_and_name(self):
        logger, sink, _ = create_test_logger()
        handler = RedirectStdLibHandler(logger)

        handler.emit(_stdlib_record("a.b.c.d", logging.ERROR, "query failed"))

        (record,) = sink.records
        assert record.level is LogLevel.ERROR
        assert record.message == "query failed"
        assert record.context["logger"] == "c.d"

    def test_formats_exception(self):
        logger, sink, _ = create_test_logger()
        handler = RedirectStdLibHandler(logger)
        try:
            raise KeyError("missing")
        except KeyError:
            handler.emit(_stdlib_record("app", logging.ERROR, "lookup", exc_info=sys.exc_info()))

        assert "KeyError" in sink.records[0].context["exc_info"]

    def test_skips_internal_loggers(self):
        logger, sink, _ = create_test_logger()
        handler = RedirectStdLibHandler(logger)

        handler.emit(_stdlib_record("relaylog.delivery", logging.WARNING, "delivery_retry"))

        assert sink.records == []

    def test_intercept_and_remove(self):
        logger, sink, _ = create_test_logger()
        handler = intercept_stdlib_logging(logger, level="debug")

        assert logging.getLogger().handlers == [handler]
        assert logging.getLogger().level == logging.DEBUG
        logging.getLogger("lib").debug("visible")

        remove_stdlib_interception(handler)
        logging.getLogger("lib").debug("not forwarded")

        assert sink.messages() == ["visible"]


class TestRelayProcessor:
    def test_forwards_and_passes_through(self):
        logger, sink, _ = create_test_logger()
        processor = RelayProcessor(logger)
        event_dict = {"event": "user_created", "user_id": 7}

        result = processor(None, "warning", event_dict)

        assert result is event_dict
        (record,) = sink.records
        assert record.level is LogLevel.WARN
        assert record.message == "user_created"
        assert dict(record.context) == {"user_id": 7}

    def test_unknown_method_defaults_to_info(self):
        logger, sink, _ = create_test_logger()

        RelayProcessor(logger)(None, "log", {"event": "x"})

        assert sink.records[0].level is LogLevel.INFO

    def test_skips_internal_events(self):
        logger, sink, _ = create_test_logger()

        RelayProcessor(logger)(None, "error", {"event": "delivery_abandoned", "logger": "relaylog.delivery"})

        assert sink.records == []

    def test_in_structlog_chain(self):
        logger, sink, _ = create_test_logger()
        structlog.configure(
            processors=[RelayProcessor(logger), structlog.processors.KeyValueRenderer()],
            logger_factory=structlog.ReturnLoggerFactory(),
        )
        try:
            rendered = structlog.get_logger().info("order_placed", order_id="o1")
        finally:
            structlog.reset_defaults()

        assert sink.messages() == ["order_placed"]
        assert "order_id='o1'" in rendered

    def test_skips_events_named_by_initial_value(self):
        logger, sink, _ = create_test_logger()

        RelayProcessor(logger)(None, "warning", {"event": "redaction_failed", "_name": "relaylog.redaction"})

        assert sink.records == []

    def test_logger_name_forwarded_as_context(self):
        logger, sink, _ = create_test_logger()

        RelayProcessor(logger)(None, "info", {"event": "cache_miss", "_name": "app.cache", "key_id": 3})

        assert dict(sink.records[0].context) == {"key_id": 3, "logger": "app.cache"}

    def test_relaylog_diagnostics_do_not_loop_back(self):
        """relaylog's own structlog events pass through the chain but stay out of the pipeline"""
        from relaylog import redaction

        logger, sink, _ = create_test_logger()
        structlog.configure(
            processors=[RelayProcessor(logger), structlog.processors.KeyValueRenderer()],
            logger_factory=structlog.ReturnLoggerFactory(),
        )
        try:
            rendered = redaction.logger.warning("redaction_failed", error_type="ValueError")
        finally:
            structlog.reset_defaults()

        assert sink.records == []
        assert "redaction_failed" in rendered
