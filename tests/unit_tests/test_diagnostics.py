"""
Internal diagnostics tests: relaylog's own structlog loggers.
"""

from __future__ import annotations

from structlog.testing import capture_logs

from relaylog._diagnostics import get_logger, is_internal, is_internal_event


class TestGetLogger:
    def test_events_carry_the_logger_name(self):
        logger = get_logger("relaylog.delivery")

        with capture_logs() as logs:
            logger.warning("delivery_retry", attempt=1)

        assert logs == [{"event": "delivery_retry", "attempt": 1, "_name": "relaylog.delivery", "log_level": "warning"}]

    def test_module_level_loggers_follow_later_configuration(self):
        """Loggers created at import time still honour capture_logs"""
        from relaylog import batching, delivery, redaction

        with capture_logs() as logs:
            batching.logger.info("a")
            delivery.logger.info("b")
            redaction.logger.info("c")

        assert [entry["_name"] for entry in logs] == ["relaylog.batching", "relaylog.delivery", "relaylog.redaction"]


class TestIsInternal:
    def test_names(self):
        assert is_internal("relaylog")
        assert is_internal("relaylog.core")
        assert not is_internal("relaylogger")
        assert not is_internal(None)

    def test_event_dicts(self):
        assert is_internal_event({"event": "x", "_name": "relaylog.redaction"})
        assert is_internal_event({"event": "x", "logger": "relaylog.core"})
        assert not is_internal_event({"event": "x", "_name": "app.api"})
        assert not is_internal_event({"event": "x"})
