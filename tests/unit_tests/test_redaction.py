"""
Redaction engine tests.

Covers pattern redaction, custom transforms, depth bounds and the
fail-closed marker.
"""

from __future__ import annotations

import re

from structlog.testing import capture_logs

from relaylog.constants import REDACTED, REDACTION_FAILED, TRUNCATED
from relaylog.redaction import RedactionPolicy, is_redaction_failure, mask_emails, redact


class TestPatternRedaction:
    def test_nested_keys(self):
        """Sensitive keys are masked at every level, other values are kept"""
        context = {"password": "x", "nested": {"token": "y", "ok": "z"}}

        assert redact(context) == {"password": REDACTED, "nested": {"token": REDACTED, "ok": "z"}}

    def test_case_insensitive_substring(self):
        context = {"X-Auth-Header": "abc", "apiKey": "k", "SessionCookie": "c", "username": "u"}

        result = redact(context)

        assert result == {"X-Auth-Header": REDACTED, "apiKey": REDACTED, "SessionCookie": REDACTED, "username": "u"}

    def test_sensitive_container_replaced_whole(self):
        """A matching key replaces its value without recursing into it"""
        result = redact({"credentials": {"user": "u", "pass": "p"}})

        assert result == {"credentials": REDACTED}

    def test_lists_are_walked(self):
        result = redact({"users": [{"name": "a", "secret": "s"}, {"name": "b"}]})

        assert result == {"users": [{"name": "a", "secret": REDACTED}, {"name": "b"}]}

    def test_custom_fields_and_regex(self):
        policy = RedactionPolicy.build(["ssn", re.compile(r"^card_")])

        result = redact({"SSN": "123", "card_number": "4111", "discard_reason": "n/a", "token": "t"}, policy)

        assert result == {"SSN": REDACTED, "card_number": REDACTED, "discard_reason": "n/a", "token": REDACTED}

    def test_without_defaults(self):
        policy = RedactionPolicy.build(["ssn"], include_defaults=False)

        assert redact({"password": "x", "ssn": "1"}, policy) == {"password": "x", "ssn": REDACTED}

    def test_input_is_not_mutated(self):
        context = {"password": "x", "nested": {"token": "y"}}

        redact(context)

        assert context == {"password": "x", "nested": {"token": "y"}}

    def test_depth_is_bounded(self):
        policy = RedactionPolicy.build(max_depth=2)

        result = redact({"a": {"b": {"c": {"d": 1}}}}, policy)

        assert result == {"a": {"b": TRUNCATED}}


class TestTransform:
    def test_transform_runs_after_patterns(self):
        seen = []

        def transform(context):
            seen.append(context)
            return context

        redact({"password": "x", "ok": 1}, RedactionPolicy.build(transform=transform))

        assert seen == [{"password": REDACTED, "ok": 1}]

    def test_transform_cannot_remove_markers(self):
        """Pattern redaction is reapplied to whatever the transform returns"""

        def leaky(context):
            return {**context, "password": "restored", "api_token": "new"}

        result = redact({"password": "x"}, RedactionPolicy.build(transform=leaky))

        assert result == {"password": REDACTED, "api_token": REDACTED}

    def test_mask_emails(self):
        policy = RedactionPolicy.build(transform=mask_emails)

        result = redact({"email": "john.doe@example.com", "note": "cc alice@corp.io", "n": 3}, policy)

        assert result == {"email": "j***@example.com", "note": "cc a***@corp.io", "n": 3}


class TestFailureMarker:
    def test_failing_transform_collapses_payload(self):
        def broken(context):
            raise RuntimeError(f"cannot handle {context}")

        with capture_logs() as logs:
            result = redact({"user": "visible"}, RedactionPolicy.build(transform=broken))

        assert result == {"_redaction": REDACTION_FAILED}
        assert is_redaction_failure(result)
        assert [entry["event"] for entry in logs] == ["redaction_failed"]
        assert logs[0]["error_type"] == "RuntimeError"
        assert logs[0]["log_level"] == "warning"
        assert "visible" not in repr(logs)

    def test_non_mapping_transform_result(self):
        result = redact({"a": 1}, RedactionPolicy.build(transform=lambda context: ["not", "a", "mapping"]))

        assert is_redaction_failure(result)

    def test_regular_payload_is_not_a_failure(self):
        assert not is_redaction_failure({"a": 1})
