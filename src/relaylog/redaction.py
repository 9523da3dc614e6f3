"""
Redaction of sensitive fields before records leave the process.

Pattern redaction replaces the value of every key whose name matches a
sensitive pattern with ``[REDACTED]``. An optional transform may mask more
data afterwards; pattern redaction is applied again to its output so a
transform can never undo a marker. Any failure collapses the whole payload
into a single ``[REDACTION_FAILED]`` marker.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Pattern, Union

from ._diagnostics import get_logger
from .constants import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_SENSITIVE_PATTERNS,
    REDACTED,
    REDACTION_FAILED,
    REDACTION_FAILED_KEY,
    TRUNCATED,
)
from .exceptions import RedactionFailure
from .types import Context, ContextValue, normalize_context

logger = get_logger("relaylog.redaction")

RedactionTransform = Callable[[Context], Mapping[str, Any]]
FieldPattern = Union[str, Pattern[str]]

_EMAIL_RE = re.compile(r"\b([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")


def _compile(pattern: FieldPattern) -> Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(re.escape(pattern), re.IGNORECASE)


@dataclass(frozen=True)
class RedactionPolicy:
    """Read-only redaction configuration, safe to share between pipelines."""

    patterns: tuple[Pattern[str], ...]
    transform: Optional[RedactionTransform] = None
    max_depth: int = DEFAULT_MAX_DEPTH

    @classmethod
    def build(
        cls,
        fields: Iterable[FieldPattern] = (),
        *,
        transform: Optional[RedactionTransform] = None,
        include_defaults: bool = True,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> "RedactionPolicy":
        """Compile field patterns.

        Strings match as case-insensitive substrings of the key; compiled
        regexes are used as given (``search`` semantics).
        """
        sources: list[FieldPattern] = list(DEFAULT_SENSITIVE_PATTERNS) if include_defaults else []
        sources.extend(fields)
        return cls(patterns=tuple(_compile(p) for p in sources), transform=transform, max_depth=max_depth)

    def is_sensitive(self, key: str) -> bool:
        return any(pattern.search(key) for pattern in self.patterns)


DEFAULT_POLICY = RedactionPolicy.build()


def _redact_value(value: ContextValue, policy: RedactionPolicy, depth: int) -> ContextValue:
    if isinstance(value, dict):
        if depth >= policy.max_depth:
            return TRUNCATED
        return {
            key: REDACTED if policy.is_sensitive(key) else _redact_value(item, policy, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, list):
        if depth >= policy.max_depth:
            return TRUNCATED
        return [_redact_value(item, policy, depth + 1) for item in value]
    return value


def _apply_patterns(context: Mapping[str, Any], policy: RedactionPolicy) -> Context:
    normalized = normalize_context(context, policy.max_depth)
    return _redact_value(normalized, policy, 0)  # type: ignore[return-value]


def redact(context: Mapping[str, Any], policy: RedactionPolicy = DEFAULT_POLICY) -> Context:
    """Return a redacted deep copy of ``context``. Never raises."""
    try:
        redacted = _apply_patterns(context, policy)
        if policy.transform is not None:
            transformed = policy.transform(redacted)
            if not isinstance(transformed, Mapping):
                raise RedactionFailure(reason=f"transform returned {type(transformed).__name__}, expected a mapping")
            redacted = _apply_patterns(transformed, policy)
        return redacted
    except Exception as exc:
        # The exception text may quote the payload, so only its type is reported
        logger.warning("redaction_failed", error_type=type(exc).__name__)
        return {REDACTION_FAILED_KEY: REDACTION_FAILED}


def is_redaction_failure(context: Mapping[str, Any]) -> bool:
    return dict(context) == {REDACTION_FAILED_KEY: REDACTION_FAILED}


# =============================================================================
# Ready-made transforms
# =============================================================================


def _mask_email_text(text: str) -> str:
    return _EMAIL_RE.sub(lambda m: f"{m.group(1)}***@{m.group(2)}", text)


def _mask_emails_value(value: ContextValue) -> ContextValue:
    if isinstance(value, str):
        return _mask_email_text(value)
    if isinstance(value, dict):
        return {k: _mask_emails_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_mask_emails_value(v) for v in value]
    return value


def mask_emails(context: Context) -> Context:
    """Transform that keeps only the first character of e-mail local parts."""
    return _mask_emails_value(context)  # type: ignore[return-value]
