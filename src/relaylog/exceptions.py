"""
relaylog error taxonomy.

Configuration errors surface at construction time. Everything raised inside
the logging path (redaction, rendering, delivery) is contained by the
pipeline and never reaches the caller of a log method.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from pydantic import ValidationError


class RelayLogError(Exception):
    """Base class for every relaylog error."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class ConfigurationError(RelayLogError):
    """Invalid logger configuration (negative batch size, unknown level, ...)."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="INVALID_CONFIGURATION", details=details)

    @classmethod
    def from_validation(cls, exc: "ValidationError") -> "ConfigurationError":
        errors = [
            {
                "field": ".".join(str(part) for part in error.get("loc", ())),
                "reason": error.get("msg", ""),
            }
            for error in exc.errors()
        ]
        summary = "; ".join(f"{e['field']}: {e['reason']}" for e in errors)
        return cls(f"Invalid logger configuration: {summary}", details={"errors": errors})


class RedactionFailure(RelayLogError):
    """Redaction could not complete; the payload is replaced by a marker."""

    def __init__(self, *, reason: str) -> None:
        super().__init__(f"Redaction failed: {reason}", code="REDACTION_FAILED", details={"reason": reason})


class DeliveryFailure(RelayLogError):
    """A batch could not be delivered to the remote collector."""

    def __init__(self, *, reason: str, status_code: Optional[int] = None) -> None:
        details: Dict[str, Any] = {"reason": reason}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(f"Delivery failed: {reason}", code="DELIVERY_FAILED", details=details)
        self.reason = reason
        self.status_code = status_code


class SinkFailure(RelayLogError):
    """One or more render sinks raised while emitting a record."""

    def __init__(self, *, sinks: list[str], reason: str) -> None:
        super().__init__(
            f"Sink(s) {', '.join(sinks)} failed: {reason}",
            code="SINK_FAILED",
            details={"sinks": sinks, "reason": reason},
        )
        self.sinks = sinks
