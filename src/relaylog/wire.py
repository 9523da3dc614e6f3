"""
Remote wire schema.

A delivery payload is a JSON envelope::

    {"clientId": "...", "sentAt": "2026-01-01T00:00:00Z", "logs": [...]}

Payloads are validated with pydantic before they are serialized.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field

from .types import Batch, LogRecord


class WireCallSite(BaseModel):
    model_config = ConfigDict(frozen=True)

    file: str
    line: int
    function: Optional[str] = None


class WireRecord(BaseModel):
    """One log record as sent to the collector."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    level: str
    message: str
    context: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    callsite: Optional[WireCallSite] = None

    @classmethod
    def from_record(cls, record: LogRecord) -> "WireRecord":
        callsite = None
        if record.callsite is not None:
            callsite = WireCallSite(
                file=record.callsite.file,
                line=record.callsite.line,
                function=record.callsite.function,
            )
        return cls(
            timestamp=record.timestamp,
            level=record.level.label,
            message=record.message,
            context=dict(record.context),
            tags=list(record.tags),
            callsite=callsite,
        )


class WireEnvelope(BaseModel):
    """Batch envelope. Field names are camelCase on the wire."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    client_id: str = Field(alias="clientId", min_length=1)
    sent_at: datetime = Field(alias="sentAt")
    logs: list[WireRecord]


def build_envelope(batch: Batch, client_id: str, *, sent_at: Optional[datetime] = None) -> WireEnvelope:
    return WireEnvelope(
        client_id=client_id,
        sent_at=sent_at or datetime.now(timezone.utc),
        logs=[WireRecord.from_record(record) for record in batch.records],
    )


def encode_batch(batch: Batch, client_id: str, *, sent_at: Optional[datetime] = None) -> bytes:
    """Serialize a batch into the JSON request body."""
    envelope = build_envelope(batch, client_id, sent_at=sent_at)
    return orjson.dumps(envelope.model_dump(mode="json", by_alias=True))
