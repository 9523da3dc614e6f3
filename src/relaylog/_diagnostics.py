"""
Operational diagnostics for relaylog itself (retries, dropped batches, ...).

These go through structlog, never through a relaylog pipeline, so a broken
collector cannot feed its own failure reports back into the batch stream.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

INTERNAL_PREFIX = "relaylog"

# Event dict keys that may carry the emitting logger's name
NAME_KEYS = ("_name", "logger")


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger carrying ``_name`` as its initial value."""
    return structlog.get_logger(_name=name)


def is_internal(name: object) -> bool:
    """True for logger names owned by relaylog (bridges skip these)."""
    return isinstance(name, str) and (name == INTERNAL_PREFIX or name.startswith(INTERNAL_PREFIX + "."))


def is_internal_event(event_dict: Mapping[str, Any]) -> bool:
    return any(is_internal(event_dict.get(key)) for key in NAME_KEYS)
