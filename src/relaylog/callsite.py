"""
Call-site inference for log records.
"""

from __future__ import annotations

import inspect
import os
from typing import Optional

from .types import CallSite

# Frames from these modules are never reported as the call site
_INTERNAL_MODULES = ("relaylog", "logging", "structlog")

_MAX_FRAMES = 30


def _is_internal(module: str) -> bool:
    return any(module == m or module.startswith(m + ".") for m in _INTERNAL_MODULES)


def _relative_path(path: str, root: str) -> str:
    if path.startswith(root + os.sep):
        return path[len(root) + 1 :]
    return path


def get_callsite(root: Optional[str] = None) -> Optional[CallSite]:
    """Return the first frame outside relaylog and the logging libraries.

    File paths under ``root`` (default: the working directory) are reported
    relative to it. Returns ``None`` when no suitable frame is found.
    """
    frame = inspect.currentframe()
    if frame is None:
        return None

    root = root or os.getcwd()
    try:
        frame = frame.f_back
        for _ in range(_MAX_FRAMES):
            if frame is None:
                break
            module = frame.f_globals.get("__name__", "")
            if module and not _is_internal(module):
                code = frame.f_code
                return CallSite(
                    file=_relative_path(code.co_filename, root),
                    line=frame.f_lineno,
                    function=code.co_name,
                )
            frame = frame.f_back
        return None
    finally:
        del frame
