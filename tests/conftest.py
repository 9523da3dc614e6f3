import logging

import pytest

from relaylog import core
from relaylog.formatters import ConsoleFormatter


@pytest.fixture(autouse=True)
def reset_default_logger(monkeypatch):
    """
    Every test starts without a process default logger and with the stock
    console layout, and leaves the stdlib root logger as it found it.
    """
    monkeypatch.setattr(core, "_default", None)
    monkeypatch.setattr(core, "_stdlib_handler", None)
    monkeypatch.setattr(core, "_atexit_registered", True)
    for attr in ("TIMESTAMP_FORMAT", "TIMESTAMP_WIDTH", "LEVEL_WIDTH", "TAGS_WIDTH", "SEPARATOR"):
        monkeypatch.setattr(ConsoleFormatter, attr, getattr(ConsoleFormatter, attr))

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)

