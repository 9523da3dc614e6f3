"""
relaylog configuration.

``LoggerConfig`` is the explicit value every pipeline is built from.
``LoggingSettings`` loads one from ``RL_LOG_*`` environment variables and
``.env`` when an application opts in:

    from relaylog.config import LoggingSettings

    config = LoggingSettings().to_logger_config(on_error=report)
"""

from .logger import LoggerConfig
from .logging import LogFormat, LoggingSettings

__all__ = ["LoggerConfig", "LoggingSettings", "LogFormat"]
