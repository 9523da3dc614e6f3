"""
relaylog constants.

Defaults shared by the configuration model, the redaction engine and the
delivery path.
"""

from __future__ import annotations


# ================================
# Batching / delivery
# ================================

DEFAULT_MAX_BATCH_SIZE = 10

# Seconds
DEFAULT_FLUSH_INTERVAL = 30.0

# Retries after the first attempt
DEFAULT_MAX_RETRIES = 3

# Seconds; retry n waits BASE * 2 ** (n - 1)
DEFAULT_BASE_DELAY = 1.0

DEFAULT_REMOTE_TIMEOUT = 10.0

DEFAULT_CLIENT_ID = "relaylog"


# ================================
# Redaction
# ================================

REDACTED = "[REDACTED]"
REDACTION_FAILED = "[REDACTION_FAILED]"
REDACTION_FAILED_KEY = "_redaction"
TRUNCATED = "[TRUNCATED]"

DEFAULT_MAX_DEPTH = 16

# Case-insensitive substrings of field names that are always redacted
DEFAULT_SENSITIVE_PATTERNS = (
    "password",
    "passwd",
    "pwd",
    "token",
    "secret",
    "key",
    "auth",
    "credential",
    "cookie",
)
