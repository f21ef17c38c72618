"""Protocol limits and defaults - no circular dependencies."""

from __future__ import annotations

HOSTNAME_MAX_LEN = 16
"""Bytes of the hostname kept on the wire."""

DATA_MAX_NAME_LEN = 64
"""collectd identifier buffer size; plugin and type must be shorter."""

DEFAULT_SERVICE = "stdout/prv"
DEFAULT_LIMIT = 0
DEFAULT_WINDOW = 1.0
DEFAULT_MAX_EVENT_LENGTH = 245  # 255 - 10
DEFAULT_MAX_EVENT_ID = 99
DEFAULT_WRITE_BUFFER = "block"
WRITE_BUFFER_POLICIES = ("block", "drop", "exit")

SEVERITY = "okay"

MAX_LOG_MESSAGE_LENGTH = 4096
