"""collectd exec-plugin notification records.

Records are rendered with the ``PUTNOTIF`` command of collectd's plain text
protocol, one record per line::

    PUTNOTIF severity=okay time=1700000000 host=web1 plugin=stdout
    plugin_instance=0 type=prv type_instance=0 message="text"

``message`` must be the last option; everything after it is taken as the
message by collectd.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from stdout2collectd.limits import SEVERITY

if TYPE_CHECKING:
    from collections.abc import Callable

    from stdout2collectd.config import Settings
    from stdout2collectd.fragment import Fragment

_UNSAFE_BARE = (b" ", b'"', b"\\", b"\t")


def quote(value: bytes) -> bytes:
    """Double-quote ``value`` escaping backslashes and double quotes."""
    return b'"' + value.replace(b"\\", b"\\\\").replace(b'"', b'\\"') + b'"'


def format_value(value: bytes) -> bytes:
    """Render an option value bare when collectd can parse it that way, quoted otherwise."""
    if not value or any(ch in value for ch in _UNSAFE_BARE):
        return quote(value)
    return value


def clip_message(message: bytes) -> bytes:
    """Cut ``message`` at its first CR or LF byte; the line protocol cannot carry either."""
    for index, byte in enumerate(message):
        if byte in (0x0A, 0x0D):
            return message[:index]
    return message


@dataclass(frozen=True, slots=True)
class Notification:
    """One notification record, written once and never changed."""

    severity: str
    time: int
    host: bytes
    plugin: str
    plugin_instance: str
    type: str
    type_instance: str
    message: bytes

    def to_bytes(self) -> bytes:
        """Render the record as a single ``PUTNOTIF`` line including the newline."""
        options = (
            (b"severity", self.severity.encode()),
            (b"time", str(self.time).encode()),
            (b"host", self.host),
            (b"plugin", self.plugin.encode()),
            (b"plugin_instance", self.plugin_instance.encode()),
            (b"type", self.type.encode()),
            (b"type_instance", self.type_instance.encode()),
        )
        head = b" ".join(key + b"=" + format_value(value) for key, value in options)
        return b"PUTNOTIF " + head + b" message=" + quote(clip_message(self.message)) + b"\n"


class NotificationEncoder:
    """Builds notification records for fragments using fixed settings."""

    def __init__(self, settings: Settings, clock: Callable[[], float] = time.time) -> None:
        self._settings = settings
        self._clock = clock

    def encode(self, fragment: Fragment) -> Notification:
        """Build the record for ``fragment``; the message is its bytes verbatim."""
        seq = str(fragment.seq)
        return self._build(fragment.data, seq)

    def notice(self, message: bytes) -> Notification:
        """Build a standalone informational record, e.g. a flood report."""
        return self._build(message, "0")

    def _build(self, message: bytes, instance: str) -> Notification:
        settings = self._settings
        return Notification(
            severity=SEVERITY,
            time=int(self._clock()),
            host=settings.hostname,
            plugin=settings.plugin,
            plugin_instance=instance,
            type=settings.type_name,
            type_instance=instance,
            message=message,
        )
