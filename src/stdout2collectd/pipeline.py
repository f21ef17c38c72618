"""Line to notification pipeline."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from stdout2collectd.fragment import fragment_count, split
from stdout2collectd.notification import NotificationEncoder
from stdout2collectd.ratelimit import Drop, Flood, RateLimiter, RateWindow

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from stdout2collectd.config import Settings

log = logging.getLogger(__name__)

type Sink = Callable[[bytes], object]


def normalize_line(raw: bytes) -> bytes:
    """Drop everything from the first NUL byte and the trailing line terminator."""
    nul = raw.find(b"\0")
    if nul >= 0:
        return raw[:nul]
    if raw.endswith(b"\n"):
        raw = raw[:-1]
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return raw


def flood_message(count: int) -> bytes:
    return f"rate limit exceeded: {count} message(s) discarded".encode()


@dataclass(slots=True)
class PipelineStats:
    """Counters for one run."""

    lines: int = 0
    passed: int = 0
    dropped: int = 0
    floods: int = 0
    records: int = 0


class Pipeline:
    """Feeds lines through the rate limiter, fragmenter and encoder into ``sink``.

    ``sink`` is called once per record with the rendered record bytes.
    """

    def __init__(
        self,
        settings: Settings,
        sink: Sink,
        clock: Callable[[], float] = time.monotonic,
        wallclock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self.sink = sink
        self.limiter = RateLimiter(settings.limit, settings.window, clock=clock)
        self.encoder = NotificationEncoder(settings, clock=wallclock)
        # An inert limiter never reads the clock.
        self.window = (
            self.limiter.open_window() if self.limiter.enabled else RateWindow(start=0.0)
        )
        self.stats = PipelineStats()

    def run(self, lines: Iterable[bytes]) -> PipelineStats:
        """Process ``lines`` until exhausted and return the run's counters."""
        for raw in lines:
            self.feed(raw)
        if self.window.dropped:
            log.warning(
                "End of input with %d discarded message(s) not yet reported",
                self.window.dropped,
            )
        log.debug(
            "End of input: lines=%d passed=%d dropped=%d floods=%d records=%d",
            self.stats.lines,
            self.stats.passed,
            self.stats.dropped,
            self.stats.floods,
            self.stats.records,
        )
        return self.stats

    def feed(self, raw: bytes) -> None:
        """Process one raw input line."""
        line = normalize_line(raw)
        self.stats.lines += 1

        now = self.limiter.now() if self.limiter.enabled else None
        decision = self.limiter.admit(self.window, now)
        if isinstance(decision, Flood):
            self.stats.floods += 1
            log.info("Rate limit exceeded, %d message(s) discarded", decision.count)
            self._write(self.encoder.notice(flood_message(decision.count)).to_bytes())
            decision = self.limiter.admit(self.window, now)

        if isinstance(decision, Drop):
            self.stats.dropped += 1
            if log.isEnabledFor(logging.DEBUG):
                log.debug(
                    "DISCARD:%d/%d:%s",
                    self.window.count + self.window.dropped,
                    self.settings.limit,
                    line.decode("utf-8", errors="replace"),
                )
            return

        self.stats.passed += 1
        fragments = split(line, self.settings.max_event_length, self.settings.max_event_id)
        if log.isEnabledFor(logging.DEBUG):
            total = fragment_count(len(line), self.settings.max_event_length)
            if total > 1:
                log.debug("Splitting %d byte line into %d fragments", len(line), total)
        for fragment in fragments:
            self._write(self.encoder.encode(fragment).to_bytes())

    def _write(self, record: bytes) -> None:
        self.sink(record)
        self.stats.records += 1
