"""Fixed-window rate limiter acting as a pressure relief valve.

Lines beyond ``limit`` within one window are dropped. The first call after a
window that dropped lines reports the drop count once as a ``Flood`` decision
instead of judging its line; the caller then asks again for the same line.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from stdout2collectd.errors import ClockError

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(frozen=True, slots=True)
class Pass:
    """The line is admitted."""


@dataclass(frozen=True, slots=True)
class Drop:
    """The line is suppressed; the window is full."""


@dataclass(frozen=True, slots=True)
class Flood:
    """The previous window suppressed ``count`` lines. The line was not judged."""

    count: int


type Decision = Pass | Drop | Flood

PASS = Pass()
DROP = Drop()


@dataclass(slots=True)
class RateWindow:
    """Mutable state of the current window. Owned by a single caller."""

    start: float
    count: int = 0
    dropped: int = 0

    def reset(self, now: float) -> None:
        self.start = now
        self.count = 0
        self.dropped = 0


class RateLimiter:
    """Admits at most ``limit`` lines per ``window`` seconds; ``limit == 0`` admits all.

    Timestamps passed to ``admit`` must not decrease.
    """

    def __init__(
        self,
        limit: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 0:
            raise ValueError(f"limit must not be negative, got {limit}")
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")
        self.limit = limit
        self.window = window
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def now(self) -> float:
        """Read the clock, raising ``ClockError`` if it fails."""
        try:
            value = self._clock()
        except OSError as exc:
            raise ClockError(f"clock unavailable: {exc}") from exc
        if not isinstance(value, int | float) or math.isnan(value):
            raise ClockError(f"clock returned an invalid timestamp: {value!r}")
        return float(value)

    def open_window(self) -> RateWindow:
        """Create the initial window state starting now."""
        return RateWindow(start=self.now())

    def admit(self, state: RateWindow, now: float | None = None) -> Decision:
        """Decide whether one line may pass, updating ``state``.

        Args:
            state: Window state owned by the caller.
            now: Current time; read from the clock when omitted.

        Returns:
            ``PASS``, ``DROP`` or ``Flood(count)``. After a ``Flood`` the
            fresh window is open and the same line should be submitted again.
        """
        if not self.enabled:
            return PASS
        if now is None:
            now = self.now()

        if now - state.start >= self.window:
            dropped = state.dropped
            state.reset(now)
            if dropped:
                return Flood(dropped)

        if state.count < self.limit:
            state.count += 1
            return PASS
        state.dropped += 1
        return DROP
