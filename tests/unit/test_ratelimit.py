"""Unit tests for the rate limiter."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from stdout2collectd.errors import ClockError
from stdout2collectd.ratelimit import DROP, PASS, Flood, RateLimiter, RateWindow

pytestmark = pytest.mark.unit


class TestAdmit:
    def test_scenario_pass_pass_drop_then_flood(self):
        limiter = RateLimiter(limit=2, window=1.0)
        state = RateWindow(start=0.0)

        assert limiter.admit(state, 0.1) == PASS
        assert limiter.admit(state, 0.2) == PASS
        assert limiter.admit(state, 0.3) == DROP
        assert limiter.admit(state, 1.2) == Flood(1)
        assert limiter.admit(state, 1.2) == PASS

    def test_unlimited_always_passes(self):
        limiter = RateLimiter(limit=0, window=1.0)
        state = RateWindow(start=0.0)
        assert all(limiter.admit(state, 0.0) == PASS for _ in range(10_000))
        assert state.count == 0

    def test_unlimited_never_reads_clock(self):
        def broken() -> float:
            raise OSError("no clock")

        limiter = RateLimiter(limit=0, window=1.0, clock=broken)
        assert limiter.admit(RateWindow(start=0.0)) == PASS

    def test_window_without_drops_resets_silently(self):
        limiter = RateLimiter(limit=1, window=1.0)
        state = RateWindow(start=0.0)
        assert limiter.admit(state, 0.5) == PASS
        assert limiter.admit(state, 1.5) == PASS
        assert state.start == 1.5

    def test_line_at_window_boundary_uses_fresh_window(self):
        limiter = RateLimiter(limit=1, window=1.0)
        state = RateWindow(start=0.0)
        assert limiter.admit(state, 0.0) == PASS
        assert limiter.admit(state, 1.0) == PASS

    def test_flood_reported_once(self):
        limiter = RateLimiter(limit=1, window=1.0)
        state = RateWindow(start=0.0)
        limiter.admit(state, 0.0)
        for _ in range(5):
            assert limiter.admit(state, 0.5) == DROP
        assert limiter.admit(state, 2.0) == Flood(5)
        assert limiter.admit(state, 2.0) == PASS
        assert limiter.admit(state, 3.5) == PASS

    def test_uses_injected_clock(self, clock):
        limiter = RateLimiter(limit=1, window=1.0, clock=clock)
        state = limiter.open_window()
        assert limiter.admit(state) == PASS
        assert limiter.admit(state) == DROP
        clock.advance(1.0)
        assert limiter.admit(state) == Flood(1)


class TestConstruction:
    @pytest.mark.parametrize(("limit", "window"), [(-1, 1.0), (1, 0.0), (1, -2.0)])
    def test_invalid_parameters(self, limit: int, window: float):
        with pytest.raises(ValueError):
            RateLimiter(limit=limit, window=window)

    def test_clock_failure_raises_clock_error(self):
        def broken() -> float:
            raise OSError("clock_gettime failed")

        limiter = RateLimiter(limit=1, window=1.0, clock=broken)
        with pytest.raises(ClockError, match="clock unavailable"):
            limiter.open_window()

    def test_invalid_clock_value_raises_clock_error(self):
        limiter = RateLimiter(limit=1, window=1.0, clock=lambda: float("nan"))
        with pytest.raises(ClockError):
            limiter.now()


class TestAdmitProperties:
    @given(st.integers(min_value=1, max_value=50), st.integers(min_value=0, max_value=50))
    def test_exactly_limit_lines_pass_per_window(self, limit: int, extra: int) -> None:
        limiter = RateLimiter(limit=limit, window=1.0)
        state = RateWindow(start=0.0)
        decisions = [limiter.admit(state, 0.5) for _ in range(limit + extra)]
        assert decisions[:limit] == [PASS] * limit
        assert decisions[limit:] == [DROP] * extra

    @given(
        st.integers(min_value=1, max_value=5),
        st.lists(st.integers(min_value=0, max_value=12), min_size=1, max_size=8),
    )
    def test_one_flood_per_window_with_drops(self, limit: int, per_window: list[int]) -> None:
        limiter = RateLimiter(limit=limit, window=1.0)
        state = RateWindow(start=0.0)
        floods: list[int] = []
        for index, count in enumerate(per_window):
            now = float(index) + 0.25
            for _ in range(count):
                decision = limiter.admit(state, now)
                if isinstance(decision, Flood):
                    floods.append(decision.count)
                    decision = limiter.admit(state, now)
                assert not isinstance(decision, Flood)
        # Closing the last window reports its drops too.
        closing = limiter.admit(state, float(len(per_window)) + 0.25)
        if isinstance(closing, Flood):
            floods.append(closing.count)

        expected = [max(0, count - limit) for count in per_window]
        assert floods == [n for n in expected if n]
