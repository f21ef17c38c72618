"""Pytest fixtures for stdout2collectd tests."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from hypothesis import Phase, Verbosity, settings

from stdout2collectd.config import Settings
from stdout2collectd.debug_log import reset_logging

if TYPE_CHECKING:
    from collections.abc import Generator


settings.register_profile(
    "ci",
    max_examples=100,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)
settings.register_profile(
    "dev",
    max_examples=20,
    deadline=500,
)
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def set(self, value: float) -> None:
        self.now = value

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    """Sink collecting written records."""

    def __init__(self) -> None:
        self.records: list[bytes] = []

    def __call__(self, record: bytes) -> None:
        self.records.append(record)

    def messages(self) -> list[bytes]:
        """Return the quoted message payload of every record."""
        return [record.split(b' message="', 1)[1][:-2] for record in self.records]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def wallclock() -> FakeClock:
    return FakeClock(1_700_000_000.0)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_settings():
    """Build settings with test defaults, overridable per call."""

    def _make(**overrides: object) -> Settings:
        values: dict[str, object] = {"plugin": "stdout", "type": "prv", "hostname": "testhost"}
        values.update(overrides)
        return Settings.create(**values)

    return _make


@pytest.fixture(autouse=True)
def _reset_logging() -> Generator[None, None, None]:
    """Ensure CLI log handlers don't leak between tests."""
    yield
    reset_logging()
