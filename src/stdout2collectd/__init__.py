"""stdout2collectd: turn a line stream into rate-limited collectd notifications."""

from stdout2collectd.config import Settings
from stdout2collectd.errors import ClockError, ConfigurationError, Stdout2CollectdError
from stdout2collectd.pipeline import Pipeline

__all__ = [
    "ClockError",
    "ConfigurationError",
    "Pipeline",
    "Settings",
    "Stdout2CollectdError",
]
