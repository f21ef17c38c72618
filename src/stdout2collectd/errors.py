"""Exceptions raised by stdout2collectd."""

from __future__ import annotations


class Stdout2CollectdError(Exception):
    """Base for all fatal stdout2collectd errors."""


class ConfigurationError(Stdout2CollectdError, ValueError):
    """Raised when settings are invalid. Detected before any line is processed."""


class ClockError(Stdout2CollectdError, RuntimeError):
    """Raised when the time source cannot be read."""
