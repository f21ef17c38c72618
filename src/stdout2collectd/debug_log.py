"""Diagnostic logging for the command line tool.

stdout carries the notification protocol, so all log output goes to stderr.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from stdout2collectd.limits import MAX_LOG_MESSAGE_LENGTH

TRUNCATION_SUFFIX = "... [truncated]"


def truncate_message(message: str, limit: int = MAX_LOG_MESSAGE_LENGTH) -> str:
    """Cut oversized log messages so a single huge input line cannot flood stderr."""
    if len(message) > limit:
        return message[:limit] + TRUNCATION_SUFFIX
    return message


class TruncatingFilter(logging.Filter):
    """Filter that truncates the rendered message of every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        truncated = truncate_message(message)
        if truncated is not message:
            record.msg = truncated
            record.args = None
        return True


_logging_initialized: bool = False


def setup_logging(verbose: bool = False) -> logging.Handler | None:
    """Attach a stderr handler to the package logger.

    This is idempotent - calling it again only adjusts the level.

    Returns:
        The handler installed by the first call, or None on later calls.
    """
    global _logging_initialized

    logger = logging.getLogger("stdout2collectd")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if _logging_initialized:
        return None

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    handler.addFilter(TruncatingFilter())
    logger.addHandler(handler)
    logger.propagate = False

    _logging_initialized = True
    return handler


def reset_logging() -> None:
    """Remove handlers installed by ``setup_logging``. Used by tests."""
    global _logging_initialized

    logger = logging.getLogger("stdout2collectd")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    _logging_initialized = False
