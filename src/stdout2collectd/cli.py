"""Command line interface: stdin lines to collectd notifications on stdout."""

from __future__ import annotations

import contextlib
import logging
import os
import socket
import sys
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

import click

from stdout2collectd.config import Settings
from stdout2collectd.debug_log import setup_logging
from stdout2collectd.errors import Stdout2CollectdError
from stdout2collectd.limits import (
    DEFAULT_MAX_EVENT_ID,
    DEFAULT_MAX_EVENT_LENGTH,
    WRITE_BUFFER_POLICIES,
)
from stdout2collectd.pipeline import Pipeline

if TYPE_CHECKING:
    from collections.abc import Callable

log = logging.getLogger(__name__)


def discover_hostname() -> str:
    """Return the system hostname, or an empty string if it cannot be read."""
    try:
        return socket.gethostname()
    except OSError as exc:
        log.warning("Cannot determine hostname: %s", exc)
        return ""


def _detach_stdout() -> None:
    """Point stdout at devnull so the interpreter's final flush cannot fail again."""
    with contextlib.suppress(OSError, ValueError):
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        os.close(devnull)


def _make_sink(stream: BinaryIO) -> Callable[[bytes], None]:
    def write(record: bytes) -> None:
        stream.write(record)
        stream.flush()

    return write


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-s",
    "--service",
    default=None,
    envvar="STDOUT2COLLECTD_SERVICE",
    metavar="PLUGIN/TYPE",
    help="collectd service: <plugin>/<type>  [default: stdout/prv]",
)
@click.option(
    "-H",
    "--hostname",
    default=None,
    envvar="STDOUT2COLLECTD_HOSTNAME",
    help="Host reported in notifications (default: system hostname)",
)
@click.option(
    "-l",
    "--limit",
    type=click.IntRange(min=0),
    default=None,
    envvar="STDOUT2COLLECTD_LIMIT",
    help="Message rate limit per window, 0 disables  [default: 0]",
)
@click.option(
    "-w",
    "--window",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    envvar="STDOUT2COLLECTD_WINDOW",
    help="Message rate window in seconds  [default: 1]",
)
@click.option(
    "-M",
    "--max-event-length",
    type=click.IntRange(min=1),
    default=None,
    help=f"Max message fragment length in bytes  [default: {DEFAULT_MAX_EVENT_LENGTH}]",
)
@click.option(
    "-I",
    "--max-event-id",
    type=click.IntRange(min=1),
    default=None,
    help=f"Max message fragment header id  [default: {DEFAULT_MAX_EVENT_ID}]",
)
@click.option(
    "-W",
    "--write-buffer",
    type=click.Choice(WRITE_BUFFER_POLICIES, case_sensitive=False),
    default=None,
    help="Behaviour if write buffer is full (unsupported)  [default: block]",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    default=None,
    envvar="STDOUT2COLLECTD_CONFIG",
    help="TOML file with default settings",
)
@click.option("-v", "--verbose", is_flag=True, help="Log discarded messages to stderr")
@click.version_option(package_name="stdout2collectd", prog_name="stdout2collectd")
def cli(
    service: str | None,
    hostname: str | None,
    limit: int | None,
    window: float | None,
    max_event_length: int | None,
    max_event_id: int | None,
    write_buffer: str | None,
    config_path: Path | None,
    verbose: bool,
) -> None:
    """Read lines from stdin and write collectd notifications to stdout.

    \b
    Examples:
        tail -F /var/log/app.log | stdout2collectd -s app/log -l 10
        stdout2collectd -c /etc/stdout2collectd.toml < events.txt
    """
    setup_logging(verbose)

    try:
        settings = Settings.load(
            config_path,
            service=service,
            hostname=hostname,
            limit=limit,
            window=window,
            max_event_length=max_event_length,
            max_event_id=max_event_id,
            write_buffer=write_buffer.lower() if write_buffer else None,
        )
        if not settings.hostname:
            data = settings.model_dump(by_alias=True)
            data["hostname"] = discover_hostname()
            settings = Settings.create(**data)
    except Stdout2CollectdError as exc:
        raise click.ClickException(str(exc)) from None

    if settings.write_buffer != "block":
        log.warning("Write buffer policy %r is not supported, blocking", settings.write_buffer)

    log.debug(
        "Starting: plugin=%s type=%s host=%s limit=%d window=%gs",
        settings.plugin,
        settings.type_name,
        settings.hostname.decode("utf-8", errors="replace"),
        settings.limit,
        settings.window,
    )

    stdin = click.get_binary_stream("stdin")
    stdout = click.get_binary_stream("stdout")
    try:
        pipeline = Pipeline(settings, _make_sink(stdout))
        pipeline.run(stdin)
    except Stdout2CollectdError as exc:
        raise click.ClickException(str(exc)) from None
    except BrokenPipeError:
        log.error("Output closed by reader")
        _detach_stdout()
        raise SystemExit(1) from None
    except OSError as exc:
        log.error("Write failed: %s", exc)
        _detach_stdout()
        raise SystemExit(1) from None
