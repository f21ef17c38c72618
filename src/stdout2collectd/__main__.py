"""CLI entry point for stdout2collectd."""

from __future__ import annotations

from stdout2collectd.cli import cli

if __name__ == "__main__":
    cli()
