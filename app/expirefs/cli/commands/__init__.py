"""CLI commands for expirefs.

This package contains all subcommand implementations.
"""

from expirefs.cli.commands import clean, config, snapshot, watch

__all__ = ["clean", "config", "snapshot", "watch"]
