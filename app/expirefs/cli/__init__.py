"""CLI package for expirefs.

This package contains the Typer application and all subcommands.
"""

from expirefs.cli.main import app

__all__ = ["app"]
