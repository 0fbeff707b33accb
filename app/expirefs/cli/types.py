"""Shared types and utilities for CLI commands.

This module provides the options common to every command that
operates on a watched folder, and resolves them into a validated
engine configuration.
"""

from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer

from expirefs.core.config import ConfigurationError, ExpireConfig, load_config
from expirefs.filesystem.models import TimeType
from expirefs.utils.formatting import print_error


class OutputFormat(str, Enum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


ConfigPathOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Config file (default: ~/.config/expirefs/config.toml).",
    ),
]
FolderOption = Annotated[
    Path | None,
    typer.Option("--folder", "-d", help="Watched folder."),
]
ExpireOption = Annotated[
    str | None,
    typer.Option("--expire", "-e", help="Maximum age, e.g. 24h, 7d or inf."),
]
PressureOption = Annotated[
    float | None,
    typer.Option(
        "--pressure",
        "-p",
        min=0.0,
        max=1.0,
        help="Usage fraction that triggers eviction of the oldest files.",
    ),
]
FilterOption = Annotated[
    str | None,
    typer.Option("--filter", help="Only consider paths matching this regex."),
]
TimeTypeOption = Annotated[
    TimeType | None,
    typer.Option("--time-type", "-t", help="Timestamp used for age.", case_sensitive=False),
]
UnsafeOption = Annotated[
    bool,
    typer.Option("--unsafe", help="Allow watching a root folder."),
]
FormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", help="Output format.", case_sensitive=False),
]


def resolve_config(config_path: Path | None, **overrides: Any) -> ExpireConfig:
    """Load the config file and apply command-line overrides.

    Prints the error and exits with code 1 if the result is invalid.

    Args:
        config_path: Explicit config file, or None for the default location.
        **overrides: Option values; None and False flags leave the file value.

    Returns:
        Validated ExpireConfig.
    """
    cleaned = {
        key: value for key, value in overrides.items() if value is not None and value is not False
    }
    try:
        return load_config(config_path, overrides=cleaned)
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
