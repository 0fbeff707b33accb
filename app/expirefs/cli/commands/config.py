"""Config command implementation.

Creates and displays the expirefs configuration file.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from expirefs.cli.types import ConfigPathOption, ExpireOption, PressureOption, resolve_config
from expirefs.core.config import ConfigurationError, build_config, config_to_dict, save_config
from expirefs.core.paths import ensure_config_dir, get_config_path
from expirefs.utils.formatting import console, print_error, print_success, print_warning

app = typer.Typer(
    help="Create and show the configuration file.",
    no_args_is_help=True,
)


@app.command()
def init(
    folder: Annotated[Path, typer.Argument(help="Folder to watch.")],
    config_path: ConfigPathOption = None,
    expire: ExpireOption = None,
    pressure: PressureOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file watching FOLDER."""
    target = config_path or get_config_path()
    if target.exists() and not force:
        print_warning(f"Config already exists: {target} (use --force to overwrite)")
        raise typer.Exit(code=1)

    options: dict[str, object] = {"folder": folder}
    if expire is not None:
        options["expire"] = expire
    if pressure is not None:
        options["pressure"] = pressure

    try:
        config = build_config(**options)
        if config_path is None:
            ensure_config_dir()
        saved = save_config(config, target)
    except (ConfigurationError, RuntimeError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {saved}")


@app.command()
def show(config_path: ConfigPathOption = None) -> None:
    """Show the effective configuration."""
    config = resolve_config(config_path)

    table = Table(
        title="Configuration",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    for key, value in config_to_dict(config).items():
        table.add_row(key, str(value))

    console.print(table)
