"""Clean command implementation.

Runs one cleanup cycle over the watched folder and reports every
entry that was (or, in dry-run mode, would be) deleted.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from expirefs.cli.types import (
    ConfigPathOption,
    ExpireOption,
    FilterOption,
    FolderOption,
    FormatOption,
    OutputFormat,
    PressureOption,
    TimeTypeOption,
    UnsafeOption,
    resolve_config,
)
from expirefs.core.expirer import ExpireFS
from expirefs.filesystem.models import DeletedEntry
from expirefs.utils.formatting import (
    console,
    create_entries_table,
    format_size,
    print_error,
    print_info,
    print_success,
)

app = typer.Typer(
    help="Run one cleanup cycle over the watched folder.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def clean_folder(
    config_path: ConfigPathOption = None,
    folder: FolderOption = None,
    expire: ExpireOption = None,
    pressure: PressureOption = None,
    filter_regex: FilterOption = None,
    time_type: TimeTypeOption = None,
    unsafe: UnsafeOption = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted."),
    ] = False,
    output_format: FormatOption = OutputFormat.TABLE,
    export_path: Annotated[
        Path | None,
        typer.Option("--export", help="Export deleted entries to a JSON file."),
    ] = None,
) -> None:
    """Delete expired files, then evict the oldest files above the pressure threshold."""
    config = resolve_config(
        config_path,
        folder=folder,
        expire=expire,
        pressure=pressure,
        filter=filter_regex,
        time_type=time_type,
        unsafe=unsafe,
        dry=dry_run,
    )

    deleted = ExpireFS(config).clean()

    if export_path is not None:
        _export_results(deleted, export_path)

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([_to_dict(d) for d in deleted]))
        return

    if not deleted:
        print_success(f"Nothing to clean in {config.folder}.")
        return

    _print_table(deleted, config.dry)

    total = sum(d.size_bytes for d in deleted if not d.was_directory)
    if config.dry:
        print_info(f"Dry-run: {len(deleted)} entries would be deleted ({format_size(total)}).")
    else:
        print_success(f"Deleted {len(deleted)} entries ({format_size(total)} freed).")


# === Private helper functions ===


def _print_table(deleted: list[DeletedEntry], dry_run: bool) -> None:
    """Display deleted entries as a Rich table."""
    title = "Deleted Entries (dry-run)" if dry_run else "Deleted Entries"
    table = create_entries_table(title, with_age=False)
    table.add_column("Status", width=10)

    for d in deleted:
        kind = "[directory]dir[/]" if d.was_directory else "file"
        size = "-" if d.was_directory else format_size(d.size_bytes)
        status = "[info]dry-run[/]" if d.dry_run else "[removed]deleted[/]"
        table.add_row(d.path, kind, size, status)

    console.print(table)


def _to_dict(deleted: DeletedEntry) -> dict[str, object]:
    return {
        "path": deleted.path,
        "was_directory": deleted.was_directory,
        "dry_run": deleted.dry_run,
        "size_bytes": deleted.size_bytes,
    }


def _export_results(deleted: list[DeletedEntry], export_path: Path) -> None:
    """Export deleted entries to a JSON file."""
    export_path = export_path.resolve()
    if export_path.is_dir():
        print_error(f"Export path is a directory: {export_path}")
        raise typer.Exit(code=1)

    try:
        export_path.parent.mkdir(parents=True, exist_ok=True)
        export_path.write_text(json.dumps([_to_dict(d) for d in deleted], indent=2))
        print_info(f"Results exported to {export_path}")
    except OSError as e:
        print_error(f"Failed to export: {e}")
        raise typer.Exit(code=1) from e
