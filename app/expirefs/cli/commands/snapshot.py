"""List command implementation.

Builds the entry tree of the watched folder without deleting anything
and shows each entry with its size and age.
"""

import json
import time
from typing import Annotated

import typer

from expirefs.cli.types import (
    ConfigPathOption,
    FolderOption,
    FormatOption,
    OutputFormat,
    TimeTypeOption,
    UnsafeOption,
    resolve_config,
)
from expirefs.core.expirer import ExpireFS
from expirefs.filesystem.entry import ExpireEntry
from expirefs.filesystem.models import TimeType
from expirefs.utils.formatting import (
    console,
    create_entries_table,
    format_age,
    format_size,
    print_info,
)

app = typer.Typer(
    help="Show the current tree of the watched folder.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def list_entries(
    config_path: ConfigPathOption = None,
    folder: FolderOption = None,
    time_type: TimeTypeOption = None,
    unsafe: UnsafeOption = False,
    files_only: Annotated[
        bool,
        typer.Option("--files-only", help="Hide directories."),
    ] = False,
    oldest_first: Annotated[
        bool,
        typer.Option("--oldest-first", "-o", help="Sort by age instead of path."),
    ] = False,
    output_format: FormatOption = OutputFormat.TABLE,
) -> None:
    """List entries of the watched folder without deleting anything."""
    config = resolve_config(config_path, folder=folder, time_type=time_type, unsafe=unsafe)

    root = ExpireFS(config).snapshot()
    entries = [e for e in root.list() if not e.is_root and e.is_populated]
    if files_only:
        entries = [e for e in entries if not e.is_dir]
    if oldest_first:
        entries.sort(key=lambda e: e.get_time(config.time_type))

    if output_format == OutputFormat.JSON:
        data = [_to_dict(e, config.time_type) for e in entries]
        console.print_json(json.dumps(data))
        return

    if not entries:
        print_info(f"{config.folder} is empty.")
        return

    now = time.time()
    table = create_entries_table(f"{config.folder} ({config.time_type.value})")
    for entry in entries:
        if entry.is_dir:
            kind = "[directory]dir[/]"
            size = f"{len(entry.children)} items"
        else:
            kind = "file"
            size = format_size(entry.size)
        age = format_age(now - entry.get_time(config.time_type))
        table.add_row(entry.path, kind, size, age)

    console.print(table)

    file_count = sum(1 for e in entries if not e.is_dir)
    total = sum(e.size for e in entries if not e.is_dir)
    console.print(f"\n[dim]{file_count} files ({format_size(total)} total)[/dim]")


def _to_dict(entry: ExpireEntry, time_type: TimeType) -> dict[str, object]:
    return {
        "path": entry.path,
        "is_dir": entry.is_dir,
        "size_bytes": entry.size,
        time_type.value: entry.get_time(time_type),
    }
