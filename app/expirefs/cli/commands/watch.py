"""Watch command implementation.

Runs cleanup cycles on the configured interval until interrupted.
"""

import time
from typing import Annotated

import typer

from expirefs.cli.types import (
    ConfigPathOption,
    ExpireOption,
    FilterOption,
    FolderOption,
    PressureOption,
    TimeTypeOption,
    UnsafeOption,
    resolve_config,
)
from expirefs.core.config import format_duration
from expirefs.core.expirer import ExpireFS
from expirefs.core.scheduler import CleanupScheduler
from expirefs.filesystem.models import DeletedEntry
from expirefs.utils.formatting import console, format_size, print_error, print_info

app = typer.Typer(
    help="Clean the watched folder periodically.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def watch_folder(
    config_path: ConfigPathOption = None,
    folder: FolderOption = None,
    expire: ExpireOption = None,
    pressure: PressureOption = None,
    filter_regex: FilterOption = None,
    time_type: TimeTypeOption = None,
    unsafe: UnsafeOption = False,
    interval: Annotated[
        str | None,
        typer.Option("--interval", "-i", help="Time between cycles, e.g. 30s or 5m."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Report deletions without deleting."),
    ] = False,
    run_now: Annotated[
        bool,
        typer.Option("--run-now", help="Run a cycle immediately before waiting."),
    ] = False,
) -> None:
    """Run cleanup cycles until interrupted with Ctrl+C."""
    config = resolve_config(
        config_path,
        folder=folder,
        expire=expire,
        pressure=pressure,
        filter=filter_regex,
        time_type=time_type,
        unsafe=unsafe,
        interval=interval,
        dry=dry_run,
    )

    scheduler = CleanupScheduler(
        ExpireFS(config),
        on_clean=_report_cycle,
        on_error=lambda e: print_error(f"Cleanup cycle failed: {e}"),
    )

    print_info(
        f"Watching {config.folder} every {format_duration(config.interval)} "
        f"(expire: {format_duration(config.expire)}, pressure: {config.pressure:.0%})"
    )

    if run_now:
        scheduler.run_once()

    scheduler.start()
    try:
        while scheduler.is_running:
            time.sleep(1.0)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()

    print_info("Stopped.")


def _report_cycle(deleted: list[DeletedEntry]) -> None:
    """Print a one-line summary of a completed cycle."""
    if not deleted:
        return
    total = sum(d.size_bytes for d in deleted if not d.was_directory)
    verb = "would delete" if deleted[0].dry_run else "deleted"
    console.print(
        f"[dim]{time.strftime('%H:%M:%S')}[/dim] {verb} {len(deleted)} entries "
        f"({format_size(total)})"
    )
