"""Cleanup engine applying the age and pressure policies to a watched folder.

A cleanup cycle builds a fresh ExpireEntry tree for the folder, deletes
every expired file (age policy), then evicts the oldest remaining files
while storage usage is above the pressure threshold (pressure policy).
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from typing import Any

from expirefs.core.config import ExpireConfig, build_config
from expirefs.core.scheduler import CleanupScheduler
from expirefs.filesystem.entry import ExpireEntry
from expirefs.filesystem.models import DeletedEntry, EntryStats
from expirefs.filesystem.provider import (
    DiskUsageProvider,
    FilesystemProvider,
    LocalDiskUsage,
    LocalFilesystem,
)

logger = logging.getLogger(__name__)

# Inclusion predicate over (path, stats)
FilterFunc = Callable[[str, EntryStats], bool]


class ExpireFS:
    """Enforces the retention policy of one watched folder.

    Args:
        config: Validated engine configuration.
        filter_func: Inclusion predicate over (path, stats). Takes
            precedence over ``config.filter`` when given.
        fs: Filesystem provider (defaults to the local filesystem).
        disk: Disk usage provider (defaults to shutil.disk_usage).
        clock: Returns the current POSIX time; used for entry ages.
        auto_start: Start scheduled cleaning immediately, see start().

    Example:
        >>> expirer = ExpireFS.from_options(folder="/var/log/app", expire="7d")
        >>> for deleted in expirer.clean(dry=True):
        ...     print(deleted.path)
    """

    def __init__(
        self,
        config: ExpireConfig,
        *,
        filter_func: FilterFunc | None = None,
        fs: FilesystemProvider | None = None,
        disk: DiskUsageProvider | None = None,
        clock: Callable[[], float] = time.time,
        auto_start: bool = False,
    ) -> None:
        self._config = config
        self._filter_func = filter_func
        self._filter_pattern = config.filter_pattern
        self._fs = fs or LocalFilesystem()
        self._disk = disk or LocalDiskUsage()
        self._clock = clock
        self._scheduler: CleanupScheduler | None = None
        if auto_start:
            self.start()

    @classmethod
    def from_options(
        cls,
        *,
        filter_func: FilterFunc | None = None,
        fs: FilesystemProvider | None = None,
        disk: DiskUsageProvider | None = None,
        auto_start: bool = False,
        **options: Any,
    ) -> "ExpireFS":
        """Build an ExpireFS from keyword options.

        Raises:
            ConfigurationError: If the options are invalid.
        """
        return cls(
            build_config(**options),
            filter_func=filter_func,
            fs=fs,
            disk=disk,
            auto_start=auto_start,
        )

    @property
    def config(self) -> ExpireConfig:
        return self._config

    @property
    def folder(self) -> str:
        return str(self._config.folder)

    # === Tree building ===

    async def snapshot_async(self) -> ExpireEntry:
        """Build and populate a fresh entry tree for the watched folder."""
        root = ExpireEntry(self.folder, fs=self._fs, concurrent=self._config.concurrent)
        await root.populate()
        return root

    def snapshot(self) -> ExpireEntry:
        """Blocking variant of snapshot_async()."""
        return asyncio.run(self.snapshot_async())

    # === Age policy ===

    def should_delete(self, path: str, stats: EntryStats) -> bool:
        """Check whether a file is matched by the filter and older than the lifetime.

        Args:
            path: Absolute path of the file.
            stats: Cached stat metadata of the file.

        Returns:
            True if the file must be deleted by the age policy.
        """
        if self._filter_func is not None:
            if not self._filter_func(path, stats):
                return False
        elif self._filter_pattern is not None and self._filter_pattern.search(path) is None:
            return False

        if math.isinf(self._config.expire):
            return False

        age = self._clock() - stats.get_time(self._config.time_type)
        return age >= self._config.expire

    async def expire(self, root: ExpireEntry, dry: bool = False) -> list[ExpireEntry]:
        """Delete expired files (and empty directories) under root.

        Entries are visited in pre-order. Entries removed earlier in the
        walk, for instance by an emptied-directory collapse, are skipped.

        Args:
            root: Populated tree root; mutated in place.
            dry: Report deletions without touching storage.

        Returns:
            Entries deleted, in deletion order.
        """
        config = self._config
        deleted: list[ExpireEntry] = []

        for entry in root.list():
            stats = entry.stats
            if entry.is_root or entry.deleted or stats is None:
                continue

            if stats.is_dir:
                if config.remove_empty_dirs and not entry.has_children:
                    deleted.extend(
                        await entry.delete(dry=dry, remove_root=config.remove_root)
                    )
                continue

            if not self.should_delete(entry.path, stats):
                continue

            deleted.extend(
                await entry.delete(
                    keep_empty_parent=not config.remove_cleaned_dirs,
                    dry=dry,
                    remove_root=config.remove_root,
                )
            )

        return deleted

    # === Pressure policy ===

    async def reclaim(self, root: ExpireEntry, dry: bool = False) -> list[ExpireEntry]:
        """Evict the oldest files while storage usage is above the threshold.

        Usage is sampled once; the loop then tracks the bytes still to free
        from the sizes recorded in the tree.

        Args:
            root: Populated tree root; mutated in place.
            dry: Report deletions without touching storage.

        Returns:
            Entries deleted, in deletion order.
        """
        config = self._config

        try:
            if config.concurrent:
                usage = await asyncio.to_thread(self._disk.usage, root.path)
            else:
                usage = self._disk.usage(root.path)
        except OSError as e:
            logger.warning("Cannot query disk usage for %s: %s", root.path, e)
            return []

        if usage.total_bytes <= 0 or usage.used_fraction < config.pressure:
            return []

        to_free = usage.used_bytes - usage.total_bytes * config.pressure
        logger.info(
            "Usage %.1f%% above %.1f%% of %s, freeing %d bytes",
            usage.used_fraction * 100,
            config.pressure * 100,
            root.path,
            to_free,
        )

        time_type = config.time_type
        candidates = [
            entry for entry in root.list() if not entry.is_root and entry.is_populated
        ]
        # Newest first, so the oldest candidate is always popped from the end
        candidates.sort(key=lambda e: e.get_time(time_type), reverse=True)

        now = self._clock()
        deleted: list[ExpireEntry] = []

        while candidates and to_free > 0:
            entry = candidates.pop()
            if entry.deleted or entry.is_dir:
                continue
            if now - entry.get_time(time_type) < config.minimum_age:
                continue

            to_free -= entry.size
            deleted.extend(
                await entry.delete(
                    keep_empty_parent=not config.remove_cleaned_dirs,
                    dry=dry,
                    remove_root=config.remove_root,
                )
            )

        return deleted

    # === Cleanup cycle ===

    async def clean_async(self, dry: bool | None = None) -> list[DeletedEntry]:
        """Run one cleanup cycle: build the tree, expire, then reclaim.

        Args:
            dry: Report deletions without touching storage. None uses the
                configured dry flag.

        Returns:
            Descriptors of every entry deleted by the cycle.
        """
        is_dry = self._config.dry if dry is None else dry

        root = await self.snapshot_async()
        expired = await self.expire(root, dry=is_dry)
        reclaimed = await self.reclaim(root, dry=is_dry) if self._config.pressure_enabled else []

        logger.debug(
            "Cycle on %s: %d expired, %d reclaimed", self.folder, len(expired), len(reclaimed)
        )
        return [_describe(entry, is_dry) for entry in expired + reclaimed]

    def clean(self, dry: bool | None = None) -> list[DeletedEntry]:
        """Blocking variant of clean_async()."""
        return asyncio.run(self.clean_async(dry=dry))

    # === Scheduling ===

    def start(
        self,
        on_clean: Callable[[list[DeletedEntry]], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> bool:
        """Start cleaning every ``config.interval`` seconds in the background.

        Returns:
            False if already started.
        """
        if self._scheduler is None:
            self._scheduler = CleanupScheduler(self, on_clean=on_clean, on_error=on_error)
        return self._scheduler.start()

    def stop(self) -> bool:
        """Stop scheduling further cycles; a running cycle completes.

        Returns:
            False if not started.
        """
        if self._scheduler is None:
            return False
        return self._scheduler.stop()


def _describe(entry: ExpireEntry, dry: bool) -> DeletedEntry:
    stats = entry.stats
    return DeletedEntry(
        path=entry.path,
        was_directory=stats.is_dir if stats is not None else False,
        dry_run=dry,
        size_bytes=stats.size if stats is not None else 0,
    )
