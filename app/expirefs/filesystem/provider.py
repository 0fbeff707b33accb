"""Storage providers used by the entry tree and the cleanup engine.

The engine never touches ``os`` directly: directory listing, stat,
removal and capacity queries go through these interfaces so that the
same code runs against the local disk or an in-memory fake.
"""

import os
import shutil
import stat
from abc import ABC, abstractmethod

from expirefs.filesystem.models import DiskUsage, EntryStats


class FilesystemProvider(ABC):
    """Abstract interface over the filesystem calls the engine needs.

    Every method signals failure with an ``OSError``;
    ``FileNotFoundError`` means the path vanished.

    Example:
        >>> fs = LocalFilesystem()
        >>> for name in fs.list_directory("/var/log/app"):
        ...     print(name, fs.stat_path(f"/var/log/app/{name}").size)
    """

    @abstractmethod
    def list_directory(self, path: str) -> list[str]:
        """Return the names of the immediate children of a directory.

        Raises:
            FileNotFoundError: If the directory no longer exists.
            OSError: On any other listing failure.
        """

    @abstractmethod
    def stat_path(self, path: str) -> EntryStats:
        """Return stat metadata for a path.

        Raises:
            FileNotFoundError: If the path no longer exists.
            OSError: On any other stat failure.
        """

    @abstractmethod
    def remove_file(self, path: str) -> None:
        """Remove a non-directory path."""

    @abstractmethod
    def remove_directory(self, path: str) -> None:
        """Remove an empty directory."""


class DiskUsageProvider(ABC):
    """Abstract interface for storage capacity queries."""

    @abstractmethod
    def usage(self, path: str) -> DiskUsage:
        """Return capacity and available space for the filesystem holding path.

        Raises:
            OSError: If usage cannot be determined.
        """


class LocalFilesystem(FilesystemProvider):
    """FilesystemProvider backed by the local operating system."""

    def list_directory(self, path: str) -> list[str]:
        return os.listdir(path)

    def stat_path(self, path: str) -> EntryStats:
        result = os.stat(path)
        return EntryStats.from_stat_result(result, is_dir=stat.S_ISDIR(result.st_mode))

    def remove_file(self, path: str) -> None:
        os.unlink(path)

    def remove_directory(self, path: str) -> None:
        os.rmdir(path)


class LocalDiskUsage(DiskUsageProvider):
    """DiskUsageProvider backed by shutil.disk_usage."""

    def usage(self, path: str) -> DiskUsage:
        result = shutil.disk_usage(path)
        return DiskUsage(total_bytes=result.total, available_bytes=result.free)
