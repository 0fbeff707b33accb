"""Filesystem domain models for retention scanning.

This module defines the core data structures shared by the entry tree,
the storage providers and the cleanup engine: timestamp selectors,
cached stat metadata, disk usage samples and deletion reports.
"""

import os
from dataclasses import dataclass
from enum import Enum


class TimeType(str, Enum):
    """Timestamp field used to compute the age of an entry.

    Lookup by value is case-insensitive and also accepts the long
    spellings ``access_time``, ``modify_time``, ``creation_time`` and
    ``birth_time``.

    Attributes:
        ATIME: Last access time.
        MTIME: Last content modification time.
        CTIME: Last status (inode) change time.
        BIRTHTIME: Creation time, where the platform records one.
    """

    ATIME = "atime"
    MTIME = "mtime"
    CTIME = "ctime"
    BIRTHTIME = "birthtime"

    @classmethod
    def _missing_(cls, value: object) -> "TimeType | None":
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return _TIME_TYPE_ALIASES.get(key)


_TIME_TYPE_ALIASES: dict[str, TimeType] = {
    "access_time": TimeType.ATIME,
    "modify_time": TimeType.MTIME,
    "creation_time": TimeType.CTIME,
    "birth_time": TimeType.BIRTHTIME,
}


@dataclass(frozen=True, slots=True)
class EntryStats:
    """Stat metadata cached on a populated entry.

    Timestamps are POSIX seconds. ``birthtime`` falls back to ``ctime``
    on platforms that do not expose a creation time.

    Attributes:
        size: Size in bytes as reported by stat.
        atime: Last access time.
        mtime: Last modification time.
        ctime: Last status change time.
        birthtime: Creation time.
        is_dir: Whether the path is a directory.
    """

    size: int
    atime: float
    mtime: float
    ctime: float
    birthtime: float
    is_dir: bool

    @classmethod
    def from_stat_result(cls, result: os.stat_result, is_dir: bool) -> "EntryStats":
        """Build EntryStats from an os.stat_result."""
        birthtime = getattr(result, "st_birthtime", None)
        return cls(
            size=result.st_size,
            atime=result.st_atime,
            mtime=result.st_mtime,
            ctime=result.st_ctime,
            birthtime=result.st_ctime if birthtime is None else birthtime,
            is_dir=is_dir,
        )

    def get_time(self, time_type: TimeType) -> float:
        """Return the timestamp selected by time_type."""
        return float(getattr(self, TimeType(time_type).value))


@dataclass(frozen=True, slots=True)
class DiskUsage:
    """Capacity sample for the filesystem holding a path.

    Attributes:
        total_bytes: Total capacity in bytes.
        available_bytes: Bytes still available for writing.
    """

    total_bytes: int
    available_bytes: int

    @property
    def used_bytes(self) -> int:
        """Bytes currently in use."""
        return self.total_bytes - self.available_bytes

    @property
    def used_fraction(self) -> float:
        """Fraction of capacity in use (0.0 to 1.0)."""
        if self.total_bytes <= 0:
            return 0.0
        return 1 - self.available_bytes / self.total_bytes


@dataclass(frozen=True, slots=True)
class DeletedEntry:
    """Report of a single entry removed during a cleanup cycle.

    Attributes:
        path: Absolute path that was removed.
        was_directory: Whether the entry was a directory.
        dry_run: Whether the removal was only reported, not performed.
        size_bytes: Size recorded when the tree was built.
    """

    path: str
    was_directory: bool
    dry_run: bool = False
    size_bytes: int = 0

    def __post_init__(self) -> None:
        """Validate deleted entry data after initialization."""
        if not self.path:
            msg = "Path cannot be empty"
            raise ValueError(msg)
