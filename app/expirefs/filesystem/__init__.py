"""Filesystem tree and storage providers.

This module provides the in-memory entry tree mirroring a watched
folder, the provider interfaces used to query and mutate storage, and
the models shared with the cleanup engine.
"""

from expirefs.filesystem.entry import ExpireEntry
from expirefs.filesystem.models import DeletedEntry, DiskUsage, EntryStats, TimeType
from expirefs.filesystem.provider import (
    DiskUsageProvider,
    FilesystemProvider,
    LocalDiskUsage,
    LocalFilesystem,
)

__all__ = [
    "DeletedEntry",
    "DiskUsage",
    "DiskUsageProvider",
    "EntryStats",
    "ExpireEntry",
    "FilesystemProvider",
    "LocalDiskUsage",
    "LocalFilesystem",
    "TimeType",
]
