"""Pytest configuration and shared fixtures.

This module contains an in-memory filesystem used to drive the entry
tree and the cleanup engine through races and failures that are hard
to reproduce on a real disk.
"""

import errno
import os
from collections.abc import Callable
from pathlib import Path

import pytest
from expirefs.core.config import build_config
from expirefs.core.expirer import ExpireFS
from expirefs.filesystem.models import DiskUsage, EntryStats
from expirefs.filesystem.provider import DiskUsageProvider, FilesystemProvider

# Fixed "current time" for age computations
NOW = 1_700_000_000.0
HOUR = 3600.0
DAY = 24 * HOUR

WATCH = "/srv/watch"


class FakeFilesystem(FilesystemProvider):
    """In-memory FilesystemProvider with injectable failures.

    Attributes:
        nodes: Stats of every existing path.
        stat_errors: Errors raised by stat_path for a path.
        list_errors: Errors raised by list_directory for a path.
        remove_errors: Errors raised by remove_file/remove_directory for a path.
        vanished: Paths listed by their parent but gone by the time they are stat'ed.
        removed: Paths removed, in call order.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, EntryStats] = {}
        self.stat_errors: dict[str, OSError] = {}
        self.list_errors: dict[str, OSError] = {}
        self.remove_errors: dict[str, OSError] = {}
        self.vanished: set[str] = set()
        self.removed: list[str] = []

    def add_dir(self, path: str, age: float = 0.0) -> None:
        parent = os.path.dirname(path)
        if parent != path and parent not in self.nodes:
            self.add_dir(parent, age)
        ts = NOW - age
        self.nodes[path] = EntryStats(
            size=4096, atime=ts, mtime=ts, ctime=ts, birthtime=ts, is_dir=True
        )

    def add_file(self, path: str, size: int = 100, age: float = 0.0) -> None:
        parent = os.path.dirname(path)
        if parent not in self.nodes:
            self.add_dir(parent)
        ts = NOW - age
        self.nodes[path] = EntryStats(
            size=size, atime=ts, mtime=ts, ctime=ts, birthtime=ts, is_dir=False
        )

    def exists(self, path: str) -> bool:
        return path in self.nodes

    def _children(self, path: str) -> list[str]:
        return [os.path.basename(p) for p in self.nodes if p != path and os.path.dirname(p) == path]

    def list_directory(self, path: str) -> list[str]:
        if path in self.list_errors:
            raise self.list_errors[path]
        if path not in self.nodes:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        names = self._children(path)
        names.extend(os.path.basename(p) for p in self.vanished if os.path.dirname(p) == path)
        return names

    def stat_path(self, path: str) -> EntryStats:
        if path in self.stat_errors:
            raise self.stat_errors[path]
        if path in self.vanished or path not in self.nodes:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        return self.nodes[path]

    def remove_file(self, path: str) -> None:
        if path in self.remove_errors:
            raise self.remove_errors[path]
        if path not in self.nodes:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        del self.nodes[path]
        self.removed.append(path)

    def remove_directory(self, path: str) -> None:
        if path in self.remove_errors:
            raise self.remove_errors[path]
        if path not in self.nodes:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        if self._children(path):
            raise OSError(errno.ENOTEMPTY, "Directory not empty", path)
        del self.nodes[path]
        self.removed.append(path)


class FakeDiskUsage(DiskUsageProvider):
    """DiskUsageProvider returning a fixed sample, or raising error if set."""

    def __init__(self, total: int = 1000, available: int = 1000) -> None:
        self.total = total
        self.available = available
        self.error: OSError | None = None
        self.calls = 0

    def usage(self, path: str) -> DiskUsage:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return DiskUsage(total_bytes=self.total, available_bytes=self.available)


@pytest.fixture(autouse=True)
def isolated_config_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG_CONFIG_HOME at a temporary directory for every test."""
    config_home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    return config_home


@pytest.fixture
def fake_fs() -> FakeFilesystem:
    """Empty in-memory filesystem containing only the watched folder."""
    fs = FakeFilesystem()
    fs.add_dir(WATCH)
    return fs


@pytest.fixture
def fake_disk() -> FakeDiskUsage:
    """Disk with plenty of free space."""
    return FakeDiskUsage()


@pytest.fixture
def make_expirer(
    fake_fs: FakeFilesystem, fake_disk: FakeDiskUsage
) -> Callable[..., ExpireFS]:
    """Factory building an ExpireFS over the fake filesystem at a fixed clock."""

    def factory(**options: object) -> ExpireFS:
        options.setdefault("folder", WATCH)
        options.setdefault("time_type", "mtime")
        filter_func = options.pop("filter_func", None)
        return ExpireFS(
            build_config(**options),
            filter_func=filter_func,  # type: ignore[arg-type]
            fs=fake_fs,
            disk=fake_disk,
            clock=lambda: NOW,
        )

    return factory
