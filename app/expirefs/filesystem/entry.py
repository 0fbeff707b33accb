"""In-memory mirror of a watched directory tree.

An ExpireEntry represents one filesystem path. Directories own their
children through a name-keyed mapping; each child only keeps a weak
reference back to its parent. A tree is built fresh for every cleanup
cycle by calling populate() on the root and is discarded afterwards.

Population and deletion fan out over children with asyncio.gather.
Provider calls run in worker threads when ``concurrent`` is set and
inline otherwise.
"""

from __future__ import annotations

import asyncio
import logging
import os
import weakref
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

from expirefs.filesystem.models import EntryStats, TimeType
from expirefs.filesystem.provider import FilesystemProvider, LocalFilesystem

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Pseudo-entries some listings report for the directory itself and its parent
_PSEUDO_ENTRIES: frozenset[str] = frozenset({".", ".."})


class ExpireEntry:
    """A node mirroring one filesystem path and, for directories, its children.

    Args:
        path: Filesystem path of the entry. Made absolute on construction.
        parent: Owning directory entry, or None for the root.
        fs: Filesystem provider. Children inherit the parent's provider.
        concurrent: Dispatch provider calls to worker threads.
            Children inherit the parent's setting.
    """

    def __init__(
        self,
        path: str,
        *,
        parent: ExpireEntry | None = None,
        fs: FilesystemProvider | None = None,
        concurrent: bool = True,
    ) -> None:
        self._path = os.path.abspath(path)
        self._parent_ref = weakref.ref(parent) if parent is not None else None

        if parent is not None:
            self._fs = parent._fs
            self._concurrent = parent._concurrent
        else:
            self._fs = fs or LocalFilesystem()
            self._concurrent = concurrent

        self.stats: EntryStats | None = None
        self.children: dict[str, ExpireEntry] = {}
        self.deleted = False
        self._vanished = False

    def __repr__(self) -> str:
        kind = "unpopulated" if self.stats is None else ("dir" if self.stats.is_dir else "file")
        return f"ExpireEntry({self._path!r}, {kind})"

    # === Properties ===

    @property
    def path(self) -> str:
        """Absolute filesystem path."""
        return self._path

    @property
    def basename(self) -> str:
        """Last path segment."""
        return os.path.basename(self._path)

    @property
    def parent(self) -> ExpireEntry | None:
        """Owning directory entry, or None for the root."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def is_root(self) -> bool:
        """Whether this entry was constructed without a parent."""
        return self._parent_ref is None

    @property
    def is_populated(self) -> bool:
        """Whether stat metadata was fetched successfully."""
        return self.stats is not None

    @property
    def is_dir(self) -> bool:
        """Whether the entry is a directory.

        Raises:
            RuntimeError: If the entry has not been populated.
        """
        if self.stats is None:
            msg = f"Entry has no metadata yet: {self._path}"
            raise RuntimeError(msg)
        return self.stats.is_dir

    @property
    def size(self) -> int:
        """Size in bytes, 0 when unpopulated."""
        return self.stats.size if self.stats is not None else 0

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def children_list(self) -> list[str]:
        return list(self.children)

    @property
    def children_values(self) -> list[ExpireEntry]:
        return list(self.children.values())

    def get_time(self, time_type: TimeType) -> float:
        """Return the selected timestamp in POSIX seconds.

        Raises:
            RuntimeError: If the entry has not been populated.
        """
        if self.stats is None:
            msg = f"Entry has no metadata yet: {self._path}"
            raise RuntimeError(msg)
        return self.stats.get_time(time_type)

    # === Traversal ===

    def traverse(self, callback: Callable[[ExpireEntry], Any]) -> None:
        """Call callback on this entry and every descendant, pre-order."""
        for entry in self.walk():
            callback(entry)

    async def traverse_async(self, callback: Callable[[ExpireEntry], Any]) -> None:
        """Await callback on this entry and every descendant, pre-order."""
        for entry in self.walk():
            await callback(entry)

    def walk(self) -> Iterator[ExpireEntry]:
        """Yield this entry and every descendant in pre-order."""
        yield self
        for child in list(self.children.values()):
            yield from child.walk()

    def list(self) -> list[ExpireEntry]:
        """Return a flat pre-order list of this entry and its descendants."""
        return list(self.walk())

    # === Population ===

    async def populate(self) -> None:
        """Fetch metadata and, for directories, build the subtree.

        A path that vanished, before stat or before listing, is left without
        metadata and dropped from its parent once the sibling populations
        join. Other stat or listing errors are logged and leave the node
        inert: without metadata, so no policy deletes it or its ancestors.
        """
        try:
            self.stats = await self._call(self._fs.stat_path, self._path)
        except FileNotFoundError:
            logger.debug("Path vanished before stat: %s", self._path)
            self._vanished = True
            return
        except OSError as e:
            logger.warning("Cannot stat %s: %s", self._path, e)
            return

        if not self.stats.is_dir:
            return

        try:
            names = await self._call(self._fs.list_directory, self._path)
        except FileNotFoundError:
            logger.debug("Directory vanished before listing: %s", self._path)
            self.stats = None
            self._vanished = True
            return
        except OSError as e:
            logger.warning("Cannot list directory %s: %s", self._path, e)
            self.stats = None
            return

        for name in sorted(names):
            if name in _PSEUDO_ENTRIES:
                continue
            self.children[name] = ExpireEntry(os.path.join(self._path, name), parent=self)

        pending = list(self.children.values())
        await asyncio.gather(*(child.populate() for child in pending))

        for child in pending:
            if child._vanished:
                self.children.pop(child.basename, None)

    # === Deletion ===

    async def delete(
        self,
        *,
        keep_empty_parent: bool = False,
        dry: bool = False,
        remove_root: bool = False,
    ) -> list[ExpireEntry]:
        """Delete this entry, its descendants first, and collapse empty ancestors.

        Directory children are deleted concurrently with keep_empty_parent
        set, so only this call decides whether emptied ancestors go too.
        A failure on one node is logged and leaves that node attached;
        nothing is raised.

        A directory is always removed once its children are gone, whatever
        keep_empty_parent says. The flag only stops the collapse of this
        entry's parent.

        Args:
            keep_empty_parent: Leave the parent in place even if it ends up empty.
            dry: Report deletions without touching storage.
            remove_root: Allow the collapse to delete the tree root.

        Returns:
            Entries removed by this call, in removal order.
        """
        if self.stats is None:
            logger.debug("Skipping unpopulated entry: %s", self._path)
            return []

        removed: list[ExpireEntry] = []

        if self.stats.is_dir:
            results = await asyncio.gather(
                *(
                    child.delete(keep_empty_parent=True, dry=dry)
                    for child in list(self.children.values())
                )
            )
            for result in results:
                removed.extend(result)

            if self.children:
                logger.debug(
                    "Keeping %s: %d entries could not be deleted", self._path, len(self.children)
                )
                return removed
            if not await self._remove(self._fs.remove_directory, dry):
                return removed
        elif not await self._remove(self._fs.remove_file, dry):
            return removed

        removed.append(self)
        parent = self.parent
        self._detach()

        if keep_empty_parent or parent is None or parent.children:
            return removed
        if parent.is_root and not remove_root:
            return removed

        removed.extend(
            await parent.delete(keep_empty_parent=False, dry=dry, remove_root=remove_root)
        )
        return removed

    async def _remove(self, remover: Callable[[str], None], dry: bool) -> bool:
        """Run a storage removal for this entry, returning whether it is gone."""
        if dry:
            logger.info("Dry-run: would delete %s", self._path)
            return True

        try:
            await self._call(remover, self._path)
        except FileNotFoundError:
            logger.debug("Already gone: %s", self._path)
            return True
        except OSError as e:
            logger.warning("Failed to delete %s: %s", self._path, e)
            return False

        logger.info("Deleted %s", self._path)
        return True

    def _detach(self) -> None:
        self.deleted = True
        parent = self.parent
        if parent is not None and parent.children.get(self.basename) is self:
            del parent.children[self.basename]

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        if self._concurrent:
            return await asyncio.to_thread(fn, *args)
        return fn(*args)
