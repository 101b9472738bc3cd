"""Storage backend over a local directory."""

import asyncio
import os
from pathlib import Path
from typing import List, Optional, Tuple

from advanced_exclude.log import get_logger, trace
from advanced_exclude.storage.base_backend import StorageBackend
from advanced_exclude.tree.presentation import FilesPane, PresentationLayer
from advanced_exclude.tree.tree_snapshot import TreeSnapshot
from advanced_exclude.types import ROOT_PATH, FileStat, ListedEntries, PathType, join_path, normalize_path

logger = get_logger(__name__)


class LocalStorageBackend(StorageBackend):
    """Storage backend reading a directory on the local file system.

    Reconciliation calls update the host's in-memory snapshot and files pane the way
    a desktop host does: registering an entry makes it known and visible, deleting it
    forgets the entry and its descendants. Blocking file system calls run in worker
    threads so the event loop never blocks.

    Attributes:
        root_path (Path): Absolute directory backing the storage root.
        snapshot (TreeSnapshot): The host's view of known entries.
        presentation (PresentationLayer): The host's files pane.

    Example:
        >>> backend = LocalStorageBackend(".")  # doctest: +SKIP
        >>> asyncio.run(backend.list("/"))  # doctest: +SKIP
        ListedEntries(files=['README.md'], folders=['src'])
    """

    def __init__(
        self,
        root_path: PathType,
        snapshot: Optional[TreeSnapshot] = None,
        presentation: Optional[PresentationLayer] = None,
    ) -> None:
        """Initialize the backend.

        Args:
            root_path: Directory backing the storage root.
            snapshot: Snapshot to register entries in. A new one is created if omitted.
            presentation: Files pane to show and hide entries in. A new one is created
                if omitted.

        Raises:
            NotADirectoryError: If root_path is not an existing directory.
        """
        self.root_path = Path(root_path).resolve()
        if not self.root_path.is_dir():
            raise NotADirectoryError(f"Storage root is not a directory: {self.root_path}")
        self.snapshot = snapshot if snapshot is not None else TreeSnapshot(self.root_path.name)
        self.presentation = presentation if presentation is not None else FilesPane()

    def get_full_path(self, path: str) -> Path:
        """Map a storage path to an absolute path under the root directory."""
        normalized = normalize_path(path)
        if normalized == ROOT_PATH:
            return self.root_path
        return self.root_path.joinpath(*normalized.split("/"))

    async def list(self, path: str) -> ListedEntries:
        folder = normalize_path(path)
        full_path = self.get_full_path(folder)
        files, folders = await asyncio.to_thread(self._scan, full_path)
        return ListedEntries(
            files=[join_path(folder, name) for name in files],
            folders=[join_path(folder, name) for name in folders],
        )

    @staticmethod
    def _scan(full_path: Path) -> Tuple[List[str], List[str]]:
        files: List[str] = []
        folders: List[str] = []
        with os.scandir(full_path) as entries:
            for entry in entries:
                try:
                    if entry.is_dir():
                        folders.append(entry.name)
                    else:
                        files.append(entry.name)
                except OSError as e:
                    logger.warning("Cannot inspect %s: %s", entry.path, e)
        return sorted(files), sorted(folders)

    async def reconcile_file_creation(self, path: str) -> None:
        normalized = normalize_path(path)
        trace(logger, "Registering file %s", normalized)
        self.snapshot.add(normalized, is_folder=False)
        self.presentation.insert(normalized)

    async def reconcile_folder_creation(self, path: str) -> None:
        normalized = normalize_path(path)
        trace(logger, "Registering folder %s", normalized)
        if normalized == ROOT_PATH:
            return
        self.snapshot.add(normalized, is_folder=True)
        self.presentation.insert(normalized)

    async def reconcile_deletion(self, path: str) -> None:
        normalized = normalize_path(path)
        trace(logger, "Forgetting %s", normalized)
        node = self.snapshot.get(normalized)
        forgotten = [normalized]
        if node is not None:
            forgotten.extend(descendant.storage_path for descendant in node.descendants)
        self.snapshot.remove(normalized)
        for forgotten_path in forgotten:
            self.presentation.remove(forgotten_path)

    async def read(self, path: str) -> str:
        full_path = self.get_full_path(path)
        return await asyncio.to_thread(full_path.read_text, encoding="utf-8")

    async def write(self, path: str, content: str) -> None:
        full_path = self.get_full_path(path)
        await asyncio.to_thread(full_path.write_text, content, encoding="utf-8")

    async def stat(self, path: str) -> Optional[FileStat]:
        full_path = self.get_full_path(path)
        try:
            stat_info = await asyncio.to_thread(full_path.stat)
        except FileNotFoundError:
            return None
        return FileStat(
            mtime=round(stat_info.st_mtime_ns / 1_000_000),
            size=stat_info.st_size,
            is_folder=full_path.is_dir(),
        )
