"""Test configuration and fixtures for advanced_exclude."""

import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

import pytest

from advanced_exclude.settings import Settings
from advanced_exclude.storage.base_backend import StorageBackend
from advanced_exclude.tree.presentation import FilesPane
from advanced_exclude.tree.tree_snapshot import TreeSnapshot
from advanced_exclude.types import ROOT_PATH, FileStat, ListedEntries, normalize_path, parent_path

MUTATIONS = ("create_file", "create_folder", "delete")


class RecordingPresentation(FilesPane):
    """Files pane that records every insert and remove."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: List[Tuple[str, str]] = []

    def insert(self, path: str) -> None:
        self.calls.append(("insert", normalize_path(path)))
        super().insert(path)

    def remove(self, path: str) -> None:
        self.calls.append(("remove", normalize_path(path)))
        super().remove(path)


class RecordingBackend(StorageBackend):
    """In-memory storage that records every call it receives.

    The live tree (what list() reports) and the host snapshot are kept apart, so tests
    can set up any mismatch between them. Reconciliation calls update the snapshot and
    the presentation layer like a real host would.
    """

    def __init__(self) -> None:
        self.files: Dict[str, str] = {}
        self.folders: Set[str] = {ROOT_PATH}
        self.mtimes: Dict[str, int] = {}
        self.snapshot = TreeSnapshot("vault")
        self.presentation = RecordingPresentation()
        self.calls: List[Tuple[str, str]] = []
        self.failing_paths: Set[str] = set()
        self.on_list: Optional[Callable[[str], Awaitable[None]]] = None
        self._clock = 1000

    def _tick(self) -> int:
        self._clock += 1
        return self._clock

    def add_folder(self, path: str) -> None:
        path = normalize_path(path)
        while path != ROOT_PATH:
            self.folders.add(path)
            path = parent_path(path)

    def add_file(self, path: str, content: str = "") -> None:
        path = normalize_path(path)
        self.add_folder(parent_path(path))
        self.files[path] = content
        self.mtimes[path] = self._tick()

    def remove_path(self, path: str) -> None:
        path = normalize_path(path)
        self.files.pop(path, None)
        self.mtimes.pop(path, None)
        self.folders.discard(path)
        prefix = path + "/"
        for file_path in [p for p in self.files if p.startswith(prefix)]:
            del self.files[file_path]
        self.folders = {p for p in self.folders if not p.startswith(prefix)}

    def mutations(self) -> List[Tuple[str, str]]:
        """Reconciliation calls only, without reads and listings."""
        return [call for call in self.calls if call[0] in MUTATIONS]

    def _children(self, folder: str, paths: Set[str]) -> List[str]:
        return sorted(p for p in paths if p != ROOT_PATH and parent_path(p) == folder)

    async def list(self, path: str) -> ListedEntries:
        folder = normalize_path(path)
        self.calls.append(("list", folder))
        if self.on_list is not None:
            await self.on_list(folder)
        if folder not in self.folders:
            raise FileNotFoundError(folder)
        return ListedEntries(
            files=self._children(folder, set(self.files)),
            folders=self._children(folder, self.folders),
        )

    def _check(self, path: str) -> None:
        if path in self.failing_paths:
            raise OSError(f"Simulated failure for {path}")

    async def reconcile_file_creation(self, path: str) -> None:
        path = normalize_path(path)
        self.calls.append(("create_file", path))
        self._check(path)
        self.snapshot.add(path, is_folder=False)
        self.presentation.insert(path)

    async def reconcile_folder_creation(self, path: str) -> None:
        path = normalize_path(path)
        self.calls.append(("create_folder", path))
        self._check(path)
        if path != ROOT_PATH:
            self.snapshot.add(path, is_folder=True)
            self.presentation.insert(path)

    async def reconcile_deletion(self, path: str) -> None:
        path = normalize_path(path)
        self.calls.append(("delete", path))
        self._check(path)
        node = self.snapshot.get(path)
        if node is not None:
            for descendant in node.descendants:
                self.presentation.remove(descendant.storage_path)
        self.snapshot.remove(path)
        self.presentation.remove(path)

    async def read(self, path: str) -> str:
        path = normalize_path(path)
        self.calls.append(("read", path))
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    async def write(self, path: str, content: str) -> None:
        path = normalize_path(path)
        self.calls.append(("write", path))
        self.add_file(path, content)

    async def stat(self, path: str) -> Optional[FileStat]:
        path = normalize_path(path)
        if path in self.files:
            return FileStat(mtime=self.mtimes[path], size=len(self.files[path]))
        if path in self.folders:
            return FileStat(mtime=0, is_folder=True)
        return None


def known(backend: RecordingBackend, *paths: str) -> None:
    """Register paths in the backend's snapshot without recording calls."""
    for path in paths:
        is_folder = path.endswith("/")
        backend.snapshot.add(path, is_folder=is_folder)
        backend.presentation.insert(path)
    backend.presentation.calls.clear()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo logging configuration done by CLI tests so caplog keeps working."""
    yield
    logger = logging.getLogger("advanced_exclude")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def backend():
    """Empty recording backend."""
    return RecordingBackend()


@pytest.fixture
def vault_backend():
    """Recording backend with a small vault and primary rules."""
    backend = RecordingBackend()
    backend.add_file(".obsidianignore", "drafts/\n*.tmp\n!keep.tmp\n")
    backend.add_file("notes/today.md")
    backend.add_file("notes/scratch.tmp")
    backend.add_file("notes/keep.tmp")
    backend.add_file("drafts/idea.md")
    backend.add_file("readme.md")
    return backend


@pytest.fixture
def settings():
    """Default settings."""
    return Settings()
