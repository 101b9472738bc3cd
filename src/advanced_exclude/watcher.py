"""Live file system watching for a local storage root."""

import asyncio
import os
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Coroutine, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from advanced_exclude.engine import AdvancedExclude
from advanced_exclude.log import get_logger
from advanced_exclude.types import ROOT_PATH, PathType, is_hidden, normalize_path, parent_path

logger = get_logger(__name__)


class VaultEventHandler(FileSystemEventHandler):
    """Translates watchdog events into storage reconciliation calls.

    watchdog delivers events on its observer thread; each one is handed to the
    engine's event loop and processed there, so the engine never runs concurrently
    with itself.
    """

    def __init__(self, engine: AdvancedExclude, root_path: Path, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self.engine = engine
        self.root_path = root_path
        self.loop = loop

    def to_storage_path(self, file_path: Union[str, bytes]) -> Optional[str]:
        """Map an absolute file system path to a storage path, or None if outside the root."""
        try:
            relative = Path(os.fsdecode(file_path)).resolve().relative_to(self.root_path)
        except ValueError:
            return None
        return normalize_path(relative.as_posix())

    def _submit(self, coro: Coroutine[Any, Any, None]) -> None:
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future: "Future[None]") -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error("Failed handling file system event: %s", error, exc_info=error)

    def on_created(self, event: FileSystemEvent) -> None:
        path = self.to_storage_path(event.src_path)
        if path is not None and path != ROOT_PATH:
            self._submit(self._handle_created(path, event.is_directory))

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = self.to_storage_path(event.src_path)
        if path is not None and path != ROOT_PATH:
            self._submit(self._handle_deleted(path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self.to_storage_path(event.src_path)
        if path is not None and self.engine.reader.is_source(path):
            self._submit(self._handle_source_changed(path))

    def on_moved(self, event: FileSystemEvent) -> None:
        src_path = self.to_storage_path(event.src_path)
        dest_path = self.to_storage_path(event.dest_path)
        self._submit(self._handle_moved(src_path, dest_path, event.is_directory))

    async def _handle_created(self, path: str, is_folder: bool) -> None:
        if self.engine.reader.is_source(path):
            await self.engine.notify_file_changed(path)
            return
        if is_hidden(path) or not self.engine.snapshot.contains(parent_path(path)):
            return
        logger.debug("Created: %s", path)
        if is_folder:
            await self.engine.backend.reconcile_folder_creation(path)
        else:
            await self.engine.backend.reconcile_file_creation(path)

    async def _handle_deleted(self, path: str) -> None:
        if self.engine.reader.is_source(path):
            await self.engine.handle_deleted_or_dot_file(path)
            return
        if not self.engine.snapshot.contains(path):
            return
        logger.debug("Deleted: %s", path)
        await self.engine.backend.reconcile_deletion(path)

    async def _handle_moved(self, src_path: Optional[str], dest_path: Optional[str], is_folder: bool) -> None:
        if src_path is not None and src_path != ROOT_PATH:
            await self._handle_deleted(src_path)
        if dest_path is not None and dest_path != ROOT_PATH:
            await self._handle_created(dest_path, is_folder)

    async def _handle_source_changed(self, path: str) -> None:
        await self.engine.notify_file_changed(path)


class VaultWatcher:
    """Keeps an engine in sync with a local directory until stopped.

    Attributes:
        engine (AdvancedExclude): Engine receiving the changes.
        root_path (Path): Watched directory.

    Example:
        >>> watcher = VaultWatcher(engine, "notes")  # doctest: +SKIP
        >>> watcher.start()  # doctest: +SKIP
        >>> watcher.stop()  # doctest: +SKIP
    """

    def __init__(
        self,
        engine: AdvancedExclude,
        root_path: PathType,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.engine = engine
        self.root_path = Path(root_path).resolve()
        self._loop = loop
        self._observer: Optional[Any] = None

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """Start watching. Must be called with the engine's event loop available."""
        if self._observer is not None:
            logger.warning("Watcher already running")
            return
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        handler = VaultEventHandler(self.engine, self.root_path, loop)
        observer = Observer()
        observer.schedule(handler, str(self.root_path), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching directory: %s", self.root_path)

    def stop(self) -> None:
        """Stop watching and wait for the observer thread to exit."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        logger.info("Stopped watching %s", self.root_path)
