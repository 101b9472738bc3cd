"""Decorator applying exclusion policy at every storage mutation point."""

from typing import Awaitable, Callable, Optional

from advanced_exclude.log import get_logger
from advanced_exclude.storage.base_backend import StorageBackend
from advanced_exclude.tree.presentation import PresentationLayer
from advanced_exclude.types import ExcludeMode, FileStat, ListedEntries, normalize_path

logger = get_logger(__name__)

IgnoreCheck = Callable[[str, bool], Awaitable[bool]]
DeletionHook = Callable[[str], Awaitable[None]]


class ExcludingStorageBackend(StorageBackend):
    """Storage backend wrapper that filters creations through the exclusion rules.

    Every creation the host reports passes through here before reaching the wrapped
    backend. In FULL mode an excluded path is never registered; in FILES_PANE mode it
    is registered and then hidden from the presentation layer. Deletions are
    forwarded and then handed to a hook so the owner can react to rule files
    disappearing.

    Attributes:
        inner (StorageBackend): The wrapped backend.
    """

    def __init__(
        self,
        inner: StorageBackend,
        is_ignored: IgnoreCheck,
        get_exclude_mode: Callable[[], ExcludeMode],
        presentation: PresentationLayer,
        on_deleted: Optional[DeletionHook] = None,
    ) -> None:
        """Wrap a backend.

        Args:
            inner: Backend receiving the filtered calls.
            is_ignored: Coroutine deciding whether a path is excluded.
            get_exclude_mode: Returns the exclude mode in effect at call time.
            presentation: Presentation layer to hide entries from in FILES_PANE mode.
            on_deleted: Coroutine called after every forwarded deletion.
        """
        self.inner = inner
        self._is_ignored = is_ignored
        self._get_exclude_mode = get_exclude_mode
        self._presentation = presentation
        self._on_deleted = on_deleted

    async def _reconcile_creation(self, path: str, is_folder: bool) -> None:
        normalized = normalize_path(path)
        should_remove_from_presentation = False
        if await self._is_ignored(normalized, is_folder):
            if self._get_exclude_mode() == ExcludeMode.FULL:
                logger.debug("Suppressed creation of excluded path %s", normalized)
                return
            should_remove_from_presentation = True

        if is_folder:
            await self.inner.reconcile_folder_creation(normalized)
        else:
            await self.inner.reconcile_file_creation(normalized)

        if should_remove_from_presentation and self._presentation.contains(normalized):
            self._presentation.remove(normalized)

    async def reconcile_file_creation(self, path: str) -> None:
        await self._reconcile_creation(path, is_folder=False)

    async def reconcile_folder_creation(self, path: str) -> None:
        await self._reconcile_creation(path, is_folder=True)

    async def reconcile_deletion(self, path: str) -> None:
        normalized = normalize_path(path)
        await self.inner.reconcile_deletion(normalized)
        if self._on_deleted is not None:
            await self._on_deleted(normalized)

    async def list(self, path: str) -> ListedEntries:
        return await self.inner.list(path)

    async def read(self, path: str) -> str:
        return await self.inner.read(path)

    async def write(self, path: str, content: str) -> None:
        await self.inner.write(path, content)

    async def stat(self, path: str) -> Optional[FileStat]:
        return await self.inner.stat(path)
