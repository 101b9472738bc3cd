"""Depth-first synchronization of the host's tree with live storage listings."""

from dataclasses import dataclass, replace
from typing import Awaitable, Callable, List, Optional, Set, Tuple

from advanced_exclude.cancellation import CancellationToken
from advanced_exclude.log import get_logger, trace
from advanced_exclude.storage.base_backend import StorageBackend
from advanced_exclude.tree.presentation import PresentationLayer
from advanced_exclude.tree.tree_snapshot import TreeSnapshot
from advanced_exclude.types import ROOT_PATH, ExcludeMode, is_hidden, normalize_path

logger = get_logger(__name__)

IgnoreCheck = Callable[[str, bool], Awaitable[bool]]
ProgressCallback = Callable[["ReconcileProgress"], None]


@dataclass
class ReconcileProgress:
    """Progress of one reconciliation run.

    Both counters only grow. The total is not known upfront: it starts at one for
    the root folder and grows as listings reveal more entries.

    Example:
        >>> progress = ReconcileProgress()
        >>> progress.total += 3
        >>> progress.completed += 2
        >>> progress.fraction
        0.5
    """

    completed: int = 0
    total: int = 1

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 0.0

    def copy(self) -> "ReconcileProgress":
        return replace(self)


class TreeReconciler:
    """Brings the host's view of a tree in line with storage and exclusion rules.

    For each folder the live listing is compared with the children the snapshot
    knows. Included entries are registered, excluded entries are removed (FULL mode)
    or hidden from the presentation layer (FILES_PANE mode), entries that vanished
    from storage are deleted, and included subfolders are visited recursively.

    Calls are only issued when they change something: a path already known is not
    registered again, an unknown path is not deleted, and the presentation layer is
    only touched when membership differs. A known path whose kind no longer matches
    the listing is deleted and registered again. Running reconcile() twice without changes
    in between therefore issues no calls the second time.

    A failure on one entry is logged and the walk goes on. The cancellation token is
    checked before every child, orphan and subfolder.

    Attributes:
        backend (StorageBackend): Receives listing and reconcile calls.
        snapshot (TreeSnapshot): The host's known tree, read only.
        presentation (PresentationLayer): Files pane for FILES_PANE mode.
    """

    def __init__(
        self,
        backend: StorageBackend,
        snapshot: TreeSnapshot,
        presentation: PresentationLayer,
        is_ignored: IgnoreCheck,
        get_exclude_mode: Callable[[], ExcludeMode],
    ) -> None:
        self.backend = backend
        self.snapshot = snapshot
        self.presentation = presentation
        self._is_ignored = is_ignored
        self._get_exclude_mode = get_exclude_mode

    async def reconcile(
        self,
        root_path: str = ROOT_PATH,
        token: Optional[CancellationToken] = None,
        progress: Optional[ReconcileProgress] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> bool:
        """Reconcile a folder and everything below it.

        Args:
            root_path: Folder to start from.
            token: Cancellation token checked throughout the walk.
            progress: Progress record to update; a new one is used if omitted.
            on_progress: Called with a copy of the progress after every step.

        Returns:
            True if the walk finished, False if it stopped because of cancellation.
        """
        walk = _Walk(
            token if token is not None else CancellationToken(),
            progress if progress is not None else ReconcileProgress(),
            on_progress,
        )
        root = normalize_path(root_path)
        if walk.token.cancelled:
            return False

        if not self.snapshot.contains(root):
            await self.backend.reconcile_folder_creation(root)

        return await self._reconcile_folder(root, walk, is_root=True)

    async def _reconcile_folder(self, folder_path: str, walk: "_Walk", is_root: bool = False) -> bool:
        if walk.token.cancelled:
            return False
        logger.debug("Reconciling folder: %s", folder_path)
        if not is_root:
            walk.grow(1)

        if not self.snapshot.contains(folder_path):
            walk.advance()
            return True

        try:
            listed = await self.backend.list(folder_path)
        except Exception:
            logger.exception("Failed listing folder %s", folder_path)
            walk.advance()
            return True

        entries: List[Tuple[str, bool]] = [(normalize_path(path), False) for path in listed.files]
        entries.extend((normalize_path(path), True) for path in listed.folders)
        walk.grow(len(entries))

        orphan_paths = set(self.snapshot.children_paths(folder_path))
        included_paths: Set[str] = set()

        for child_path, is_folder in entries:
            if walk.token.cancelled:
                return False
            orphan_paths.discard(child_path)
            try:
                await self._reconcile_child(child_path, is_folder, included_paths)
            except Exception:
                logger.exception("Failed reconciling %s", child_path)
            finally:
                walk.advance()

        walk.grow(len(orphan_paths))
        for orphan_path in sorted(orphan_paths):
            if walk.token.cancelled:
                return False
            trace(logger, "Cleaning orphan: %s", orphan_path)
            try:
                await self.backend.reconcile_deletion(orphan_path)
            except Exception:
                logger.exception("Failed cleaning orphan %s", orphan_path)
            finally:
                walk.advance()

        for child_path, is_folder in entries:
            if not is_folder or child_path not in included_paths:
                continue
            if walk.token.cancelled:
                return False
            try:
                if not await self._reconcile_folder(child_path, walk):
                    return False
            except Exception:
                logger.exception("Failed reconciling folder %s", child_path)

        walk.advance()
        return True

    async def _reconcile_child(self, child_path: str, is_folder: bool, included_paths: Set[str]) -> None:
        trace(logger, "Reconciling entry: %s", child_path)
        if is_hidden(child_path):
            return

        is_ignored = await self._is_ignored(child_path, is_folder)
        exclude_mode = self._get_exclude_mode()
        is_known = self.snapshot.contains(child_path)

        # A file replaced by a folder of the same name, or the reverse
        if is_known and self.snapshot.is_folder(child_path) != is_folder:
            trace(logger, "Entry changed kind: %s", child_path)
            await self.backend.reconcile_deletion(child_path)
            is_known = False

        if is_ignored and exclude_mode == ExcludeMode.FULL:
            if is_known:
                await self.backend.reconcile_deletion(child_path)
            return

        if not is_known:
            if is_folder:
                await self.backend.reconcile_folder_creation(child_path)
            else:
                await self.backend.reconcile_file_creation(child_path)
        included_paths.add(child_path)

        if exclude_mode != ExcludeMode.FILES_PANE:
            return
        is_shown = self.presentation.contains(child_path)
        if is_ignored and is_shown:
            self.presentation.remove(child_path)
        elif not is_ignored and not is_shown:
            self.presentation.insert(child_path)


class _Walk:
    """State shared by every level of one reconcile() call."""

    def __init__(
        self, token: CancellationToken, progress: ReconcileProgress, on_progress: Optional[ProgressCallback]
    ) -> None:
        self.token = token
        self.progress = progress
        self._on_progress = on_progress

    def grow(self, count: int) -> None:
        if count:
            self.progress.total += count
            self._notify()

    def advance(self) -> None:
        self.progress.completed += 1
        self._notify()

    def _notify(self) -> None:
        if self._on_progress is not None:
            self._on_progress(self.progress.copy())
