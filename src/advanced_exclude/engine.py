"""The long-lived owner of every exclusion component."""

import asyncio
from typing import Iterable, Optional

from advanced_exclude.coordinator import (
    DEFAULT_MIN_VISIBLE_DURATION,
    ProgressIndicator,
    ReconciliationRun,
    RunCoordinator,
)
from advanced_exclude.decision_cache import DecisionCache
from advanced_exclude.exceptions import UnsupportedBackendError
from advanced_exclude.log import get_logger
from advanced_exclude.matcher import PatternMatcher
from advanced_exclude.persistence import DEFAULT_FLUSH_DELAY, DecisionStore, Fingerprint, WriteCoalescer
from advanced_exclude.reconciler import TreeReconciler
from advanced_exclude.settings import Settings
from advanced_exclude.sources import PRIMARY_SOURCE, SECONDARY_SOURCE, PatternSourceReader
from advanced_exclude.storage.base_backend import StorageBackend
from advanced_exclude.storage.excluding_backend import ExcludingStorageBackend
from advanced_exclude.tree.presentation import FilesPane, PresentationLayer
from advanced_exclude.tree.tree_snapshot import TreeSnapshot
from advanced_exclude.types import ExcludeMode, PathType, normalize_path

logger = get_logger(__name__)


class AdvancedExclude:
    """Exclusion engine for one storage root.

    Owns the rule reader, the matcher, the decision cache, the reconciler and the
    run coordinator for the lifetime of a session, so independent instances never
    share state. The host talks to storage through `backend`, which applies the
    exclusion policy to every creation it reports.

    Operations that change the rules return the task of the reconciliation they
    requested, or None when nothing changed.

    Attributes:
        backend (ExcludingStorageBackend): Backend the host should route its
            reconciliation calls through.
        settings (Settings): Settings in effect.
        snapshot (TreeSnapshot): The host's known tree.
        presentation (PresentationLayer): The host's files pane.
        cache (DecisionCache): Memoized exclusion decisions.
        coordinator (RunCoordinator): Serializes reconciliation runs.

    Example:
        >>> storage = LocalStorageBackend("notes")  # doctest: +SKIP
        >>> async with AdvancedExclude(storage) as engine:  # doctest: +SKIP
        ...     await engine.update_file_tree()
        ...     await engine.is_ignored("drafts", is_folder=True)
        True
    """

    def __init__(
        self,
        backend: StorageBackend,
        settings: Optional[Settings] = None,
        snapshot: Optional[TreeSnapshot] = None,
        presentation: Optional[PresentationLayer] = None,
        state_path: Optional[PathType] = None,
        indicator: Optional[ProgressIndicator] = None,
        min_visible_duration: float = DEFAULT_MIN_VISIBLE_DURATION,
        flush_delay: float = DEFAULT_FLUSH_DELAY,
    ) -> None:
        """Wire up the engine around a storage backend.

        Args:
            backend: Host storage. Its own snapshot and presentation attributes are
                used when the corresponding arguments are omitted.
            settings: Initial settings; defaults are used if omitted.
            snapshot: The host's known tree.
            presentation: The host's files pane.
            state_path: JSON file persisting decisions across restarts. Decisions
                are kept in memory only when omitted.
            indicator: Progress indicator shown during runs.
            min_visible_duration: Minimum seconds the indicator stays visible.
            flush_delay: Seconds persisted writes are coalesced for.

        Raises:
            UnsupportedBackendError: If backend is not a StorageBackend.
        """
        if not isinstance(backend, StorageBackend):
            raise UnsupportedBackendError(backend)

        self.settings = settings.copy() if settings is not None else Settings()
        if snapshot is None:
            snapshot = getattr(backend, "snapshot", None)
        self.snapshot = snapshot if isinstance(snapshot, TreeSnapshot) else TreeSnapshot()
        if presentation is None:
            presentation = getattr(backend, "presentation", None)
        self.presentation = presentation if isinstance(presentation, PresentationLayer) else FilesPane()

        self.reader = PatternSourceReader(backend)
        self.matcher = PatternMatcher(self.reader, lambda: self.settings)
        coalescer = WriteCoalescer(DecisionStore(state_path), flush_delay) if state_path is not None else None
        self.cache = DecisionCache(self.matcher, coalescer)

        self.backend = ExcludingStorageBackend(
            backend,
            self.cache.is_ignored,
            self._get_exclude_mode,
            self.presentation,
            on_deleted=self.handle_deleted_or_dot_file,
        )
        self.reconciler = TreeReconciler(
            backend, self.snapshot, self.presentation, self.cache.is_ignored, self._get_exclude_mode
        )
        self.coordinator = RunCoordinator(self.reconciler, indicator, min_visible_duration)

    async def __aenter__(self) -> "AdvancedExclude":
        await self.activate()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    def _get_exclude_mode(self) -> ExcludeMode:
        return self.settings.exclude_mode

    @property
    def is_active(self) -> bool:
        return self.cache.active

    def current_fingerprint(self) -> Fingerprint:
        """Fingerprint of the rule state decisions are currently computed under."""
        settings = self.settings
        secondary_mtime = 0
        if settings.should_include_git_ignore_patterns:
            secondary_mtime = self.reader.get(SECONDARY_SOURCE).last_modified
        exclude_filters = "\n".join(settings.exclude_filters) if settings.should_ignore_excluded_files else ""
        return Fingerprint(
            primary_mtime=self.reader.get(PRIMARY_SOURCE).last_modified,
            secondary_mtime=secondary_mtime,
            exclude_filters=exclude_filters,
        )

    async def _read_sources(self) -> None:
        self.settings.ignore_patterns_content = await self.reader.read_source(PRIMARY_SOURCE)
        if self.settings.should_include_git_ignore_patterns:
            await self.reader.read_source(SECONDARY_SOURCE)
        else:
            self.reader.clear(SECONDARY_SOURCE)

    async def activate(self) -> None:
        """Read the rule sources and restore persisted decisions.

        Until activation completes every exclusion query answers False.
        """
        await self._read_sources()
        restored = await self.cache.restore(self.current_fingerprint())
        self.cache.active = True
        logger.info("Exclusion engine active (%d persisted decisions restored)", restored)

    async def start(self) -> ReconciliationRun:
        """Activate and run the first reconciliation."""
        await self.activate()
        return await self.update_file_tree()

    async def shutdown(self) -> None:
        """Cancel the in-flight run and flush persisted decisions."""
        await self.coordinator.shutdown()
        await self.cache.close()
        self.cache.active = False
        logger.debug("Exclusion engine shut down")

    async def is_ignored(self, path: str, is_folder: bool = False) -> bool:
        """Check whether a path is excluded under the current rules."""
        return await self.cache.is_ignored(path, is_folder)

    async def update_file_tree(self) -> ReconciliationRun:
        """Reconcile the whole tree, superseding any run in flight."""
        return await self.coordinator.request_run()

    def schedule_update(self) -> "asyncio.Task[ReconciliationRun]":
        """Request a reconciliation without waiting for it."""
        return self.coordinator.schedule_run()

    async def wait_idle(self) -> None:
        """Wait for every requested reconciliation to finish."""
        await self.coordinator.wait_idle()

    async def _rules_changed(self) -> "asyncio.Task[ReconciliationRun]":
        await self.cache.reset(self.current_fingerprint())
        return self.schedule_update()

    async def process_config_changes(self) -> "asyncio.Task[ReconciliationRun]":
        """Re-read every rule source, discard all decisions and reconcile again."""
        await self._read_sources()
        self.cache.invalidate_filters()
        return await self._rules_changed()

    async def apply_settings(self, new_settings: Settings) -> Optional["asyncio.Task[ReconciliationRun]"]:
        """Switch to new settings, invalidating decisions when matching changes.

        The primary rule file mirror is left untouched; edit it through
        update_patterns().

        Returns:
            The requested reconciliation, or None if the change needs none.
        """
        old_settings = self.settings
        self.settings = new_settings.copy()
        self.settings.ignore_patterns_content = old_settings.ignore_patterns_content

        if old_settings.should_include_git_ignore_patterns != self.settings.should_include_git_ignore_patterns:
            if self.settings.should_include_git_ignore_patterns:
                await self.reader.read_source(SECONDARY_SOURCE)
            else:
                self.reader.clear(SECONDARY_SOURCE)
        if old_settings.exclude_filters != self.settings.exclude_filters:
            self.matcher.invalidate_filters()

        if old_settings.affects_matching(self.settings):
            logger.info("Settings changed exclusion rules, rebuilding decisions")
            self.cache.invalidate_filters()
            return await self._rules_changed()
        if old_settings.exclude_mode != self.settings.exclude_mode:
            logger.info("Exclude mode changed to %s", self.settings.exclude_mode.value)
            return self.schedule_update()
        return None

    async def set_exclude_filters(self, filters: Iterable[str]) -> Optional["asyncio.Task[ReconciliationRun]"]:
        """Replace the host's exclude-filter list."""
        new_settings = self.settings.copy()
        new_settings.exclude_filters = list(filters)
        return await self.apply_settings(new_settings)

    async def update_patterns(self, content: str) -> Optional["asyncio.Task[ReconciliationRun]"]:
        """Write new primary rules verbatim and reconcile under them."""
        changed = await self.reader.write_source(PRIMARY_SOURCE, content)
        self.settings.ignore_patterns_content = content
        if not changed:
            return None
        return await self._rules_changed()

    async def notify_file_changed(self, path: str) -> Optional["asyncio.Task[ReconciliationRun]"]:
        """React to an external change of a storage path.

        Only rule sources matter here; the secondary source is ignored while it is
        not included.
        """
        normalized = normalize_path(path)
        if not self.reader.is_source(normalized):
            return None
        if normalized == SECONDARY_SOURCE and not self.settings.should_include_git_ignore_patterns:
            return None
        if not await self.reader.refresh(normalized):
            return None
        if normalized == PRIMARY_SOURCE:
            self.settings.ignore_patterns_content = self.reader.get(PRIMARY_SOURCE).content
        return await self._rules_changed()

    async def handle_deleted_or_dot_file(self, path: str) -> None:
        """Deletion hook: forget the decision and pick up removed rule files."""
        self.cache.forget(path)
        await self.notify_file_changed(path)
