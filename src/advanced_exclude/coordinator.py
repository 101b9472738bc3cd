"""Serialization of reconciliation runs, one active run at a time."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Set

from advanced_exclude.cancellation import CancellationToken
from advanced_exclude.log import get_logger
from advanced_exclude.reconciler import ReconcileProgress, TreeReconciler
from advanced_exclude.types import ROOT_PATH

logger = get_logger(__name__)

# Floor on how long the progress indicator stays up, in seconds
DEFAULT_MIN_VISIBLE_DURATION = 2.0


class ProgressIndicator(ABC):
    """Transient indicator shown while a reconciliation is in flight."""

    @abstractmethod
    def show(self) -> None:
        pass

    @abstractmethod
    def update(self, progress: ReconcileProgress) -> None:
        pass

    @abstractmethod
    def hide(self) -> None:
        pass


class NullProgressIndicator(ProgressIndicator):
    """Indicator that displays nothing."""

    def show(self) -> None:
        pass

    def update(self, progress: ReconcileProgress) -> None:
        pass

    def hide(self) -> None:
        pass


@dataclass
class ReconciliationRun:
    """One requested reconciliation.

    Attributes:
        token: Cancelled when a newer run supersedes this one or on shutdown.
        progress: Live progress of the walk.
        finished: Set once the run has stopped issuing backend calls and its
            indicator is gone.
        completed: Whether the walk ran to the end.
    """

    token: CancellationToken = field(default_factory=CancellationToken)
    progress: ReconcileProgress = field(default_factory=ReconcileProgress)
    finished: asyncio.Event = field(default_factory=asyncio.Event)
    completed: bool = False


class RunCoordinator:
    """Starts reconciliations so that at most one is ever active.

    Requesting a run cancels the in-flight one and waits for it to stop before the
    new walk begins. While a run is active the progress indicator is visible for at
    least min_visible_duration seconds, unless the run is cancelled, in which case the
    indicator is torn down as soon as the walk stops.

    Attributes:
        reconciler (TreeReconciler): Performs the walks.
        indicator (ProgressIndicator): Displays run progress.
        min_visible_duration (float): Minimum seconds the indicator stays visible.
        root_path (str): Folder every run starts from.

    Example:
        >>> coordinator = RunCoordinator(reconciler)  # doctest: +SKIP
        >>> run = await coordinator.request_run()  # doctest: +SKIP
        >>> run.completed  # doctest: +SKIP
        True
    """

    def __init__(
        self,
        reconciler: TreeReconciler,
        indicator: Optional[ProgressIndicator] = None,
        min_visible_duration: float = DEFAULT_MIN_VISIBLE_DURATION,
        root_path: str = ROOT_PATH,
    ) -> None:
        self.reconciler = reconciler
        self.indicator = indicator if indicator is not None else NullProgressIndicator()
        self.min_visible_duration = min_visible_duration
        self.root_path = root_path
        self._current: Optional[ReconciliationRun] = None
        self._tasks: Set["asyncio.Task[ReconciliationRun]"] = set()
        self._closed = False

    @property
    def active_run(self) -> Optional[ReconciliationRun]:
        """The current run, or None if no run is in flight."""
        run = self._current
        if run is None or run.finished.is_set():
            return None
        return run

    @property
    def is_running(self) -> bool:
        return self.active_run is not None

    async def request_run(self) -> ReconciliationRun:
        """Supersede any in-flight run and reconcile from the root.

        Returns:
            The new run once it has finished or been superseded in turn.
        """
        run = ReconciliationRun()
        if self._closed:
            run.token.cancel()
            run.finished.set()
            return run

        previous, self._current = self._current, run
        if previous is not None and not previous.finished.is_set():
            logger.info("Superseding in-flight reconciliation")
            previous.token.cancel()
            await previous.finished.wait()

        # A newer request may have replaced this run while the previous one wound down
        if run.token.cancelled:
            run.finished.set()
            return run

        await self._execute(run)
        return run

    def schedule_run(self) -> "asyncio.Task[ReconciliationRun]":
        """Request a run without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.request_run())
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: "asyncio.Task[ReconciliationRun]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Reconciliation failed: %s", error, exc_info=error)

    async def _execute(self, run: ReconciliationRun) -> None:
        self.indicator.show()
        min_delay = asyncio.ensure_future(run.token.sleep(self.min_visible_duration))

        def on_progress(progress: ReconcileProgress) -> None:
            if run is self._current:
                self.indicator.update(progress)

        try:
            run.completed = await self.reconciler.reconcile(self.root_path, run.token, run.progress, on_progress)
            await min_delay
        finally:
            if not min_delay.done():
                min_delay.cancel()
            self.indicator.hide()
            run.finished.set()
        if run.completed:
            logger.debug("Reconciliation finished: %d/%d", run.progress.completed, run.progress.total)
        else:
            logger.info("Reconciliation cancelled after %d entries", run.progress.completed)

    def cancel(self) -> None:
        """Cancel the in-flight run, if any."""
        run = self.active_run
        if run is not None:
            run.token.cancel()

    async def wait_idle(self) -> None:
        """Wait until every scheduled run has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        run = self._current
        if run is not None and not run.finished.is_set():
            await run.finished.wait()

    async def shutdown(self) -> None:
        """Cancel the in-flight run and refuse new ones."""
        self._closed = True
        self.cancel()
        await self.wait_idle()
