"""Terminal progress display for reconciliation runs."""

import sys
from typing import Optional, TextIO

from advanced_exclude.coordinator import ProgressIndicator
from advanced_exclude.reconciler import ReconcileProgress


class StderrProgressIndicator(ProgressIndicator):
    """Shows "Updating file tree" with a live counter on stderr.

    The counter is redrawn in place only when the stream is a terminal; otherwise a
    single line is written when the run starts.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stderr
        self._visible = False

    @property
    def _interactive(self) -> bool:
        return hasattr(self.stream, "isatty") and self.stream.isatty()

    def show(self) -> None:
        self._visible = True
        if self._interactive:
            self.stream.write("Updating file tree...")
        else:
            self.stream.write("Updating file tree...\n")
        self.stream.flush()

    def update(self, progress: ReconcileProgress) -> None:
        if not self._visible or not self._interactive:
            return
        self.stream.write(f"\rUpdating file tree... {progress.completed}/{progress.total}")
        self.stream.flush()

    def hide(self) -> None:
        if not self._visible:
            return
        self._visible = False
        if self._interactive:
            self.stream.write("\r\033[K")
            self.stream.flush()
