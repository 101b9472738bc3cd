"""SIGINT and SIGPIPE handling for the advanced-exclude CLI.

Ctrl+C does not kill the process outright. The first SIGINT is recorded, the
registered interrupt callbacks cancel the reconciliation in flight, and the CLI
exits with code 130 once the walk has stopped at its next checkpoint. The default
handler is reinstated right away, so a second Ctrl+C aborts immediately.

SIGPIPE is recorded the same way so output stops quietly when stdout is closed,
e.g. when the tree is piped into ``head``.
"""

import atexit
import os
import signal
import sys
from threading import Event
from types import FrameType
from typing import Callable, List, Optional

InterruptCallback = Callable[[], None]


class SignalHandler:
    """Records interrupting signals and notifies interested parties.

    Attributes:
        sigpipe_received: Set once stdout's reader has gone away.
        sigint_received: Set once the user pressed Ctrl+C.
        original_sigpipe_handler: Handler reinstated after the first SIGPIPE.
        original_sigint_handler: Handler reinstated after the first SIGINT.
    """

    def __init__(self) -> None:
        self.sigpipe_received = Event()
        self.sigint_received = Event()
        self.original_sigpipe_handler = signal.getsignal(signal.SIGPIPE)
        self.original_sigint_handler = signal.getsignal(signal.SIGINT)
        self._interrupt_callbacks: List[InterruptCallback] = []

    def add_interrupt_callback(self, callback: InterruptCallback) -> None:
        """Run callback when SIGINT arrives.

        Callbacks run inside the signal handler, so they should only hand work to
        an event loop, e.g. through ``loop.call_soon_threadsafe``.
        """
        self._interrupt_callbacks.append(callback)

    def remove_interrupt_callback(self, callback: InterruptCallback) -> None:
        if callback in self._interrupt_callbacks:
            self._interrupt_callbacks.remove(callback)

    def handle_sigpipe(self, signum: int, frame: Optional[FrameType]) -> None:
        self.sigpipe_received.set()
        signal.signal(signal.SIGPIPE, self.original_sigpipe_handler)

    def handle_sigint(self, signum: int, frame: Optional[FrameType]) -> None:
        self.sigint_received.set()
        signal.signal(signal.SIGINT, self.original_sigint_handler)
        for callback in list(self._interrupt_callbacks):
            callback()

    def reset(self) -> None:
        """Forget received signals and registered callbacks."""
        self.sigpipe_received.clear()
        self.sigint_received.clear()
        self._interrupt_callbacks.clear()


# Process-wide instance; signal handlers are process-wide too
signal_handler = SignalHandler()


def setup_signal_handling() -> None:
    """Install the process-wide handlers."""
    signal.signal(signal.SIGPIPE, signal_handler.handle_sigpipe)
    signal.signal(signal.SIGINT, signal_handler.handle_sigint)


def cleanup() -> None:
    """Point stdout at the null device after an interruption.

    Registered with atexit so the interpreter's final flush of a dead pipe does not
    print a second error.
    """
    if signal_handler.sigpipe_received.is_set() or signal_handler.sigint_received.is_set():
        null_fd = os.open(os.devnull, os.O_WRONLY)
        os.dup2(null_fd, sys.stdout.fileno())


atexit.register(cleanup)
