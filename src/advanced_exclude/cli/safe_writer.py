"""Signal-aware output for CLI listings."""

import errno
import os
import sys
from typing import Iterable, Optional

from advanced_exclude.cli.signal_handler import signal_handler


class SafeWriter:
    """Writes text to a file descriptor, stopping cleanly once output is unwanted.

    After SIGPIPE or SIGINT every write raises BrokenPipeError, which the CLI treats
    as the end of its output rather than as a failure.

    Attributes:
        fd: File descriptor written to, stdout by default.
    """

    def __init__(self, fd: Optional[int] = None) -> None:
        self.fd = fd if fd is not None else sys.stdout.fileno()

    def write(self, data: str) -> None:
        """Write text.

        Raises:
            BrokenPipeError: If SIGPIPE or SIGINT was received or the pipe is closed.
            OSError: If another I/O error occurs.
        """
        if signal_handler.sigpipe_received.is_set() or signal_handler.sigint_received.is_set():
            raise BrokenPipeError()
        try:
            os.write(self.fd, data.encode("utf-8"))
        except OSError as e:
            if e.errno == errno.EPIPE:
                raise BrokenPipeError()
            raise

    def write_lines(self, lines: Iterable[str]) -> None:
        """Write each item followed by a newline."""
        for line in lines:
            self.write(line + "\n")
