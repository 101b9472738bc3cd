"""Presentation layer interface and an in-memory files pane."""

import threading
from abc import ABC, abstractmethod
from typing import Iterator, List, Set

from advanced_exclude.types import normalize_path


class PresentationLayer(ABC):
    """The host's file explorer, as far as exclusion is concerned.

    In FilesPane mode excluded entries stay in the storage backend but must not be
    shown; the reconciler uses this interface to hide and re-show them.
    """

    @abstractmethod
    def insert(self, path: str) -> None:
        """Show a path."""
        pass

    @abstractmethod
    def remove(self, path: str) -> None:
        """Hide a path."""
        pass

    @abstractmethod
    def contains(self, path: str) -> bool:
        """Check whether a path is currently shown."""
        pass


class FilesPane(PresentationLayer):
    """Set-backed presentation layer.

    Example:
        >>> pane = FilesPane()
        >>> pane.insert("notes/a.md")
        >>> pane.contains("notes/a.md")
        True
        >>> pane.remove("notes/a.md")
        >>> pane.contains("notes/a.md")
        False
    """

    def __init__(self) -> None:
        self._shown: Set[str] = set()
        self._lock = threading.Lock()

    def insert(self, path: str) -> None:
        with self._lock:
            self._shown.add(normalize_path(path))

    def remove(self, path: str) -> None:
        with self._lock:
            self._shown.discard(normalize_path(path))

    def contains(self, path: str) -> bool:
        with self._lock:
            return normalize_path(path) in self._shown

    def paths(self) -> List[str]:
        """Return the shown paths, sorted."""
        with self._lock:
            return sorted(self._shown)

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths())

    def __len__(self) -> int:
        with self._lock:
            return len(self._shown)
