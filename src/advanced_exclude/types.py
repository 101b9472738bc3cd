import posixpath
from dataclasses import dataclass, field
from enum import Enum
from os import PathLike
from typing import List, Union

# Complete path type including strings and any path-like object
PathType = Union[str, PathLike[str]]

# Storage-relative path of the root folder
ROOT_PATH = "/"

# Basename prefix marking entries that are never reconciled
HIDDEN_PREFIX = "."

# Alternative spellings accepted by ExcludeMode.parse
_MODE_ALIASES = {"filespaneonly": "filespane"}


class ExcludeMode(str, Enum):
    """How excluded paths are hidden from the host.

    Values:
        FULL: Excluded paths are removed from the storage backend's visible tree.
        FILES_PANE: Excluded paths stay in the storage backend and are only hidden
            from the presentation layer.
    """

    FULL = "Full"
    FILES_PANE = "FilesPane"

    @classmethod
    def parse(cls, value: str) -> "ExcludeMode":
        """Parse a mode from its value or a CLI spelling such as ``files-pane``.

        Example:
            >>> ExcludeMode.parse("files-pane")
            <ExcludeMode.FILES_PANE: 'FilesPane'>
            >>> ExcludeMode.parse("FilesPaneOnly")
            <ExcludeMode.FILES_PANE: 'FilesPane'>
            >>> ExcludeMode.parse("Full")
            <ExcludeMode.FULL: 'Full'>
        """
        key = value.replace("-", "").replace("_", "").lower()
        key = _MODE_ALIASES.get(key, key)
        for mode in cls:
            if mode.value.lower() == key:
                return mode
        raise ValueError(f"Unknown exclude mode: {value!r}")


@dataclass(frozen=True)
class PathDecision:
    """The outcome of evaluating one path against the current rule set."""

    path: str
    is_folder: bool
    is_ignored: bool


@dataclass
class ListedEntries:
    """Live children of a folder as reported by a storage backend.

    Both lists hold full storage-relative paths, not basenames.
    """

    files: List[str] = field(default_factory=list)
    folders: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FileStat:
    """Subset of stat information the core relies on."""

    mtime: int
    size: int = 0
    is_folder: bool = False


def normalize_path(path: str) -> str:
    """Normalize a storage path to the canonical cache key form.

    Backslashes become forward slashes, duplicate and trailing separators are
    collapsed and leading separators are removed. The root folder normalizes to
    ``ROOT_PATH``.

    Example:
        >>> normalize_path("notes\\\\daily//2024.md")
        'notes/daily/2024.md'
        >>> normalize_path("/archive/")
        'archive'
        >>> normalize_path("")
        '/'
    """
    cleaned = path.replace("\\", "/").strip("/")
    if not cleaned:
        return ROOT_PATH
    cleaned = posixpath.normpath(cleaned)
    if cleaned in (".", ""):
        return ROOT_PATH
    return cleaned


def names_folder(path: str) -> bool:
    """Check whether a path is spelled as a folder, with a trailing separator.

    Example:
        >>> names_folder("build/")
        True
        >>> names_folder("build\\\\")
        True
        >>> names_folder("build")
        False
    """
    return path.endswith("/") or path.endswith("\\")


def basename(path: str) -> str:
    """Return the last component of a storage path."""
    return posixpath.basename(path.rstrip("/"))


def parent_path(path: str) -> str:
    """Return the storage path of a path's parent folder.

    Example:
        >>> parent_path("a/b/c.md")
        'a/b'
        >>> parent_path("c.md")
        '/'
    """
    parent = posixpath.dirname(path.rstrip("/"))
    return parent if parent else ROOT_PATH


def join_path(folder: str, name: str) -> str:
    """Join a folder path and a child name into a storage path."""
    if folder == ROOT_PATH:
        return name
    return f"{folder}/{name}"


def is_hidden(path: str) -> bool:
    """Check whether a path's basename marks it as hidden."""
    return basename(path).startswith(HIDDEN_PREFIX)
