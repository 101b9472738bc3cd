"""Reading and change detection for rule source files."""

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable

from advanced_exclude.log import get_logger
from advanced_exclude.storage.base_backend import StorageBackend
from advanced_exclude.types import normalize_path

logger = get_logger(__name__)

# Rule file names, relative to the storage root
PRIMARY_SOURCE = ".obsidianignore"
SECONDARY_SOURCE = ".gitignore"


@dataclass
class PatternSource:
    """The last observed state of one rule file.

    Attributes:
        name: Storage path of the rule file.
        content: Text of the last successful read, or "" if the file was missing.
        last_modified: Modification time in milliseconds, 0 if the file was missing.
    """

    name: str
    content: str = ""
    last_modified: int = 0


class PatternSourceReader:
    """Reads rule files through a storage backend and tracks their changes.

    Two change signals are offered. has_changed() compares modification times and is
    cheap; refresh() re-reads the text and compares content. Each source has its own
    lock so concurrent callers see a consistent answer: a change is reported to
    exactly one caller.

    Attributes:
        backend (StorageBackend): Backend the rule files are read from.

    Example:
        >>> reader = PatternSourceReader(backend)  # doctest: +SKIP
        >>> await reader.read_source(PRIMARY_SOURCE)  # doctest: +SKIP
        'drafts/\\n'
    """

    def __init__(self, backend: StorageBackend, names: Iterable[str] = (PRIMARY_SOURCE, SECONDARY_SOURCE)) -> None:
        self.backend = backend
        self._sources: Dict[str, PatternSource] = {name: PatternSource(name) for name in names}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock

    def get(self, name: str) -> PatternSource:
        """Return the tracked state of a source, registering it if unknown."""
        source = self._sources.get(name)
        if source is None:
            source = self._sources[name] = PatternSource(name)
        return source

    def is_source(self, path: str) -> bool:
        """Check whether a storage path is one of the tracked rule files."""
        return normalize_path(path) in self._sources

    async def _stat_mtime(self, name: str) -> int:
        stat = await self.backend.stat(name)
        return stat.mtime if stat is not None else 0

    async def _read_text(self, name: str) -> str:
        try:
            return await self.backend.read(name)
        except FileNotFoundError:
            return ""
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read rule source %s, treating it as empty: %s", name, e)
            return ""

    async def read_source(self, name: str) -> str:
        """Read the current text of a rule file.

        A missing file reads as empty content, never as an error. The stored content
        and modification time are updated.

        Args:
            name: Storage path of the rule file.

        Returns:
            The file's text, or "" if it does not exist.
        """
        async with self._lock_for(name):
            source = self.get(name)
            source.last_modified = await self._stat_mtime(name)
            source.content = await self._read_text(name)
            return source.content

    async def refresh(self, name: str) -> bool:
        """Re-read a rule file and report whether its content changed.

        Returns:
            True if the content differs from the last content seen.
        """
        async with self._lock_for(name):
            source = self.get(name)
            mtime = await self._stat_mtime(name)
            content = await self._read_text(name)
            source.last_modified = mtime
            if content == source.content:
                return False
            logger.info("Rule source %s changed", name)
            source.content = content
            return True

    async def has_changed(self, name: str) -> bool:
        """Compare the recorded modification time with a fresh one.

        When they differ the recorded time is updated, so each real change is
        reported once and subsequent calls return False until the next change.

        Returns:
            True exactly once per observed modification.
        """
        async with self._lock_for(name):
            source = self.get(name)
            mtime = await self._stat_mtime(name)
            if mtime == source.last_modified:
                return False
            source.last_modified = mtime
            return True

    async def write_source(self, name: str, content: str) -> bool:
        """Write a rule file verbatim.

        Returns:
            False if the content was unchanged and nothing was written.
        """
        async with self._lock_for(name):
            source = self.get(name)
            if content == source.content:
                return False
            await self.backend.write(name, content)
            source.content = content
            source.last_modified = await self._stat_mtime(name)
            return True

    def clear(self, name: str) -> bool:
        """Forget a source's content, as when the source is disabled.

        Returns:
            True if there was content to forget.
        """
        source = self.get(name)
        had_content = bool(source.content)
        source.content = ""
        source.last_modified = 0
        return had_content
