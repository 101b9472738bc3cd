"""Memoization of per-path exclusion decisions."""

import asyncio
from typing import Dict, Optional

from advanced_exclude.log import get_logger
from advanced_exclude.matcher import PatternMatcher
from advanced_exclude.persistence import Fingerprint, WriteCoalescer
from advanced_exclude.types import ROOT_PATH, PathDecision, names_folder, normalize_path

logger = get_logger(__name__)


class DecisionCache:
    """Per-path memo in front of a PatternMatcher.

    Entries live until invalidate() clears all of them at once; there is no selective
    revalidation. When a WriteCoalescer is supplied, new decisions are also queued for
    the persistent store and restore() reloads them on the next start if the rule
    fingerprint still matches.

    Until the owner marks the cache active every query answers False, so early
    callers during startup never hide anything.

    Attributes:
        matcher (PatternMatcher): Matcher computing uncached decisions.
        active (bool): Whether activation has completed.

    Example:
        >>> cache = DecisionCache(matcher)  # doctest: +SKIP
        >>> cache.active = True  # doctest: +SKIP
        >>> await cache.is_ignored("drafts", is_folder=True)  # doctest: +SKIP
        True
    """

    def __init__(self, matcher: PatternMatcher, coalescer: Optional[WriteCoalescer] = None) -> None:
        self.matcher = matcher
        self.active = False
        self._coalescer = coalescer
        self._entries: Dict[str, bool] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return normalize_path(path) in self._entries

    @property
    def excluded_count(self) -> int:
        """Number of memoized decisions that exclude their path."""
        return sum(1 for is_ignored in self._entries.values() if is_ignored)

    async def is_ignored(self, path: str, is_folder: bool) -> bool:
        """Return the memoized decision for a path, computing it on first query.

        Args:
            path: Storage path; normalized before lookup. A trailing separator
                marks it as a folder.
            is_folder: Whether the path names a folder.

        Returns:
            True if the path is excluded. Always False for the root and before
            activation.
        """
        if not self.active:
            return False

        is_folder = is_folder or names_folder(path)
        normalized = normalize_path(path)
        if normalized == ROOT_PATH:
            return False

        cached = self._entries.get(normalized)
        if cached is not None:
            return cached

        generation = self.matcher.generation
        result = self.matcher.is_excluded(normalized, is_folder)
        # A decision computed under rules that were invalidated meanwhile is not kept
        if generation == self.matcher.generation:
            self._entries[normalized] = result
            if self._coalescer is not None:
                self._coalescer.put(normalized, result)
        return result

    async def decide(self, path: str, is_folder: bool) -> PathDecision:
        """Return the full decision record for a path."""
        normalized = normalize_path(path)
        return PathDecision(normalized, is_folder, await self.is_ignored(normalized, is_folder))

    def invalidate(self) -> None:
        """Drop every memoized decision and the compiled rule set."""
        self.matcher.invalidate()
        self._entries.clear()
        logger.debug("Decision cache invalidated")

    def invalidate_filters(self) -> None:
        """Like invalidate(), also recompiling the exclude filters."""
        self.matcher.invalidate_filters()
        self._entries.clear()
        logger.debug("Decision cache and exclude filters invalidated")

    def forget(self, path: str) -> None:
        """Remove the decision for a path the host no longer has."""
        normalized = normalize_path(path)
        if self._entries.pop(normalized, None) is not None and self._coalescer is not None:
            self._coalescer.delete(normalized)

    async def restore(self, fingerprint: Fingerprint) -> int:
        """Load persisted decisions if they were computed under the same fingerprint.

        A mismatching fingerprint discards the whole persisted store.

        Returns:
            Number of decisions restored.
        """
        if self._coalescer is None:
            return 0
        stored_fingerprint, entries = await asyncio.to_thread(self._coalescer.store.load)
        if stored_fingerprint != fingerprint:
            logger.info("Rule fingerprint changed since last run, discarding persisted decisions")
            await self._coalescer.reset(fingerprint)
            self._entries.clear()
            return 0
        self._entries.update(entries)
        logger.debug("Restored %d persisted decisions", len(entries))
        return len(entries)

    async def reset(self, fingerprint: Fingerprint) -> None:
        """Invalidate everything and restart the persisted store under a new fingerprint."""
        self.invalidate()
        if self._coalescer is not None:
            await self._coalescer.reset(fingerprint)

    async def close(self) -> None:
        """Flush queued persistent writes."""
        if self._coalescer is not None:
            await self._coalescer.close()
