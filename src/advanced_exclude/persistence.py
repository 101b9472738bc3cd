"""Durable storage of exclusion decisions across restarts."""

import asyncio
import json
import os
import tempfile
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Set, Tuple

from advanced_exclude.exceptions import StateStoreError
from advanced_exclude.log import get_logger
from advanced_exclude.types import PathType

logger = get_logger(__name__)

STORE_VERSION = 1
DEFAULT_FLUSH_DELAY = 5.0


@dataclass(frozen=True)
class Fingerprint:
    """Identity of the rule state persisted decisions were computed under.

    Attributes:
        primary_mtime: Modification time of the primary rule file (0 if missing).
        secondary_mtime: Modification time of the secondary rule file, 0 when the
            file is missing or not included.
        exclude_filters: Newline-joined exclude filters, "" when they are disabled.
    """

    primary_mtime: int = 0
    secondary_mtime: int = 0
    exclude_filters: str = ""

    @classmethod
    def from_mapping(cls, data: Any) -> Optional["Fingerprint"]:
        """Rebuild a fingerprint from stored JSON, or None if it is malformed."""
        if not isinstance(data, dict):
            return None
        try:
            return cls(
                primary_mtime=int(data["primary_mtime"]),
                secondary_mtime=int(data["secondary_mtime"]),
                exclude_filters=str(data["exclude_filters"]),
            )
        except (KeyError, TypeError, ValueError):
            return None


class DecisionStore:
    """JSON file holding persisted decisions and the fingerprint they belong to.

    The whole document is rewritten on every change through a temporary file and an
    atomic rename, so a crash never leaves a half-written store behind. A store that
    cannot be parsed or has an unknown version is treated as empty.

    Attributes:
        path (Path): Location of the JSON document.

    Example:
        >>> store = DecisionStore("/tmp/state/decisions.json")  # doctest: +SKIP
        >>> store.reset(Fingerprint(primary_mtime=1))  # doctest: +SKIP
        >>> store.apply({"drafts": True}, set())  # doctest: +SKIP
        >>> store.load()  # doctest: +SKIP
        (Fingerprint(primary_mtime=1, secondary_mtime=0, exclude_filters=''), {'drafts': True})
    """

    def __init__(self, path: PathType) -> None:
        self.path = Path(path)
        self._fingerprint: Optional[Fingerprint] = None
        self._entries: Dict[str, bool] = {}
        self._lock = threading.Lock()

    def load(self) -> Tuple[Optional[Fingerprint], Dict[str, bool]]:
        """Read the persisted fingerprint and entries.

        Returns:
            The stored fingerprint (None if absent or unusable) and a copy of the
            stored entries.
        """
        with self._lock:
            self._fingerprint, self._entries = None, {}
            if not self.path.exists():
                return None, {}
            try:
                document = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Discarding unreadable decision store %s: %s", self.path, e)
                return None, {}

            if not isinstance(document, dict) or document.get("version") != STORE_VERSION:
                logger.info("Discarding decision store %s with unknown version", self.path)
                return None, {}

            entries = document.get("entries")
            if isinstance(entries, dict):
                self._entries = {str(path): value for path, value in entries.items() if isinstance(value, bool)}
            self._fingerprint = Fingerprint.from_mapping(document.get("fingerprint"))
            return self._fingerprint, dict(self._entries)

    def reset(self, fingerprint: Fingerprint) -> None:
        """Drop every entry and record a new fingerprint.

        Raises:
            StateStoreError: If the store cannot be written.
        """
        with self._lock:
            self._fingerprint = fingerprint
            self._entries = {}
            self._write()

    def apply(self, puts: Dict[str, bool], deletes: Set[str]) -> None:
        """Apply a batch of entry updates.

        Raises:
            StateStoreError: If the store cannot be written.
        """
        with self._lock:
            for path in deletes:
                self._entries.pop(path, None)
            self._entries.update(puts)
            self._write()

    def _write(self) -> None:
        document = {
            "version": STORE_VERSION,
            "fingerprint": asdict(self._fingerprint) if self._fingerprint is not None else None,
            "entries": self._entries,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f)
                os.replace(temp_name, self.path)
            except BaseException:
                os.unlink(temp_name)
                raise
        except OSError as e:
            raise StateStoreError(str(self.path), str(e))


class WriteCoalescer:
    """Queue that batches decision writes and flushes them after a delay.

    Rapid-fire updates for the same path collapse into one write, and the store is
    written at most once per flush_delay seconds. Failed flushes are logged and the
    batch is dropped; the store is a cache that is safe to rebuild.

    Attributes:
        store (DecisionStore): Store receiving the flushed batches.
        flush_delay (float): Seconds between the first queued write and the flush.
    """

    def __init__(self, store: DecisionStore, flush_delay: float = DEFAULT_FLUSH_DELAY) -> None:
        self.store = store
        self.flush_delay = flush_delay
        # None marks a pending deletion
        self._pending: Dict[str, Optional[bool]] = {}
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: Set["asyncio.Task[None]"] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def put(self, path: str, is_ignored: bool) -> None:
        """Queue storing a decision."""
        self._pending[path] = is_ignored
        self._schedule()

    def delete(self, path: str) -> None:
        """Queue removing a decision."""
        self._pending[path] = None
        self._schedule()

    def _schedule(self) -> None:
        if self._timer is not None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.flush_delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self.flush())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def flush(self) -> None:
        """Write all queued updates now."""
        self._cancel_timer()
        pending, self._pending = self._pending, {}
        if not pending:
            return
        puts = {path: value for path, value in pending.items() if value is not None}
        deletes = {path for path, value in pending.items() if value is None}
        try:
            await asyncio.to_thread(self.store.apply, puts, deletes)
        except StateStoreError as e:
            logger.error("Dropping %d queued decision writes: %s", len(pending), e)

    async def reset(self, fingerprint: Fingerprint) -> None:
        """Discard queued updates and reset the store to a new fingerprint."""
        self._cancel_timer()
        self._pending = {}
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        try:
            await asyncio.to_thread(self.store.reset, fingerprint)
        except StateStoreError as e:
            logger.error("Cannot reset decision store: %s", e)

    async def close(self) -> None:
        """Flush queued updates and wait for in-flight flushes."""
        await self.flush()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
