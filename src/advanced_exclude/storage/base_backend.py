from abc import ABC, abstractmethod
from typing import Optional

from advanced_exclude.types import FileStat, ListedEntries


class StorageBackend(ABC):
    """
    Abstract base class for the host storage surface the engine works against.

    Paths are storage-relative, use forward slashes and name the root folder "/".
    Every operation is a coroutine because it may touch disk or another slow medium.

    The reconcile_* operations tell the host to bring its view of a single path in
    line with storage: register a file or folder, or forget a path and everything
    under it. They must be safe to call repeatedly for the same path.
    """

    @abstractmethod
    async def list(self, path: str) -> ListedEntries:
        """
        List the live children of a folder.

        Args:
            path (str): Folder path.

        Returns:
            ListedEntries: Full paths of the child files and folders.

        Raises:
            FileNotFoundError: If the folder does not exist.
        """
        pass

    @abstractmethod
    async def reconcile_file_creation(self, path: str) -> None:
        """Register a file with the host."""
        pass

    @abstractmethod
    async def reconcile_folder_creation(self, path: str) -> None:
        """Register a folder with the host."""
        pass

    @abstractmethod
    async def reconcile_deletion(self, path: str) -> None:
        """Make the host forget a path and all of its descendants."""
        pass

    @abstractmethod
    async def read(self, path: str) -> str:
        """
        Read a UTF-8 text file.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        pass

    @abstractmethod
    async def write(self, path: str, content: str) -> None:
        """Write a UTF-8 text file, replacing any existing content."""
        pass

    @abstractmethod
    async def stat(self, path: str) -> Optional[FileStat]:
        """Return stat information, or None when the path does not exist."""
        pass
