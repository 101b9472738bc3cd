"""Storage backends consumed by the exclusion engine."""

from .base_backend import StorageBackend
from .excluding_backend import ExcludingStorageBackend
from .local_backend import LocalStorageBackend

__all__ = ["ExcludingStorageBackend", "LocalStorageBackend", "StorageBackend"]
