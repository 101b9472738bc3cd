"""Gitignore-style exclusion for hierarchical file stores.

This package decides which paths of a file store should be hidden from a host
application and keeps the host's view of the tree synchronized with those
decisions as files and rules change.
"""

from importlib.metadata import PackageNotFoundError, version

# Expose the version for both programmatic use and CLI
try:
    __version__ = version("advanced-exclude")
except PackageNotFoundError:
    __version__ = "unknown"
