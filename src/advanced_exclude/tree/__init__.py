"""In-memory view of the host's file tree.

This package provides the tree snapshot the reconciler compares against live
listings, and the presentation layer (files pane) that can hide entries without
removing them from the snapshot.
"""

from .presentation import FilesPane, PresentationLayer
from .tree_node import TreeNode
from .tree_snapshot import TreeSnapshot

__all__ = ["FilesPane", "PresentationLayer", "TreeNode", "TreeSnapshot"]
