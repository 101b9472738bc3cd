"""Host-side snapshot of the known file tree.

The snapshot is what the host currently believes exists. Storage backends register
and unregister entries in it as reconciliation calls arrive; the reconciler only
reads it.
"""

import threading
from typing import Callable, Dict, Iterator, List, Optional

from advanced_exclude.tree.tree_node import TreeNode
from advanced_exclude.types import ROOT_PATH, basename, normalize_path, parent_path


class TreeSnapshot:
    """A tree of the files and folders the host knows about.

    Nodes are indexed by normalized path so lookups do not walk the tree. Adding an
    entry whose parent folder is unknown creates the missing ancestors, mirroring how
    a host registers a folder before its contents.

    Attributes:
        root (TreeNode): The root folder node.

    Example:
        >>> snapshot = TreeSnapshot("vault")
        >>> snapshot.add("notes/today.md", is_folder=False)
        >>> snapshot.children_paths("notes")
        ['notes/today.md']
        >>> snapshot.contains("notes")
        True
    """

    def __init__(self, root_name: str = "") -> None:
        """Initialize an empty snapshot.

        Args:
            root_name: Display name of the root folder.
        """
        self.root = TreeNode(root_name, storage_path=ROOT_PATH, is_folder=True)
        self._nodes: Dict[str, TreeNode] = {ROOT_PATH: self.root}
        self._lock = threading.RLock()

    def get(self, path: str) -> Optional[TreeNode]:
        """Return the node for a path, or None when the path is unknown."""
        return self._nodes.get(normalize_path(path))

    def contains(self, path: str) -> bool:
        """Check whether the snapshot knows a path."""
        return normalize_path(path) in self._nodes

    def is_folder(self, path: str) -> bool:
        """Check whether a known path is a folder."""
        node = self.get(path)
        return node is not None and node.is_folder

    def children_paths(self, folder_path: str) -> List[str]:
        """List the paths of the known children of a folder.

        Returns:
            Child paths, or an empty list when the folder is unknown or is a file.
        """
        with self._lock:
            node = self.get(folder_path)
            if node is None or not node.is_folder:
                return []
            return [child.storage_path for child in node.children]

    def add(self, path: str, is_folder: bool) -> None:
        """Register a file or folder, creating unknown ancestor folders.

        Registering an already known path is a no-op. A known path of the other kind
        is replaced, dropping whatever was below it.
        """
        normalized = normalize_path(path)
        if normalized == ROOT_PATH:
            return
        with self._lock:
            existing = self._nodes.get(normalized)
            if existing is not None:
                if existing.is_folder == is_folder:
                    return
                self.remove(normalized)
            parent_node = self._ensure_folder(parent_path(normalized))
            self._nodes[normalized] = TreeNode(
                basename(normalized), storage_path=normalized, parent=parent_node, is_folder=is_folder
            )

    def remove(self, path: str) -> bool:
        """Unregister a path together with all of its descendants.

        The root folder cannot be removed.

        Returns:
            True if the path was known and has been removed.
        """
        normalized = normalize_path(path)
        if normalized == ROOT_PATH:
            return False
        with self._lock:
            node = self._nodes.get(normalized)
            if node is None:
                return False
            for descendant in node.descendants:
                self._nodes.pop(descendant.storage_path, None)
            del self._nodes[normalized]
            node.parent = None
            return True

    def _ensure_folder(self, path: str) -> TreeNode:
        node = self._nodes.get(path)
        if node is not None:
            if node.is_folder:
                return node
            self.remove(path)
        parent_node = self._ensure_folder(parent_path(path))
        node = TreeNode(basename(path), storage_path=path, parent=parent_node, is_folder=True)
        self._nodes[path] = node
        return node

    def paths(self) -> List[str]:
        """Return all known paths except the root, sorted."""
        with self._lock:
            return sorted(path for path in self._nodes if path != ROOT_PATH)

    def get_file_count(self) -> int:
        """Get the number of known files."""
        with self._lock:
            return sum(1 for node in self._nodes.values() if not node.is_folder)

    def get_folder_count(self) -> int:
        """Get the number of known folders, excluding the root."""
        with self._lock:
            return sum(1 for node in self._nodes.values() if node.is_folder) - 1

    def stream_tree_representation(self, is_visible: Optional[Callable[[str], bool]] = None) -> Iterator[str]:
        """Generate a tree representation of the snapshot one line at a time.

        Output looks like the Unix 'tree' command. Folders sort before files and names
        sort case-insensitively.

        Args:
            is_visible: Optional predicate on paths; entries it rejects are left out
                together with everything below them.

        Example:
            >>> snapshot = TreeSnapshot("vault")
            >>> snapshot.add("b.md", is_folder=False)
            >>> snapshot.add("a/c.md", is_folder=False)
            >>> print("\\n".join(snapshot.stream_tree_representation()))
            vault/
            ├── a/
            │   └── c.md
            └── b.md
        """

        def write_node(node: TreeNode, prefix: str = "", is_last: bool = True, is_root: bool = False) -> Iterator[str]:
            if is_root:
                yield f"{node.name}/"
            else:
                connector = "└── " if is_last else "├── "
                suffix = "/" if node.is_folder else ""
                yield f"{prefix}{connector}{node.name}{suffix}"

            if node.is_folder:
                children = [child for child in node.children if is_visible is None or is_visible(child.storage_path)]
                sorted_children = sorted(children, key=lambda n: (not n.is_folder, n.name.lower()))
                for i, child in enumerate(sorted_children):
                    is_last_child = i == len(sorted_children) - 1
                    if is_root:
                        new_prefix = ""
                    else:
                        new_prefix = prefix + ("    " if is_last else "│   ")
                    yield from write_node(child, new_prefix, is_last_child)

        with self._lock:
            lines = list(write_node(self.root, is_root=True))
        yield from lines

    def get_tree_representation(self) -> str:
        """Get a complete string representation of the snapshot."""
        return "\n".join(self.stream_tree_representation())
