"""Node representation for files and folders in the host's tree snapshot."""

from typing import Any, Optional

from anytree import Node


class TreeNode(Node):  # type: ignore
    """Node class representing a file or folder known to the host.

    Extends anytree.Node with the storage-relative path of the entry and a flag
    telling folders from files. Inherits tree traversal and manipulation capabilities
    from anytree.Node, including its read-only ``path`` tuple of ancestor nodes.

    Attributes:
        name (str): The basename of the file or folder.
        storage_path (str): Full storage-relative path ("/" for the root).
        parent (Optional[TreeNode]): The parent node in the tree.
        is_folder (bool): True if this node represents a folder.

    Example:
        >>> root = TreeNode("vault", storage_path="/", is_folder=True)
        >>> note = TreeNode("note.md", storage_path="note.md", parent=root)
        >>> note.parent is root
        True
        >>> note.storage_path
        'note.md'
        >>> note.path == (root, note)
        True
        >>> note.is_folder
        False
    """

    def __init__(
        self,
        name: str,
        storage_path: str,
        parent: Optional["TreeNode"] = None,
        is_folder: bool = False,
        **kwargs: Any,
    ) -> None:
        """Initialize a TreeNode.

        Args:
            name: The basename of the file or folder.
            storage_path: Full storage-relative path of the entry.
            parent: The parent node. Defaults to None.
            is_folder: Whether this node represents a folder. Defaults to False.
            **kwargs: Additional arguments passed to anytree.Node.
        """
        super().__init__(name, parent, **kwargs)
        self.storage_path = storage_path
        self.is_folder = is_folder
