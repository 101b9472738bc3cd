from abc import ABC, abstractmethod


class BaseExclusionRules(ABC):
    """
    Abstract base class defining the interface for path exclusion rules.

    This class serves as a contract for the different kinds of rules (gitignore-style
    patterns, host exclude filters) that decide whether a storage path is hidden from
    the host. Implementations answer for a single path string; folder handling is
    shared through exclude_entry().

    Example:
        >>> from advanced_exclude.exclusion_rules.git_rules import GitIgnoreExclusionRules
        >>> git_rules = GitIgnoreExclusionRules()
        >>> git_rules.add_rule('build/')
        >>> git_rules.exclude_entry('build', is_folder=True)
        True
        >>> git_rules.exclude_entry('build', is_folder=False)
        False
    """

    @abstractmethod
    def exclude(self, path: str) -> bool:
        """
        Determine if a given path string should be excluded.

        Args:
            path (str): Storage-relative path using forward slashes. Folder paths may
                carry a trailing slash.

        Returns:
            bool: True if the path should be excluded, False if it should be included.
        """
        pass

    def exclude_entry(self, path: str, is_folder: bool) -> bool:
        """
        Determine if a file or folder should be excluded.

        Folder-only patterns such as ``build/`` only match the separator-suffixed form
        of a path, so folders are checked both with and without a trailing slash.

        Args:
            path (str): Storage-relative path without a trailing slash.
            is_folder (bool): Whether the path names a folder.

        Returns:
            bool: True if either form of the path is excluded.
        """
        if self.exclude(path):
            return True
        return is_folder and self.exclude(f"{path}/")

    def has_rules(self) -> bool:
        """
        Check whether any rules are configured.

        Returns:
            bool: True unless the implementation knows it holds no rules.
        """
        return True
