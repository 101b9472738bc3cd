"""Gitignore-syntax exclusion rules, matched case-insensitively."""

from typing import Iterable, Optional, Tuple

from pathspec import PathSpec
from pathspec.patterns import GitWildMatchPattern  # type: ignore

from .base_rules import BaseExclusionRules


class CaseInsensitiveGitWildMatchPattern(GitWildMatchPattern):  # type: ignore
    """Gitignore pattern whose compiled expression ignores case.

    Host file systems are case-insensitive on common platforms, so ``Build/`` and
    ``build/`` must exclude the same folder.
    """

    @classmethod
    def pattern_to_regex(cls, pattern: str) -> Tuple[Optional[str], Optional[bool]]:
        regex, include = super().pattern_to_regex(pattern)
        if regex is not None:
            regex = f"(?i){regex}"
        return regex, include


class GitIgnoreExclusionRules(BaseExclusionRules):
    """Exclusion rules read from .obsidianignore and .gitignore contents.

    Matching is delegated to pathspec with a case-insensitive pattern class. The last
    pattern that matches a path decides, so a later ``!pattern`` re-includes what an
    earlier one excluded, and a pattern ending in ``/`` only matches folders (see
    exclude_entry()).

    Attributes:
        spec (PathSpec): Compiled pattern matcher from the pathspec library.

    Example:
        >>> rules = GitIgnoreExclusionRules.from_content("foo/*\\n!foo/bar.md\\n")
        >>> rules.exclude("foo/bar.md")
        False
        >>> rules.exclude("FOO/baz.md")
        True
    """

    def __init__(self, lines: Optional[Iterable[str]] = None):
        """Compile pattern lines.

        Args:
            lines: Gitignore pattern lines. Blank lines and comments are accepted and
                ignored.
        """
        self.spec = PathSpec.from_lines(CaseInsensitiveGitWildMatchPattern, list(lines or []))

    @classmethod
    def from_content(cls, *contents: str) -> "GitIgnoreExclusionRules":
        """Build rules from one or more rule file contents.

        Contents are concatenated in the order given, separated by a newline, so rules
        from later contents override rules from earlier ones.

        Args:
            *contents: Raw text of rule files.

        Returns:
            A new rules object.

        Example:
            >>> rules = GitIgnoreExclusionRules.from_content("*.log", "!keep.log")
            >>> rules.exclude("debug.log"), rules.exclude("keep.log")
            (True, False)
        """
        return cls("\n".join(contents).splitlines())

    def exclude(self, path: str) -> bool:
        """Check if a path should be excluded based on the loaded patterns.

        Args:
            path: Storage-relative path using forward slashes.

        Returns:
            bool: True if the last pattern matching the path is a non-negated one.
        """
        return bool(self.spec.match_file(path))

    def add_rule(self, rule: str) -> None:
        """Append one pattern; it takes precedence over every earlier one.

        Example:
            >>> rules = GitIgnoreExclusionRules()
            >>> rules.add_rule("*.tmp")
            >>> rules.exclude("a/b.TMP")
            True
        """
        patterns = list(self.spec.patterns)
        patterns.append(CaseInsensitiveGitWildMatchPattern(rule))
        self.spec = PathSpec(patterns)

    def has_rules(self) -> bool:
        """Check whether any effective (non-comment, non-blank) pattern is loaded."""
        return any(pattern.include is not None for pattern in self.spec.patterns)
