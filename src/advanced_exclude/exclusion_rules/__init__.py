"""Exclusion rules for filtering files and folders."""

from .base_rules import BaseExclusionRules
from .composite_rules import CompositeExclusionRules
from .filter_rules import ExcludeFilterRules, compile_exclude_filter
from .git_rules import CaseInsensitiveGitWildMatchPattern, GitIgnoreExclusionRules

__all__ = [
    "BaseExclusionRules",
    "CaseInsensitiveGitWildMatchPattern",
    "CompositeExclusionRules",
    "ExcludeFilterRules",
    "GitIgnoreExclusionRules",
    "compile_exclude_filter",
]
