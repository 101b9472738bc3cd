"""Compilation of rule sources and exclude filters into one matcher."""

import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from advanced_exclude.exclusion_rules import CompositeExclusionRules, ExcludeFilterRules, GitIgnoreExclusionRules
from advanced_exclude.log import get_logger
from advanced_exclude.settings import Settings
from advanced_exclude.sources import PRIMARY_SOURCE, SECONDARY_SOURCE, PatternSourceReader
from advanced_exclude.types import ROOT_PATH, names_folder, normalize_path

logger = get_logger(__name__)


@dataclass(frozen=True)
class CompiledRuleSet:
    """An immutable snapshot of every active exclusion rule.

    Attributes:
        git_rules: Gitignore patterns from the primary source, followed by the
            secondary source when it is enabled.
        filter_rules: Host exclude filters, empty when they are disabled.
    """

    git_rules: GitIgnoreExclusionRules
    filter_rules: ExcludeFilterRules
    rules: CompositeExclusionRules = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", CompositeExclusionRules([self.git_rules, self.filter_rules]))

    def is_excluded(self, path: str, is_folder: bool) -> bool:
        """Evaluate a normalized path against both rule kinds."""
        return self.rules.exclude_entry(path, is_folder)


class PatternMatcher:
    """Answers whether a path is excluded, compiling rules lazily.

    The compiled rule set is built on the first query after an invalidation and then
    reused. Rebuilding is a single-writer critical section: concurrent readers see
    either the previous rule set or the complete new one.

    Attributes:
        reader (PatternSourceReader): Source of rule file contents.
        generation (int): Incremented by every invalidation. A decision computed under
            one generation is stale once the generation moves on.

    Example:
        >>> matcher = PatternMatcher(reader, lambda: settings)  # doctest: +SKIP
        >>> matcher.is_excluded("build", is_folder=True)  # doctest: +SKIP
        True
    """

    def __init__(self, reader: PatternSourceReader, get_settings: Callable[[], Settings]) -> None:
        self.reader = reader
        self._get_settings = get_settings
        self._rule_set: Optional[CompiledRuleSet] = None
        self._filter_rules: Optional[ExcludeFilterRules] = None
        self._lock = threading.Lock()
        self.generation = 0

    def invalidate(self) -> None:
        """Drop the compiled rule set so the next query rebuilds it."""
        with self._lock:
            self._rule_set = None
            self.generation += 1

    def invalidate_filters(self) -> None:
        """Drop the compiled exclude filters along with the rule set."""
        self._filter_rules = None
        self.invalidate()

    def _get_filter_rules(self, settings: Settings) -> ExcludeFilterRules:
        if not settings.should_ignore_excluded_files:
            return ExcludeFilterRules([])
        filter_rules = self._filter_rules
        if filter_rules is None:
            # Racing rebuilds are harmless: each reads a full copy of the list
            filter_rules = ExcludeFilterRules(tuple(settings.exclude_filters))
            self._filter_rules = filter_rules
        return filter_rules

    def _build(self) -> CompiledRuleSet:
        settings = self._get_settings()
        contents = [self.reader.get(PRIMARY_SOURCE).content]
        if settings.should_include_git_ignore_patterns:
            contents.append(self.reader.get(SECONDARY_SOURCE).content)
        rule_set = CompiledRuleSet(
            git_rules=GitIgnoreExclusionRules.from_content(*contents),
            filter_rules=self._get_filter_rules(settings),
        )
        logger.debug(
            "Compiled rule set: %d patterns, %d exclude filters",
            len(rule_set.git_rules.spec.patterns),
            len(rule_set.filter_rules.filters),
        )
        return rule_set

    def get_rule_set(self) -> CompiledRuleSet:
        """Return the current rule set, building it if necessary."""
        rule_set = self._rule_set
        if rule_set is not None:
            return rule_set
        with self._lock:
            if self._rule_set is None:
                self._rule_set = self._build()
            return self._rule_set

    def is_excluded(self, path: str, is_folder: bool) -> bool:
        """Decide whether a path is excluded by the current rules.

        The root folder is never excluded.

        Args:
            path: Storage path; it is normalized before matching. A trailing
                separator marks it as a folder.
            is_folder: Whether the path names a folder.
        """
        is_folder = is_folder or names_folder(path)
        normalized = normalize_path(path)
        if normalized == ROOT_PATH:
            return False
        return self.get_rule_set().is_excluded(normalized, is_folder)
