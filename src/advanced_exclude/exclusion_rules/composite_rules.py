"""OR-combination of independent exclusion rule sets."""

from typing import Iterator, Sequence, Tuple

from .base_rules import BaseExclusionRules


class CompositeExclusionRules(BaseExclusionRules):
    """Rule sets joined with logical OR.

    A path is excluded as soon as one member excludes it. Negation only acts within
    the member that holds it: a gitignore ``!pattern`` cannot re-include a path an
    exclude filter matched.

    Example:
        >>> from advanced_exclude.exclusion_rules.filter_rules import ExcludeFilterRules
        >>> from advanced_exclude.exclusion_rules.git_rules import GitIgnoreExclusionRules
        >>> git_rules = GitIgnoreExclusionRules.from_content("*.tmp\\n!keep.tmp")
        >>> composite = CompositeExclusionRules([git_rules, ExcludeFilterRules(["keep"])])
        >>> composite.exclude("keep.tmp")
        True
        >>> composite.exclude("notes.md")
        False
    """

    def __init__(self, rules: Sequence[BaseExclusionRules]):
        """Combine rule sets, in evaluation order.

        Raises:
            TypeError: If a member is not a BaseExclusionRules.
        """
        for position, rule in enumerate(rules):
            if not isinstance(rule, BaseExclusionRules):
                raise TypeError(f"Member {position} is {type(rule).__name__}, not a BaseExclusionRules")
        self.rules: Tuple[BaseExclusionRules, ...] = tuple(rules)

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[BaseExclusionRules]:
        return iter(self.rules)

    def exclude(self, path: str) -> bool:
        # Members after the first match are never consulted
        return any(rule.exclude(path) for rule in self.rules)

    def has_rules(self) -> bool:
        return any(rule.has_rules() for rule in self.rules)
