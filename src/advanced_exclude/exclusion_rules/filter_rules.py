"""Host exclude filters: case-insensitive prefixes or /regex/ strings."""

import re
from typing import List, Optional, Pattern, Sequence, Tuple

from advanced_exclude.log import get_logger

from .base_rules import BaseExclusionRules

logger = get_logger(__name__)

# JavaScript-style trailing flags, as in "/^temp/i/"
_FLAGS_SUFFIX = re.compile(r"^(?P<body>.+)(?<!\\)/(?P<flags>[dgimsuy]+)$")

_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}


def _split_flags(body: str) -> Tuple[str, int]:
    match = _FLAGS_SUFFIX.match(body)
    if match is None:
        return body, re.IGNORECASE
    flags = re.IGNORECASE
    for letter in match.group("flags"):
        flags |= _FLAG_MAP.get(letter, 0)
    return match.group("body"), flags


def compile_exclude_filter(filter_str: str) -> Optional[Pattern[str]]:
    """Compile one host exclude filter.

    A filter wrapped in slashes is a regular expression; anything else is a literal
    prefix. Both are matched case-insensitively. A regular expression may carry
    JavaScript-style flags before the closing slash (``/^temp/i/``); ``m`` and ``s``
    map to their Python equivalents and the others have no effect. Malformed
    expressions are logged and yield None.

    Args:
        filter_str: Filter as configured by the host.

    Returns:
        The compiled expression, or None when the filter is unusable.

    Example:
        >>> bool(compile_exclude_filter("/^temp/").search("Temp123.md"))
        True
        >>> bool(compile_exclude_filter("/^temp/i/").search("temp123.md"))
        True
        >>> bool(compile_exclude_filter("Archive/").search("notes/Archive/x.md"))
        False
        >>> compile_exclude_filter("/[unclosed/") is None
        True
    """
    if not filter_str:
        return None

    if len(filter_str) > 1 and filter_str.startswith("/") and filter_str.endswith("/"):
        body, flags = _split_flags(filter_str[1:-1])
        try:
            return re.compile(body, flags)
        except re.error as e:
            logger.error("Invalid exclude filter %r: %s", filter_str, e)
            return None

    return re.compile(f"^{re.escape(filter_str)}", re.IGNORECASE)


class ExcludeFilterRules(BaseExclusionRules):
    """Exclusion rules built from the host's native exclude-filter list.

    These filters are independent of gitignore negation: a path matching any filter
    is excluded no matter what the gitignore patterns say.

    Attributes:
        filters (tuple[str, ...]): The filter strings the rules were built from.

    Example:
        >>> rules = ExcludeFilterRules(["Templates/", "/\\\\.excalidraw\\\\.md$/"])
        >>> rules.exclude("templates/daily.md")
        True
        >>> rules.exclude("drawings/plan.excalidraw.md")
        True
        >>> rules.exclude("notes/templates/daily.md")
        False
    """

    def __init__(self, filters: Sequence[str]):
        """Compile the filter list.

        Args:
            filters: Filter strings. Malformed regular expressions are skipped.
        """
        self.filters = tuple(filters)
        compiled = (compile_exclude_filter(filter_str) for filter_str in self.filters)
        self._expressions: List[Pattern[str]] = [expression for expression in compiled if expression is not None]

    def exclude(self, path: str) -> bool:
        """Check if any filter matches the path."""
        return any(expression.search(path) for expression in self._expressions)

    def has_rules(self) -> bool:
        """Check whether at least one usable filter was compiled."""
        return bool(self._expressions)
