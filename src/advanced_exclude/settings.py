"""User settings recognized by the exclusion engine."""

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping

from advanced_exclude.exceptions import InvalidSettingsError
from advanced_exclude.types import ExcludeMode, PathType


@dataclass
class Settings:
    """Options controlling what is excluded and how.

    Attributes:
        exclude_mode: Whether excluded paths are removed from storage entirely (FULL)
            or only hidden from the files pane (FILES_PANE).
        should_ignore_excluded_files: Also exclude paths matching the host's exclude
            filters.
        should_include_git_ignore_patterns: Append the secondary rule file's patterns
            to the primary ones.
        exclude_filters: The host's exclude-filter list.
        ignore_patterns_content: Mirror of the primary rule file's text.

    Example:
        >>> settings = Settings.from_mapping({"excludeMode": "FilesPane", "unknown": 1})
        >>> settings.exclude_mode
        <ExcludeMode.FILES_PANE: 'FilesPane'>
        >>> settings.to_mapping()["shouldIncludeGitIgnorePatterns"]
        True
    """

    exclude_mode: ExcludeMode = ExcludeMode.FULL
    should_ignore_excluded_files: bool = False
    should_include_git_ignore_patterns: bool = True
    exclude_filters: List[str] = field(default_factory=list)
    ignore_patterns_content: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        """Build settings from host option names, ignoring unknown keys.

        Raises:
            InvalidSettingsError: If a known key holds a value of the wrong type.
        """
        settings = cls()
        if "excludeMode" in data:
            value = data["excludeMode"]
            if not isinstance(value, str):
                raise InvalidSettingsError("excludeMode must be a string")
            try:
                settings.exclude_mode = ExcludeMode.parse(value)
            except ValueError as e:
                raise InvalidSettingsError(str(e))
        for key, attribute in (
            ("shouldIgnoreExcludedFiles", "should_ignore_excluded_files"),
            ("shouldIncludeGitIgnorePatterns", "should_include_git_ignore_patterns"),
        ):
            if key in data:
                if not isinstance(data[key], bool):
                    raise InvalidSettingsError(f"{key} must be a boolean")
                setattr(settings, attribute, data[key])
        if "userIgnoreFilters" in data:
            filters = data["userIgnoreFilters"]
            if not isinstance(filters, list) or not all(isinstance(f, str) for f in filters):
                raise InvalidSettingsError("userIgnoreFilters must be a list of strings")
            settings.exclude_filters = list(filters)
        if "obsidianIgnoreContent" in data:
            if not isinstance(data["obsidianIgnoreContent"], str):
                raise InvalidSettingsError("obsidianIgnoreContent must be a string")
            settings.ignore_patterns_content = data["obsidianIgnoreContent"]
        return settings

    def to_mapping(self) -> Dict[str, Any]:
        """Convert settings to host option names."""
        return {
            "excludeMode": self.exclude_mode.value,
            "shouldIgnoreExcludedFiles": self.should_ignore_excluded_files,
            "shouldIncludeGitIgnorePatterns": self.should_include_git_ignore_patterns,
            "userIgnoreFilters": list(self.exclude_filters),
            "obsidianIgnoreContent": self.ignore_patterns_content,
        }

    @classmethod
    def load(cls, path: PathType) -> "Settings":
        """Load settings from a JSON file. A missing file yields defaults.

        Raises:
            InvalidSettingsError: If the file is not a JSON object or holds bad values.
        """
        settings_path = Path(path)
        if not settings_path.exists():
            return cls()
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidSettingsError(f"Settings file {settings_path} is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise InvalidSettingsError(f"Settings file {settings_path} must contain a JSON object")
        return cls.from_mapping(data)

    def save(self, path: PathType) -> None:
        """Write settings to a JSON file."""
        Path(path).write_text(json.dumps(self.to_mapping(), indent=2) + "\n", encoding="utf-8")

    def copy(self) -> "Settings":
        """Return an independent copy."""
        return replace(self, exclude_filters=list(self.exclude_filters))

    def affects_matching(self, other: "Settings") -> bool:
        """Check whether switching to other settings changes exclusion decisions."""
        if self.should_ignore_excluded_files != other.should_ignore_excluded_files:
            return True
        if self.should_include_git_ignore_patterns != other.should_include_git_ignore_patterns:
            return True
        return other.should_ignore_excluded_files and self.exclude_filters != other.exclude_filters
