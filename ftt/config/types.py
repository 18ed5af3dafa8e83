"""Configuration schemas for ftt.

Defines dataclasses for all configuration structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable


IGNORE_FILE_NAME = ".fttignore"


def is_ignored(path: str, patterns: Iterable[str]) -> bool:
    """Check a relative path against ignore rules; any matching rule wins.

    - ``build/``: directory prefix, the path starts with the rule
    - ``*.log``: extension, the path ends with the text after ``*.``
    - anything else: the path ends with the rule verbatim
    """
    for pattern in patterns:
        if not pattern:
            continue
        if pattern.endswith("/"):
            if path.startswith(pattern):
                return True
        elif pattern.startswith("*."):
            if path.endswith(pattern[2:]):
                return True
        elif path.endswith(pattern):
            return True
    return False


@dataclass
class IgnoreConfig:
    """Patterns for files to leave out of snapshots."""
    patterns: list[str] = field(default_factory=list)
    additional_ignores: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> IgnoreConfig:
        """Create IgnoreConfig from dictionary."""
        patterns = data.get("ignorePatterns", [])
        additional = data.get("additionalIgnores", [])
        return cls(
            patterns=[str(p) for p in patterns] if isinstance(patterns, list) else [],
            additional_ignores=[str(p) for p in additional] if isinstance(additional, list) else [],
        )

    @classmethod
    def from_text(cls, text: str, additional_ignores: Iterable[str] = ()) -> IgnoreConfig:
        """Parse an ignore file: one pattern per line, `#` comments and blanks skipped."""
        patterns = []
        for line in text.splitlines():
            stripped = line.strip()
            if stripped and not stripped.startswith("#"):
                patterns.append(stripped)
        return cls(patterns=patterns, additional_ignores=list(additional_ignores))

    @property
    def all_patterns(self) -> list[str]:
        return self.patterns + self.additional_ignores

    def should_ignore(self, path: str) -> bool:
        """Check if a path should be ignored.

        Args:
            path: Relative, forward-slash path to check

        Returns:
            True if path should be ignored
        """
        return is_ignored(path, self.all_patterns)


@dataclass
class SnapshotConfig:
    """Snapshot persistence settings."""
    write_descriptors: bool = True


@dataclass
class FttConfig:
    """Main ftt configuration."""
    snapshots: SnapshotConfig = field(default_factory=SnapshotConfig)
    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)

    @classmethod
    def from_dict(cls, data: dict) -> FttConfig:
        """Create FttConfig from dictionary."""
        snapshot_data = data.get("snapshots", {})
        if not isinstance(snapshot_data, dict):
            snapshot_data = {}
        ignore_data = data.get("ignore", {})
        if not isinstance(ignore_data, dict):
            ignore_data = {}

        write_descriptors = snapshot_data.get("writeDescriptors", True)
        return cls(
            snapshots=SnapshotConfig(
                write_descriptors=write_descriptors if isinstance(write_descriptors, bool) else True,
            ),
            ignore=IgnoreConfig.from_dict(ignore_data),
        )
