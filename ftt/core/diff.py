"""Two-way comparison of path -> fingerprint mappings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from .snapshot_index import Snapshot


@dataclass
class DiffResult:
    """Paths classified by how they changed going from one mapping to another."""
    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    unchanged_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.modified or self.deleted)

    @property
    def change_count(self) -> int:
        return len(self.added) + len(self.modified) + len(self.deleted)

    def to_dict(self) -> dict:
        return {
            "added": list(self.added),
            "modified": list(self.modified),
            "deleted": list(self.deleted),
            "unchanged": self.unchanged_count,
        }


def diff(from_files: Mapping[str, str], to_files: Mapping[str, str]) -> DiffResult:
    """Compare two mappings.

    added: only in `to_files`; modified: in both with different fingerprints;
    deleted: only in `from_files`. Unchanged paths are only counted.
    """
    result = DiffResult()

    for path, digest in to_files.items():
        old = from_files.get(path)
        if old is None:
            result.added.append(path)
        elif old != digest:
            result.modified.append(path)
        else:
            result.unchanged_count += 1

    result.deleted = [path for path in from_files if path not in to_files]

    result.added.sort()
    result.modified.sort()
    result.deleted.sort()
    return result


def diff_snapshots(from_snapshot: Snapshot, to_snapshot: Snapshot) -> DiffResult:
    return diff(from_snapshot.files, to_snapshot.files)
