"""Snapshot index, tag registry, and snapshot selectors.

Both the index and the tag registry are loaded whole from disk at the start
of a command and written back whole when mutated. A missing file is an empty
structure; a file that exists but cannot be parsed is an error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Iterator, Mapping, Union

from ..utils.fs import load_json, write_json
from .blob_store import BlobStore
from .errors import (
    AmbiguousSelector,
    InvalidLabel,
    IOFailure,
    NoSnapshots,
    OutOfRange,
    UnknownSnapshot,
    UnknownTag,
)
from .scanner import PathMapping, fingerprint


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """An immutable record of the tracked file set at one moment."""
    id: int
    files: Mapping[str, str]
    timestamp: str = ""
    message: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def created_at(self) -> datetime | None:
        if not self.timestamp:
            return None
        try:
            parsed = datetime.fromisoformat(self.timestamp)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "message": self.message,
            "files": dict(sorted(self.files.items())),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Snapshot:
        """Create from dictionary."""
        files = data.get("files", {})
        if not isinstance(files, dict):
            raise ValueError(f"Snapshot {data.get('id')!r} has malformed files")
        return cls(
            id=int(data["id"]),
            files={_tracked_path(k): str(v) for k, v in files.items()},
            timestamp=str(data.get("timestamp") or ""),
            message=str(data.get("message") or ""),
        )


def _tracked_path(key: object) -> str:
    """Validate an index key as a relative path that stays inside the root."""
    path = str(key)
    parts = PurePosixPath(path).parts
    if not path or path.startswith("/") or ".." in parts:
        raise ValueError(f"Invalid tracked path in index: {path!r}")
    return path


class SnapshotIndex:
    """Ordered, append-only sequence of snapshots backed by one JSON file."""

    def __init__(self, path: Path | str, snapshots: list[Snapshot] | None = None):
        self.path = Path(path)
        self._snapshots: list[Snapshot] = list(snapshots or [])

    @classmethod
    def load(cls, path: Path | str) -> SnapshotIndex:
        """Read the whole index; a missing file is an empty index.

        Raises:
            IOFailure: the file exists but cannot be read or parsed
        """
        path = Path(path)
        try:
            data = load_json(path, default=[])
            if not isinstance(data, list):
                raise ValueError("index must be a JSON list")
            snapshots = [Snapshot.from_dict(entry) for entry in data]
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            # json.JSONDecodeError is a ValueError
            raise IOFailure(f"Could not load snapshot index {path}: {e}", path) from e

        snapshots.sort(key=lambda s: s.id)
        return cls(path, snapshots)

    def save(self) -> None:
        """Write the whole index.

        Raises:
            IOFailure: the index could not be written
        """
        try:
            write_json(self.path, [s.to_dict() for s in self._snapshots])
        except OSError as e:
            raise IOFailure(f"Could not save snapshot index {self.path}: {e}", self.path) from e

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self._snapshots)

    def __getitem__(self, position: int) -> Snapshot:
        return self._snapshots[position]

    @property
    def ids(self) -> list[int]:
        return [s.id for s in self._snapshots]

    def next_id(self) -> int:
        return max(self.ids, default=0) + 1

    def get(self, snapshot_id: int) -> Snapshot | None:
        for snapshot in self._snapshots:
            if snapshot.id == snapshot_id:
                return snapshot
        return None

    def latest(self) -> Snapshot | None:
        return self._snapshots[-1] if self._snapshots else None

    def append(
        self,
        mapping: PathMapping,
        root: Path | str,
        blobs: BlobStore,
        *,
        message: str = "",
        descriptors_dir: Path | str | None = None,
    ) -> tuple[Snapshot, int]:
        """Record `mapping` as a new snapshot.

        Blob writes finish before the index is written, so a crash can leave
        orphan blobs but never an index entry whose blobs are missing.

        Args:
            mapping: Scan result to record
            root: Tracked root the mapping was scanned from
            blobs: Blob store receiving new content
            message: Optional description
            descriptors_dir: Where to write the per-snapshot descriptor, if anywhere

        Returns:
            The new snapshot and the number of blobs written
        """
        root = Path(root)
        files: dict[str, str] = {}
        stored: set[str] = set()
        written = 0

        for rel_path, digest in sorted(mapping.items()):
            if digest in stored or blobs.exists(digest):
                files[rel_path] = digest
                stored.add(digest)
                continue

            try:
                data = (root / rel_path).read_bytes()
            except OSError as e:
                logger.warning("Dropping %s from snapshot: %s", rel_path, e)
                continue
            if fingerprint(data) != digest:
                logger.warning("Dropping %s from snapshot: changed during save", rel_path)
                continue

            try:
                if blobs.put(digest, data):
                    written += 1
            except OSError as e:
                raise IOFailure(f"Could not store content of {rel_path}: {e}", blobs.path_for(digest)) from e
            files[rel_path] = digest
            stored.add(digest)

        snapshot = Snapshot(
            id=self.next_id(),
            files=files,
            timestamp=datetime.now(timezone.utc).isoformat(),
            message=message,
        )

        if descriptors_dir is not None:
            descriptor = Path(descriptors_dir) / f"{snapshot.id}.json"
            try:
                write_json(descriptor, snapshot.to_dict())
            except OSError as e:
                # Descriptors are a convenience copy; the index is authoritative
                logger.warning("Could not write descriptor %s: %s", descriptor, e)

        self._snapshots.append(snapshot)
        try:
            self.save()
        except IOFailure:
            self._snapshots.pop()
            raise
        return snapshot, written


class TagRegistry:
    """Label -> snapshot id aliases backed by one JSON file."""

    def __init__(self, path: Path | str, tags: dict[str, int] | None = None):
        self.path = Path(path)
        self.tags: dict[str, int] = dict(tags or {})

    @classmethod
    def load(cls, path: Path | str) -> TagRegistry:
        """Read the whole registry; a missing file is an empty registry.

        Raises:
            IOFailure: the file exists but cannot be read or parsed
        """
        path = Path(path)
        try:
            data = load_json(path, default={})
            if not isinstance(data, dict):
                raise ValueError("tag file must be a JSON object")
            raw = data.get("tags", {})
            if not isinstance(raw, dict):
                raise ValueError("'tags' must be a JSON object")
            tags = {str(label): int(snapshot_id) for label, snapshot_id in raw.items()}
        except (OSError, ValueError, TypeError) as e:
            raise IOFailure(f"Could not load tags {path}: {e}", path) from e
        return cls(path, tags)

    def save(self) -> None:
        """Write the whole registry.

        Raises:
            IOFailure: the registry could not be written
        """
        try:
            write_json(self.path, {"tags": self.tags})
        except OSError as e:
            raise IOFailure(f"Could not save tags {self.path}: {e}", self.path) from e

    def __len__(self) -> int:
        return len(self.tags)

    def __contains__(self, label: object) -> bool:
        return label in self.tags

    def get(self, label: str) -> int | None:
        return self.tags.get(label)

    def labels_for(self, snapshot_id: int) -> list[str]:
        return sorted(label for label, sid in self.tags.items() if sid == snapshot_id)

    def tag(self, label: str, snapshot_id: int, index: SnapshotIndex) -> None:
        """Point `label` at `snapshot_id`, overwriting any previous target.

        Raises:
            InvalidLabel: empty label
            UnknownSnapshot: `snapshot_id` is not in `index`
        """
        label = label.strip()
        if not label:
            raise InvalidLabel(label)
        if index.get(snapshot_id) is None:
            raise UnknownSnapshot(snapshot_id)
        self.tags[label] = snapshot_id


# Selectors: one variant per way of naming a snapshot.


@dataclass(frozen=True, slots=True)
class ById:
    snapshot_id: int


@dataclass(frozen=True, slots=True)
class ByTag:
    label: str


@dataclass(frozen=True, slots=True)
class ByOffset:
    """N snapshots back from the latest; 0 is the latest."""
    back: int


@dataclass(frozen=True, slots=True)
class ByAge:
    """Newest snapshot taken at least `age` ago."""
    age: timedelta
    now: datetime | None = field(default=None, compare=False)


Selector = Union[ById, ByTag, ByOffset, ByAge]

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([dhm])\s*$")
_DURATION_UNITS = {"d": "days", "h": "hours", "m": "minutes"}


def parse_duration(text: str) -> timedelta:
    """Parse "1d", "5h" or "30m" into a timedelta.

    Raises:
        ValueError: unrecognized duration
    """
    match = _DURATION_RE.match(text or "")
    if not match:
        raise ValueError(f"Invalid duration {text!r}: use <n>d, <n>h or <n>m")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


def make_selector(
    *,
    snapshot_id: int | str | None = None,
    tag: str | None = None,
    back: int | str | None = None,
    ago: str | None = None,
) -> Selector:
    """Build a selector from optional command parameters; exactly one must be set.

    Raises:
        AmbiguousSelector: none or several parameters given, or one is malformed
    """
    given = [
        (name, value)
        for name, value in (("id", snapshot_id), ("tag", tag), ("back", back), ("ago", ago))
        if value is not None and value != ""
    ]
    if not given:
        raise AmbiguousSelector("Must provide a snapshot id, tag, or offset")
    if len(given) > 1:
        names = ", ".join(name for name, _ in given)
        raise AmbiguousSelector(f"Conflicting snapshot selectors: {names}")

    name, value = given[0]
    if name == "tag":
        return ByTag(str(value))
    if name == "ago":
        try:
            return ByAge(parse_duration(str(value)))
        except ValueError as e:
            raise AmbiguousSelector(str(e)) from e

    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise AmbiguousSelector(f"Invalid {name} value {value!r}: expected a number") from e
    if name == "id":
        return ById(number)
    return ByOffset(number)


def resolve(selector: Selector | None, index: SnapshotIndex, tags: TagRegistry) -> Snapshot:
    """Resolve any selector to a concrete snapshot.

    Raises:
        AmbiguousSelector: no selector
        NoSnapshots: the index is empty
        UnknownSnapshot / UnknownTag / OutOfRange: selector does not match
    """
    if selector is None:
        raise AmbiguousSelector()
    if len(index) == 0:
        raise NoSnapshots()

    if isinstance(selector, ById):
        found = index.get(selector.snapshot_id)
        if found is None:
            raise UnknownSnapshot(selector.snapshot_id)
        return found

    if isinstance(selector, ByTag):
        snapshot_id = tags.get(selector.label)
        if snapshot_id is None:
            raise UnknownTag(selector.label)
        found = index.get(snapshot_id)
        if found is None:
            raise UnknownSnapshot(snapshot_id)
        return found

    if isinstance(selector, ByOffset):
        if selector.back < 0 or selector.back >= len(index):
            raise OutOfRange(selector.back, len(index))
        return index[len(index) - 1 - selector.back]

    if isinstance(selector, ByAge):
        cutoff = (selector.now or datetime.now(timezone.utc)) - selector.age
        for snapshot in reversed(list(index)):
            created = snapshot.created_at
            if created is not None and created <= cutoff:
                return snapshot
        raise OutOfRange(selector.age, len(index))

    raise AmbiguousSelector(f"Unsupported selector: {selector!r}")
