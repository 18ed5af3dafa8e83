"""Error types for ftt.

- FttError: base exception, carries a stable `code`
- SelectorError: a snapshot selector could not be resolved
- NoSnapshots: the command needs at least one snapshot
- InvalidLabel: a tag label is empty
- IOFailure: authoritative state could not be read or written
- MissingBlobError: a referenced blob is absent from the store

Selector errors and NoSnapshots are raised before any write begins.
MissingBlob (the dataclass) is a per-path warning collected during rewind.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class FttError(Exception):
    """Base exception for all ftt errors."""

    code = "FttError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SelectorError(FttError):
    """A snapshot selector did not resolve to a snapshot."""


class UnknownSnapshot(SelectorError):
    code = "UnknownSnapshot"

    def __init__(self, snapshot_id: int) -> None:
        super().__init__(f"No snapshot found with ID {snapshot_id}")
        self.snapshot_id = snapshot_id


class UnknownTag(SelectorError):
    code = "UnknownTag"

    def __init__(self, label: str) -> None:
        super().__init__(f"Tag not found: {label}")
        self.label = label


class AmbiguousSelector(SelectorError):
    """Neither (or more than one) of id / tag / offset was supplied."""

    code = "AmbiguousSelector"

    def __init__(self, message: str = "Must provide exactly one snapshot selector") -> None:
        super().__init__(message)


class OutOfRange(SelectorError):
    code = "OutOfRange"

    def __init__(self, requested: object, available: int) -> None:
        super().__init__(f"Cannot go back {requested}: only {available} snapshot(s) recorded")
        self.requested = requested
        self.available = available


class InvalidLabel(FttError):
    code = "InvalidLabel"

    def __init__(self, label: str) -> None:
        super().__init__("Tag label must not be empty")
        self.label = label


class NoSnapshots(FttError):
    code = "NoSnapshots"

    def __init__(self, message: str = "No snapshots yet. Run `ftt save` first.") -> None:
        super().__init__(message)


class IOFailure(FttError):
    code = "IOFailure"

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        super().__init__(message)
        self.path = str(path) if path is not None else None


class MissingBlobError(FttError):
    code = "MissingBlob"

    def __init__(self, fingerprint: str) -> None:
        super().__init__(f"Blob not found in store: {fingerprint}")
        self.fingerprint = fingerprint


@dataclass(frozen=True, slots=True)
class MissingBlob:
    """A target file that could not be restored because its blob is gone."""
    path: str
    fingerprint: str

    def to_dict(self) -> dict:
        return {"path": self.path, "fingerprint": self.fingerprint}
