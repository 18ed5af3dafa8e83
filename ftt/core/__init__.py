"""Core modules for ftt."""

from .blob_store import BlobStore
from .controller import FttController
from .diff import DiffResult, diff, diff_snapshots
from .errors import (
    AmbiguousSelector,
    FttError,
    InvalidLabel,
    IOFailure,
    MissingBlob,
    MissingBlobError,
    NoSnapshots,
    OutOfRange,
    UnknownSnapshot,
    UnknownTag,
)
from .rewind import RewindEngine, RewindReport
from .scanner import fingerprint, scan
from .snapshot_index import (
    ByAge,
    ById,
    ByOffset,
    ByTag,
    Snapshot,
    SnapshotIndex,
    TagRegistry,
    make_selector,
    resolve,
)

__all__ = [
    "BlobStore",
    "FttController",
    "DiffResult",
    "diff",
    "diff_snapshots",
    "AmbiguousSelector",
    "FttError",
    "InvalidLabel",
    "IOFailure",
    "MissingBlob",
    "MissingBlobError",
    "NoSnapshots",
    "OutOfRange",
    "UnknownSnapshot",
    "UnknownTag",
    "RewindEngine",
    "RewindReport",
    "fingerprint",
    "scan",
    "ByAge",
    "ById",
    "ByOffset",
    "ByTag",
    "Snapshot",
    "SnapshotIndex",
    "TagRegistry",
    "make_selector",
    "resolve",
]
