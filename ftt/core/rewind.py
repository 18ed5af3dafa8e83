"""Rewind engine: reconcile the live tree with a recorded snapshot.

Runs in three phases, each finished before the next starts:

1. materialize: write every target file whose live content differs
2. prune files: delete tracked files the target does not contain
3. prune directories: remove directories no target path lives under,
   deepest first

A target file whose blob is missing from the store is reported and left
alone; the remaining files are still restored.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from ..config.types import IgnoreConfig
from ..utils.env import METADATA_DIR_NAME
from ..utils.fs import atomic_write
from .blob_store import BlobStore
from .errors import IOFailure, MissingBlob, MissingBlobError
from .scanner import PathMapping, scan, walk_dirs
from .snapshot_index import Snapshot


logger = logging.getLogger(__name__)


@dataclass
class RewindReport:
    """What a rewind changed, and what it could not restore."""
    snapshot_id: int
    restored: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    removed_dirs: list[str] = field(default_factory=list)
    missing_blobs: list[MissingBlob] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        """True when the tree now matches the snapshot exactly."""
        return not self.missing_blobs

    @property
    def touched(self) -> bool:
        return bool(self.restored or self.deleted or self.removed_dirs)

    def to_dict(self) -> dict:
        return {
            "snapshotId": self.snapshot_id,
            "restored": list(self.restored),
            "deleted": list(self.deleted),
            "removedDirs": list(self.removed_dirs),
            "missingBlobs": [m.to_dict() for m in self.missing_blobs],
            "complete": self.complete,
        }


def implied_dirs(files: PathMapping) -> set[str]:
    """Every ancestor directory of every path in `files`, root excluded."""
    dirs: set[str] = set()
    for rel_path in files:
        for parent in PurePosixPath(rel_path).parents:
            text = parent.as_posix()
            if text in ("", "."):
                continue
            dirs.add(text)
    return dirs


def _depth_first_order(dirs: list[str]) -> list[str]:
    return sorted(dirs, key=lambda d: (d.count("/"), len(d), d), reverse=True)


class RewindEngine:
    """Restores a tracked root to the state recorded in a snapshot."""

    def __init__(
        self,
        root: Path | str,
        blobs: BlobStore,
        ignore: IgnoreConfig | None = None,
        metadata_dir: str = METADATA_DIR_NAME,
    ):
        self.root = Path(root)
        self.blobs = blobs
        self.ignore = ignore or IgnoreConfig()
        self.metadata_dir = metadata_dir

    def rewind(self, target: Snapshot) -> RewindReport:
        """Make the live tree match `target`.

        Args:
            target: Snapshot to restore

        Returns:
            RewindReport; check `complete` for missing blobs

        Raises:
            IOFailure: a file or directory could not be written or removed
        """
        report = RewindReport(snapshot_id=target.id)
        live = scan(self.root, self.ignore, self.metadata_dir)

        self._materialize(target, live, report)
        self._prune_files(target, live, report)
        self._prune_dirs(target, report)

        if report.missing_blobs:
            logger.warning(
                "Rewind to snapshot %d incomplete: %d file(s) missing from the blob store",
                target.id,
                len(report.missing_blobs),
            )
        return report

    def _materialize(self, target: Snapshot, live: PathMapping, report: RewindReport) -> None:
        for rel_path, digest in sorted(target.files.items()):
            if live.get(rel_path) == digest:
                continue

            try:
                data = self.blobs.get(digest)
            except MissingBlobError:
                logger.warning("Missing blob %s for %s; leaving file untouched", digest, rel_path)
                report.missing_blobs.append(MissingBlob(path=rel_path, fingerprint=digest))
                continue

            self._clear_way(rel_path, report)
            dest = self.root / rel_path
            try:
                atomic_write(dest, data, mode="wb")
            except OSError as e:
                raise IOFailure(f"Could not restore {rel_path}: {e}", dest) from e

            logger.info("Restored %s", rel_path)
            report.restored.append(rel_path)

    def _clear_way(self, rel_path: str, report: RewindReport) -> None:
        """Remove live entries whose type blocks writing `rel_path`.

        A file where a parent directory must go is deleted; a directory where
        the file itself must go is removed recursively.
        """
        parts = PurePosixPath(rel_path).parts
        current = self.root
        for index, part in enumerate(parts[:-1]):
            current = current / part
            if current.is_symlink() or (current.exists() and not current.is_dir()):
                blocker = "/".join(parts[:index + 1])
                try:
                    current.unlink()
                except OSError as e:
                    raise IOFailure(f"Could not remove {blocker}: {e}", current) from e
                logger.info("Deleted %s (in the way of %s)", blocker, rel_path)
                report.deleted.append(blocker)
                return

        dest = self.root / rel_path
        if dest.is_dir() and not dest.is_symlink():
            try:
                shutil.rmtree(dest)
            except OSError as e:
                raise IOFailure(f"Could not remove directory {rel_path}: {e}", dest) from e
            logger.info("Removed directory %s (in the way of a file)", rel_path)
            report.removed_dirs.append(rel_path)

    def _prune_files(self, target: Snapshot, live: PathMapping, report: RewindReport) -> None:
        cleared = set(report.deleted)
        for rel_path in sorted(live):
            if rel_path in target.files or rel_path in cleared:
                continue
            path = self.root / rel_path
            try:
                path.unlink()
            except FileNotFoundError:
                # Already cleared while materializing
                continue
            except OSError as e:
                raise IOFailure(f"Could not delete {rel_path}: {e}", path) from e
            logger.info("Deleted %s", rel_path)
            report.deleted.append(rel_path)

    def _prune_dirs(self, target: Snapshot, report: RewindReport) -> None:
        keep = implied_dirs(target.files)
        # Ignore rules do not protect directories from pruning
        present = walk_dirs(self.root, metadata_dir=self.metadata_dir)

        for rel_dir in _depth_first_order(present):
            if rel_dir in keep:
                continue
            path = self.root / rel_dir
            if not path.is_dir():
                continue
            try:
                shutil.rmtree(path)
            except OSError as e:
                raise IOFailure(f"Could not remove directory {rel_dir}: {e}", path) from e
            logger.info("Removed directory %s", rel_dir)
            report.removed_dirs.append(rel_dir)
