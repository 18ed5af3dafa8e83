"""ftt controller - main orchestrator.

Every command reloads the index and tags from disk, runs one engine, and
writes back whatever it changed. Nothing is cached between commands.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ..config import ConfigLoader, FttConfig, IgnoreConfig
from ..utils.env import METADATA_DIR_NAME, find_enclosing_root
from ..utils.fs import ensure_dir
from .blob_store import BlobStore
from .diff import diff
from .errors import FttError, IOFailure, NoSnapshots
from .rewind import RewindEngine
from .scanner import scan
from .snapshot_index import Selector, SnapshotIndex, TagRegistry, resolve


logger = logging.getLogger(__name__)


def _failure(error: FttError) -> dict[str, Any]:
    return {"success": False, "error": error.message, "errorCode": error.code}


class FttController:
    """Main controller for ftt operations."""

    INDEX_NAME = "index.json"
    TAGS_NAME = "tags.json"
    BLOBS_DIR = "blobs"
    SNAPSHOTS_DIR = "snapshots"

    def __init__(self, project_root: Path | str | None = None):
        """Initialize controller.

        Args:
            project_root: Tracked root directory (defaults to cwd)
        """
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self._config_loader = ConfigLoader(project_root=self.project_root)

    @property
    def config(self) -> FttConfig:
        """Get current configuration."""
        return self._config_loader.config

    def get_ftt_dir(self) -> Path:
        return self.project_root / METADATA_DIR_NAME

    def get_index_path(self) -> Path:
        return self.get_ftt_dir() / self.INDEX_NAME

    def get_tags_path(self) -> Path:
        return self.get_ftt_dir() / self.TAGS_NAME

    def get_blobs_dir(self) -> Path:
        return self.get_ftt_dir() / self.BLOBS_DIR

    def get_snapshots_dir(self) -> Path:
        return self.get_ftt_dir() / self.SNAPSHOTS_DIR

    @property
    def blobs(self) -> BlobStore:
        return BlobStore(self.get_blobs_dir())

    def load_index(self) -> SnapshotIndex:
        return SnapshotIndex.load(self.get_index_path())

    def load_tags(self) -> TagRegistry:
        return TagRegistry.load(self.get_tags_path())

    def load_ignore(self) -> IgnoreConfig:
        """Re-read `.fttignore`; called before every scan."""
        return self._config_loader.load_ignore_config()

    def scan(self) -> dict[str, str]:
        return scan(self.project_root, self.load_ignore(), METADATA_DIR_NAME)

    def init(self) -> dict[str, Any]:
        """Create the metadata directory layout for the tracked root.

        Returns:
            Result dictionary with success status
        """
        if not self.project_root.is_dir():
            return _failure(IOFailure(f"Not a directory: {self.project_root}", self.project_root))

        ftt_dir = self.get_ftt_dir()
        already = ftt_dir.is_dir()
        try:
            ensure_dir(self.get_blobs_dir())
            ensure_dir(self.get_snapshots_dir())
        except OSError as e:
            return _failure(IOFailure(f"Could not initialize {ftt_dir}: {e}", ftt_dir))

        result: dict[str, Any] = {
            "success": True,
            "fttDir": str(ftt_dir),
            "alreadyInitialized": already,
        }

        enclosing = find_enclosing_root(self.project_root)
        if enclosing is not None:
            logger.warning("%s is inside another tracked root: %s", self.project_root, enclosing)
            result["enclosingRoot"] = str(enclosing)

        logger.debug("Initialized %s", ftt_dir)
        return result

    def save(self, message: str = "") -> dict[str, Any]:
        """Record the current tree as a new snapshot.

        Args:
            message: Optional description

        Returns:
            Result dictionary with the new snapshot id
        """
        if not self.get_ftt_dir().is_dir():
            init_result = self.init()
            if not init_result.get("success"):
                return init_result

        try:
            index = self.load_index()
            mapping = self.scan()
            descriptors = self.get_snapshots_dir() if self.config.snapshots.write_descriptors else None
            snapshot, written = index.append(
                mapping,
                self.project_root,
                self.blobs,
                message=message,
                descriptors_dir=descriptors,
            )
        except FttError as e:
            return _failure(e)

        logger.debug("Saved snapshot %d (%d files, %d new blobs)", snapshot.id, snapshot.file_count, written)
        return {
            "success": True,
            "id": snapshot.id,
            "timestamp": snapshot.timestamp,
            "message": snapshot.message,
            "fileCount": snapshot.file_count,
            "newBlobs": written,
        }

    def log(self) -> dict[str, Any]:
        """List every snapshot, oldest first, with the tags that point at it."""
        try:
            index = self.load_index()
            tags = self.load_tags()
            if len(index) == 0:
                raise NoSnapshots()
        except FttError as e:
            return _failure(e)

        return {
            "success": True,
            "snapshots": [
                {
                    "id": s.id,
                    "timestamp": s.timestamp,
                    "message": s.message,
                    "fileCount": s.file_count,
                    "tags": tags.labels_for(s.id),
                }
                for s in index
            ],
        }

    def rewind(self, selector: Selector | None) -> dict[str, Any]:
        """Restore the tree to the selected snapshot.

        Args:
            selector: ByTag / ByOffset / ById / ByAge

        Returns:
            Result dictionary with the rewind report. A rewind that hit missing
            blobs has success=False and errorCode="MissingBlob" but still
            carries the report fields.
        """
        try:
            index = self.load_index()
            tags = self.load_tags()
            target = resolve(selector, index, tags)
        except FttError as e:
            return _failure(e)

        engine = RewindEngine(self.project_root, self.blobs, self.load_ignore(), METADATA_DIR_NAME)
        try:
            report = engine.rewind(target)
        except FttError as e:
            return _failure(e)

        result: dict[str, Any] = {"success": report.complete, **report.to_dict()}
        if not report.complete:
            result["errorCode"] = "MissingBlob"
            result["error"] = (
                f"{len(report.missing_blobs)} file(s) could not be restored: content missing from the blob store"
            )
        return result

    def diff(self, from_selector: Selector | None, to_selector: Selector | None) -> dict[str, Any]:
        """Compare two recorded snapshots."""
        try:
            index = self.load_index()
            tags = self.load_tags()
            source = resolve(from_selector, index, tags)
            target = resolve(to_selector, index, tags)
        except FttError as e:
            return _failure(e)

        changes = diff(source.files, target.files)
        return {"success": True, "fromId": source.id, "toId": target.id, **changes.to_dict()}

    def tag(self, snapshot_id: int, label: str) -> dict[str, Any]:
        """Alias `snapshot_id` as `label`, replacing any earlier target of the label."""
        try:
            index = self.load_index()
            tags = self.load_tags()
            previous = tags.get(label.strip())
            tags.tag(label, snapshot_id, index)
            tags.save()
        except FttError as e:
            return _failure(e)

        return {
            "success": True,
            "label": label.strip(),
            "id": snapshot_id,
            "previousId": previous,
        }

    def status(self) -> dict[str, Any]:
        """Compare the live tree with the latest snapshot without saving."""
        try:
            index = self.load_index()
            latest = index.latest()
            if latest is None:
                raise NoSnapshots()
        except FttError as e:
            return _failure(e)

        changes = diff(latest.files, self.scan())
        return {"success": True, "latestId": latest.id, **changes.to_dict()}
