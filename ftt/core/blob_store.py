"""Content-addressed blob storage.

Each unique file content is stored once under `blobs/<fingerprint>`.
Objects are write-once: an existing object is never overwritten.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from ..utils.fs import atomic_write
from .errors import MissingBlobError
from .scanner import fingerprint


logger = logging.getLogger(__name__)


class BlobStore:
    """Stores raw file bytes keyed by their fingerprint."""

    def __init__(self, blobs_dir: Path | str):
        self.blobs_dir = Path(blobs_dir)

    def path_for(self, digest: str) -> Path:
        return self.blobs_dir / digest

    def exists(self, digest: str) -> bool:
        return self.path_for(digest).is_file()

    def __contains__(self, digest: object) -> bool:
        return isinstance(digest, str) and self.exists(digest)

    def __iter__(self) -> Iterator[str]:
        if not self.blobs_dir.is_dir():
            return iter(())
        return iter(sorted(
            p.name for p in self.blobs_dir.iterdir()
            if p.is_file() and not p.name.startswith(".")
        ))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def put(self, digest: str, data: bytes) -> bool:
        """Store `data` under `digest` unless an object already exists.

        Args:
            digest: Fingerprint of `data`
            data: Raw file bytes

        Returns:
            True if a new object was written, False if it was already stored

        Raises:
            ValueError: `data` does not hash to `digest`
        """
        if self.exists(digest):
            return False
        if fingerprint(data) != digest:
            raise ValueError(f"Content does not match fingerprint {digest}")

        atomic_write(self.path_for(digest), data, mode="wb")
        logger.debug("Stored blob %s (%d bytes)", digest, len(data))
        return True

    def get(self, digest: str) -> bytes:
        """Return the bytes stored under `digest`.

        Raises:
            MissingBlobError: no readable object exists for `digest`
        """
        try:
            return self.path_for(digest).read_bytes()
        except OSError as e:
            raise MissingBlobError(digest) from e
