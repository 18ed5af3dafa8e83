"""Directory scanning and content fingerprinting.

A scan turns the live tree into a path -> fingerprint mapping. Scanning is
best-effort: a file that cannot be read is left out of the mapping.
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Iterator

from ..config.types import IgnoreConfig
from ..utils.env import METADATA_DIR_NAME


logger = logging.getLogger(__name__)

PathMapping = dict[str, str]

_CHUNK_SIZE = 1024 * 1024


def fingerprint(data: bytes) -> str:
    """SHA-256 hex digest of `data`."""
    return hashlib.sha256(data).hexdigest()


def fingerprint_file(path: Path | str) -> str | None:
    """Hash a file's full content, or return None if it cannot be read."""
    digest = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as e:
        logger.debug("Skipping unreadable file %s: %s", path, e)
        return None
    return digest.hexdigest()


def is_metadata_path(rel_path: str, metadata_dir: str = METADATA_DIR_NAME) -> bool:
    """True for anything under the metadata directory, matched by name prefix.

    The prefix match also covers sibling files such as `.fttignore`.
    """
    return rel_path.startswith(metadata_dir)


def walk_files(
    root: Path,
    ignore: IgnoreConfig | None = None,
    metadata_dir: str = METADATA_DIR_NAME,
) -> Iterator[tuple[str, Path]]:
    """Yield (relative posix path, absolute path) for every tracked regular file."""
    ignore = ignore or IgnoreConfig()
    root = Path(root)

    for current, dirs, files in os.walk(root):
        current_path = Path(current)
        rel_root = current_path.relative_to(root).as_posix()
        prefix = "" if rel_root == "." else f"{rel_root}/"

        # Filter directories in-place to skip metadata and ignored ones
        dirs[:] = sorted(
            d for d in dirs
            if not is_metadata_path(prefix + d, metadata_dir)
            and not ignore.should_ignore(f"{prefix}{d}/")
        )

        for name in sorted(files):
            rel_path = prefix + name
            if is_metadata_path(rel_path, metadata_dir) or ignore.should_ignore(rel_path):
                continue
            abs_path = current_path / name
            if not abs_path.is_file() or abs_path.is_symlink():
                continue
            yield rel_path, abs_path


def walk_dirs(
    root: Path,
    ignore: IgnoreConfig | None = None,
    metadata_dir: str = METADATA_DIR_NAME,
) -> list[str]:
    """List relative posix paths of every directory below `root`.

    The metadata directory is always skipped. Directories matching `ignore`,
    when given, are skipped and not descended.
    """
    ignore = ignore or IgnoreConfig()
    root = Path(root)
    found: list[str] = []

    for current, dirs, _ in os.walk(root):
        rel_root = Path(current).relative_to(root).as_posix()
        prefix = "" if rel_root == "." else f"{rel_root}/"

        kept = []
        for d in dirs:
            rel_path = prefix + d
            if is_metadata_path(rel_path, metadata_dir) or ignore.should_ignore(f"{rel_path}/"):
                continue
            if (Path(current) / d).is_symlink():
                continue
            kept.append(d)
            found.append(rel_path)
        dirs[:] = kept

    return found


def scan(
    root: Path | str,
    ignore: IgnoreConfig | None = None,
    metadata_dir: str = METADATA_DIR_NAME,
) -> PathMapping:
    """Fingerprint every tracked file under `root`.

    Args:
        root: Tracked root directory
        ignore: Ignore rules (none by default)
        metadata_dir: Name of the metadata directory to skip

    Returns:
        Mapping of relative posix path to fingerprint
    """
    mapping: PathMapping = {}
    for rel_path, abs_path in walk_files(Path(root), ignore, metadata_dir):
        digest = fingerprint_file(abs_path)
        if digest is not None:
            mapping[rel_path] = digest
    return mapping
