"""Environment utilities for ftt."""

from __future__ import annotations

import os
from pathlib import Path


METADATA_DIR_NAME = ".ftt"


def is_debug_mode() -> bool:
    """Check if debug mode is enabled.

    Returns:
        True if FTT_DEBUG is set to a truthy value
    """
    val = os.environ.get("FTT_DEBUG", "").lower()
    return val in ("1", "true", "yes", "on")


def get_home_dir() -> Path:
    """Get user home directory.

    Returns:
        Path to home directory
    """
    return Path.home()


def get_global_ftt_dir() -> Path:
    """Get global ftt directory (~/.ftt).

    Returns:
        Path to global ftt config directory
    """
    return get_home_dir() / METADATA_DIR_NAME


def determine_project_root(explicit: str | None = None) -> Path:
    """Pick the tracked root: explicit argument, then $FTT_ROOT, then cwd."""
    if isinstance(explicit, str) and explicit.strip():
        return Path(explicit.strip()).expanduser()
    val = os.environ.get("FTT_ROOT")
    if isinstance(val, str) and val.strip():
        return Path(val.strip()).expanduser()
    return Path.cwd()


def find_enclosing_root(start: Path | str, metadata_dir: str = METADATA_DIR_NAME) -> Path | None:
    """Return the nearest strict ancestor of `start` that holds a metadata dir."""
    current = Path(start).resolve().parent
    while True:
        if (current / metadata_dir).is_dir():
            return current
        if current.parent == current:
            return None
        current = current.parent
