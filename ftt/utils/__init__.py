"""Utility modules for ftt."""

from .fs import atomic_write, ensure_dir, load_json, safe_json_load, write_json
from .env import (
    METADATA_DIR_NAME,
    determine_project_root,
    find_enclosing_root,
    get_global_ftt_dir,
    get_home_dir,
    is_debug_mode,
)
from .logs import configure_logging

__all__ = [
    "atomic_write",
    "ensure_dir",
    "load_json",
    "safe_json_load",
    "write_json",
    "METADATA_DIR_NAME",
    "determine_project_root",
    "find_enclosing_root",
    "get_global_ftt_dir",
    "get_home_dir",
    "is_debug_mode",
    "configure_logging",
]
