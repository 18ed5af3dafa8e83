"""Configuration management for ftt."""

from .types import (
    IGNORE_FILE_NAME,
    FttConfig,
    IgnoreConfig,
    SnapshotConfig,
    is_ignored,
)
from .loader import ConfigLoader

__all__ = [
    "IGNORE_FILE_NAME",
    "FttConfig",
    "IgnoreConfig",
    "SnapshotConfig",
    "is_ignored",
    "ConfigLoader",
]
