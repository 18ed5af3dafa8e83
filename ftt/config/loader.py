"""Configuration loader for ftt.

Handles loading and merging configuration from multiple sources.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ..utils.env import METADATA_DIR_NAME, get_global_ftt_dir
from ..utils.fs import safe_json_load
from .types import IGNORE_FILE_NAME, FttConfig, IgnoreConfig


logger = logging.getLogger(__name__)


class ConfigLoader:
    """Loads and manages ftt configuration."""

    def __init__(self, project_root: Path | None = None):
        """Initialize config loader.

        Args:
            project_root: Tracked root directory (for project-local config)
        """
        self.project_root = project_root
        self._config: FttConfig | None = None

    @property
    def config(self) -> FttConfig:
        """Get loaded configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def project_config_path(self) -> Path | None:
        if not self.project_root:
            return None
        return self.project_root / METADATA_DIR_NAME / "config.json"

    def load(self) -> FttConfig:
        """Load configuration from all sources.

        Priority (highest to lowest):
        1. Project-local config (.ftt/config.json)
        2. Global config (~/.ftt/config.json)
        3. Default values

        Returns:
            Merged FttConfig
        """
        merged: dict[str, Any] = {}

        global_config_path = get_global_ftt_dir() / "config.json"
        if global_config_path.exists():
            global_data = safe_json_load(global_config_path, {})
            if isinstance(global_data, dict):
                merged = self._deep_merge(merged, global_data)
            else:
                logger.warning("Ignoring malformed config: %s", global_config_path)

        project_config_path = self.project_config_path()
        if project_config_path is not None and project_config_path.exists():
            project_data = safe_json_load(project_config_path, {})
            if isinstance(project_data, dict):
                merged = self._deep_merge(merged, project_data)
            else:
                logger.warning("Ignoring malformed config: %s", project_config_path)

        return FttConfig.from_dict(merged)

    def load_ignore_config(self) -> IgnoreConfig:
        """Read the ignore file fresh and add configured extra patterns.

        Returns:
            IgnoreConfig for the next scan
        """
        extra = self.config.ignore.all_patterns
        if not self.project_root:
            return IgnoreConfig(additional_ignores=list(extra))

        ignore_path = self.project_root / IGNORE_FILE_NAME
        try:
            text = ignore_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            text = ""
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read %s: %s", ignore_path, e)
            text = ""

        return IgnoreConfig.from_text(text, additional_ignores=extra)

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Deep merge two dictionaries.

        Args:
            base: Base dictionary
            override: Dictionary to merge (takes precedence)

        Returns:
            Merged dictionary
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigLoader._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
