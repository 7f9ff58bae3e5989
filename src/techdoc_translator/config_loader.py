#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# HERE IS THE CHANGELOG FOR THIS VERSION OF THE CODE:
# - Loads the YAML configuration, creating the default file when missing
# - Deep-merges user values over the defaults
# - YAML errors are raised as ValueError with the line number
#

"""
config_loader.py - Configuration loading and merging utilities
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .config_schema import DEFAULT_CONFIG_TEMPLATE


def merge_configs(base_config: dict[str, Any], override_config: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two configurations, with override taking precedence.

    Args:
        base_config: Base configuration dictionary
        override_config: Override configuration dictionary

    Returns:
        Merged configuration dictionary (inputs are not modified)
    """
    result = dict(base_config)

    for key, value in override_config.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def get_default_config() -> dict[str, Any]:
    """
    Get default configuration as dictionary.

    Returns:
        Default configuration dictionary
    """
    result = yaml.safe_load(DEFAULT_CONFIG_TEMPLATE)
    return result if isinstance(result, dict) else {}


class ConfigLoader:
    """Handles loading and merging of configuration files."""

    def __init__(self, config_path: Path, logger: logging.Logger | None = None, create_if_missing: bool = True):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to configuration file
            logger: Logger instance
            create_if_missing: Write the default template when the file does not exist
        """
        self.config_path = Path(config_path)
        self.logger = logger or logging.getLogger(__name__)
        self.create_if_missing = create_if_missing

    def load_config(self) -> dict[str, Any]:
        """
        Load configuration from file, creating the default file if needed.

        Returns:
            Configuration dictionary as written in the file (not merged)

        Raises:
            ValueError: If the file cannot be read or is not valid YAML
        """
        if not self.config_path.exists():
            if not self.create_if_missing:
                self.logger.info(f"Configuration file not found: {self.config_path}. Using defaults.")
                return {}
            self.logger.info(f"Configuration file not found. Creating default at: {self.config_path}")
            self._create_default_config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            location = f" (line {mark.line + 1}, column {mark.column + 1})" if mark is not None else ""
            raise ValueError(f"Error parsing YAML file {self.config_path}{location}: {e}") from e
        except OSError as e:
            raise ValueError(f"Error loading configuration file {self.config_path}: {e}") from e

        if config is None:
            self.logger.warning("Configuration file is empty. Using defaults.")
            return {}
        if not isinstance(config, dict):
            raise ValueError(f"Configuration file must contain a mapping at the root level, got {type(config).__name__}")

        return config

    def _create_default_config(self) -> None:
        """Create default configuration file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(DEFAULT_CONFIG_TEMPLATE)
            self.logger.info("Default configuration file created successfully.")
        except OSError as e:
            self.logger.error(f"Failed to create configuration file: {e}")
            raise

    def merge_with_defaults(self, config: dict[str, Any]) -> dict[str, Any]:
        """Merge user config with defaults to ensure all keys exist."""
        return merge_configs(get_default_config(), config)
