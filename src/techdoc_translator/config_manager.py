#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# HERE IS THE CHANGELOG FOR THIS VERSION OF THE CODE:
# - Configuration provider for the translation pipeline
# - Environment overrides for endpoint, model and API key
# - Builds the general purpose translation prompt from the template
# - Validation returns a list of error messages instead of exiting
#

# Copyright 2025 Emasoft
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
config_manager.py - Configuration management for the document translator
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .common_constants import normalize_language
from .config_loader import ConfigLoader, get_default_config, merge_configs
from .config_schema import REQUIRED_SECTIONS

# Environment variable -> dotted configuration key
ENV_OVERRIDES = {
    "TECHDOC_API_URL": "api.default_endpoint",
    "TECHDOC_MODEL": "api.default_model",
    "TECHDOC_API_KEY": "api.api_key",
}


class ConfigManager:
    """Manages configuration for the translator."""

    def __init__(
        self,
        config_path: Path | None = None,
        logger: logging.Logger | None = None,
        overrides: dict[str, Any] | None = None,
        use_env: bool = True,
    ):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to a YAML configuration file. None uses built-in defaults only.
            logger: Logger instance
            overrides: Values merged over the file configuration (e.g. from tests)
            use_env: Apply TECHDOC_* environment overrides
        """
        self.logger = logger or logging.getLogger(__name__)
        self.config_path = Path(config_path) if config_path is not None else None
        self.use_env = use_env
        self._overrides = overrides or {}
        self.config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """Load configuration from file (if any), merge with defaults, apply overrides."""
        file_config: dict[str, Any] = {}
        if self.config_path is not None:
            loader = ConfigLoader(self.config_path, self.logger)
            file_config = loader.load_config()

        unknown = [key for key in file_config if key not in REQUIRED_SECTIONS]
        for key in unknown:
            self.logger.warning(f"Unknown or malformed key '{key}' found in configuration. Ignoring.")
            file_config.pop(key)

        config = merge_configs(get_default_config(), file_config)
        config = merge_configs(config, self._overrides)

        if self.use_env:
            for env_var, key_path in ENV_OVERRIDES.items():
                value = os.getenv(env_var)
                if value:
                    self._set(config, key_path, value)
                    self.logger.debug(f"Configuration '{key_path}' taken from {env_var}")

        errors = self.validate_config(config)
        if errors:
            raise ValueError("Invalid configuration: " + "; ".join(errors))
        return config

    @staticmethod
    def _set(config: dict[str, Any], key_path: str, value: Any) -> None:
        keys = key_path.split(".")
        target = config
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key_path: Dot-separated path (e.g., 'api.chunk_max_tokens')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def get_config(self) -> dict[str, Any]:
        """Return a copy of the whole configuration."""
        return copy.deepcopy(self.config)

    def is_config_loaded(self) -> bool:
        return bool(self.config.get("translation", {}).get("template"))

    def update_config(self, partial: dict[str, Any]) -> None:
        """
        Merge new values into the configuration (for runtime changes and tests).

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        updated = merge_configs(self.config, partial)
        errors = self.validate_config(updated)
        if errors:
            raise ValueError("Invalid configuration: " + "; ".join(errors))
        self.config = updated

    def reset_to_defaults(self) -> None:
        self.config = get_default_config()

    def validate_config(self, config: Optional[dict[str, Any]] = None) -> list[str]:
        """
        Validate configuration values.

        Args:
            config: Configuration to validate (default: the current one)

        Returns:
            List of error messages, empty when valid
        """
        config = self.config if config is None else config
        errors: list[str] = []

        for section in REQUIRED_SECTIONS:
            if not isinstance(config.get(section), dict):
                errors.append(f"Missing section '{section}'")
        if errors:
            return errors

        api = config["api"]
        if not str(api.get("default_endpoint") or "").startswith(("http://", "https://")):
            errors.append("api.default_endpoint must be an http(s) URL")
        if not api.get("default_model"):
            errors.append("api.default_model must not be empty")

        temperature = api.get("temperature")
        if not isinstance(temperature, (int, float)) or not 0 <= temperature <= 2:
            errors.append("api.temperature must be a number between 0 and 2")

        for key in ("max_tokens", "chunk_max_tokens", "retry_attempts"):
            value = api.get(key)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                errors.append(f"api.{key} must be a positive integer")

        for key in ("timeout", "connection_timeout", "models_timeout"):
            value = api.get(key)
            if not isinstance(value, (int, float)) or value <= 0:
                errors.append(f"api.{key} must be a positive number")

        retry_delay = api.get("retry_delay")
        if not isinstance(retry_delay, (int, float)) or retry_delay < 0:
            errors.append("api.retry_delay must be a non-negative number")

        template = config["translation"].get("template")
        if not template or "{text}" not in template:
            errors.append("translation.template must contain {text}")

        return errors

    def build_translation_prompt(self, text: str, target_language: str) -> str:
        """
        Build the general purpose translation prompt.

        The document text is substituted last so braces inside it are never
        interpreted as template placeholders.

        Args:
            text: Text to translate (already protected)
            target_language: Target language name

        Returns:
            Prompt string

        Raises:
            ValueError: If no prompt template is configured
        """
        translation = self.config.get("translation") or {}
        template = translation.get("template")
        if not template:
            raise ValueError("No prompt template is configured")

        language = normalize_language(target_language) or target_language
        prompt = template.replace("{system}", translation.get("system") or "")
        prompt = prompt.replace("{instruction}", translation.get("instruction") or "")
        prompt = prompt.replace("{target_language}", language)
        return prompt.replace("{text}", text)

    def build_prompt_header(self, target_language: str) -> str:
        """The rendered prompt up to where the document text goes."""
        return self.build_translation_prompt("{text}", target_language).split("{text}", 1)[0]

    def get_api_key(self) -> str | None:
        api_key = self.get("api.api_key")
        return str(api_key) if api_key else None


# Global config instance
_global_config: ConfigManager | None = None


def get_config_manager(config_path: Path | None = None) -> ConfigManager:
    """Get or create global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = ConfigManager(config_path)
    return _global_config


def set_config_manager(manager: ConfigManager | None) -> None:
    """Replace the global configuration instance (None resets it)."""
    global _global_config
    _global_config = manager
