#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Test suite for config_manager module.
"""

import logging
import os
from unittest.mock import Mock

import pytest
import yaml

from techdoc_translator.common_constants import DEFAULT_API_URL, DEFAULT_CHUNK_MAX_TOKENS, DEFAULT_MODEL_NAME
from techdoc_translator.config_manager import ConfigManager, get_config_manager, set_config_manager


class TestConfigManager:
    """Test the ConfigManager class."""

    def test_defaults_without_file(self, config_manager):
        """Test built-in defaults are used when no file is given."""
        assert config_manager.config_path is None
        assert config_manager.get("api.default_endpoint") == DEFAULT_API_URL
        assert config_manager.get("api.default_model") == DEFAULT_MODEL_NAME
        assert config_manager.get("api.chunk_max_tokens") == DEFAULT_CHUNK_MAX_TOKENS
        assert config_manager.is_config_loaded()
        assert config_manager.validate_config() == []

    def test_get_dotted_path(self, config_manager):
        """Test dot notation lookups and defaults."""
        assert config_manager.get("token_estimation.compression_ratio.en_to_ja") == 1.5
        assert config_manager.get("api.missing") is None
        assert config_manager.get("api.missing", 42) == 42
        assert config_manager.get("api.default_model.nested", "x") == "x"

    def test_get_config_returns_copy(self, config_manager):
        config = config_manager.get_config()
        config["api"]["default_model"] = "changed"
        assert config_manager.get("api.default_model") == DEFAULT_MODEL_NAME

    def test_file_values_merged_over_defaults(self, temp_dir):
        """Test values from the YAML file override the defaults, other keys are kept."""
        config_file = temp_dir / "config.yml"
        config_file.write_text(yaml.safe_dump({"api": {"default_model": "qwen2.5-7b", "retry_attempts": 5}}))

        manager = ConfigManager(config_path=config_file, use_env=False)

        assert manager.get("api.default_model") == "qwen2.5-7b"
        assert manager.get("api.retry_attempts") == 5
        assert manager.get("api.timeout") == 600
        assert "{text}" in manager.get("translation.template")

    def test_missing_file_created(self, temp_dir):
        config_file = temp_dir / "sub" / "techdoc_config.yml"

        manager = ConfigManager(config_path=config_file, use_env=False)

        assert config_file.exists()
        assert manager.get("api.default_endpoint") == DEFAULT_API_URL

    def test_unknown_section_ignored(self, temp_dir):
        """Test unknown top level keys are dropped with a warning."""
        config_file = temp_dir / "config.yml"
        config_file.write_text("presets:\n  LOCAL: {}\napi:\n  default_model: m\n")
        logger = Mock(spec=logging.Logger)

        manager = ConfigManager(config_path=config_file, logger=logger, use_env=False)

        assert "presets" not in manager.config
        assert manager.get("api.default_model") == "m"
        logger.warning.assert_called_once()
        assert "presets" in logger.warning.call_args[0][0]

    def test_invalid_values_rejected(self, temp_dir):
        config_file = temp_dir / "config.yml"
        config_file.write_text("api:\n  temperature: 5\n  chunk_max_tokens: 0\n")

        with pytest.raises(ValueError) as exc_info:
            ConfigManager(config_path=config_file, use_env=False)

        assert "api.temperature" in str(exc_info.value)
        assert "api.chunk_max_tokens" in str(exc_info.value)

    def test_overrides(self):
        manager = ConfigManager(overrides={"api": {"default_model": "override-model"}}, use_env=False)
        assert manager.get("api.default_model") == "override-model"

    def test_environment_overrides(self, monkeypatch):
        """Test TECHDOC_* variables override the api settings."""
        monkeypatch.setenv("TECHDOC_API_URL", "http://gpu-box:8000")
        monkeypatch.setenv("TECHDOC_MODEL", "env-model")
        monkeypatch.setenv("TECHDOC_API_KEY", "sk-test")

        manager = ConfigManager()

        assert manager.get("api.default_endpoint") == "http://gpu-box:8000"
        assert manager.get("api.default_model") == "env-model"
        assert manager.get_api_key() == "sk-test"

    def test_environment_ignored_when_disabled(self, monkeypatch):
        monkeypatch.setenv("TECHDOC_MODEL", "env-model")
        assert ConfigManager(use_env=False).get("api.default_model") == DEFAULT_MODEL_NAME

    def test_no_api_key_by_default(self, config_manager):
        assert config_manager.get_api_key() is None


class TestUpdateConfig:
    """Test runtime configuration changes."""

    def test_update_merges(self, config_manager):
        config_manager.update_config({"api": {"timeout": 120}})
        assert config_manager.get("api.timeout") == 120
        assert config_manager.get("api.default_model") == DEFAULT_MODEL_NAME

    def test_invalid_update_rejected(self, config_manager):
        """Test an invalid update leaves the configuration untouched."""
        with pytest.raises(ValueError, match="api.default_endpoint"):
            config_manager.update_config({"api": {"default_endpoint": "ftp://server"}})
        assert config_manager.get("api.default_endpoint") == DEFAULT_API_URL

    def test_template_requires_text(self, config_manager):
        with pytest.raises(ValueError, match="translation.template"):
            config_manager.update_config({"translation": {"template": "Translate this"}})

    def test_reset_to_defaults(self, config_manager):
        config_manager.update_config({"api": {"retry_attempts": 9}})
        config_manager.reset_to_defaults()
        assert config_manager.get("api.retry_attempts") == 3


class TestValidateConfig:
    """Test validate_config on explicit dictionaries."""

    def test_missing_sections(self, config_manager):
        errors = config_manager.validate_config({"api": {}})
        assert "Missing section 'translation'" in errors
        assert "Missing section 'logging'" in errors

    def test_boolean_is_not_integer(self, config_manager):
        config = config_manager.get_config()
        config["api"]["retry_attempts"] = True
        assert config_manager.validate_config(config) == ["api.retry_attempts must be a positive integer"]

    def test_zero_retry_delay_allowed(self, config_manager):
        config = config_manager.get_config()
        config["api"]["retry_delay"] = 0
        assert config_manager.validate_config(config) == []


class TestBuildTranslationPrompt:
    """Test prompt building from the template."""

    def test_default_prompt(self, config_manager):
        prompt = config_manager.build_translation_prompt("Hello", "ja")

        assert prompt.startswith("Translate to Japanese.")
        assert prompt.endswith("Original text:\nHello")
        assert "{target_language}" not in prompt

    def test_braces_in_text_kept(self, config_manager):
        """Test text is substituted last, so braces in it are not placeholders."""
        text = 'print(f"{target_language}") and {system}'
        prompt = config_manager.build_translation_prompt(text, "English")
        assert prompt.endswith(text)

    def test_custom_template(self, config_manager):
        config_manager.update_config(
            {"translation": {"template": "[{instruction}] to {target_language}: {text}", "instruction": "Be brief"}}
        )
        assert config_manager.build_translation_prompt("abc", "fr") == "[Be brief] to French: abc"

    def test_prompt_header(self, config_manager):
        header = config_manager.build_prompt_header("ja")

        assert header.startswith("Translate to Japanese.")
        assert header.endswith("Original text:\n")
        assert config_manager.build_translation_prompt("Hello", "ja") == header + "Hello"


class TestGlobalConfigManager:
    """Test the global instance helpers."""

    def test_get_creates_once(self, monkeypatch, temp_dir):
        monkeypatch.chdir(temp_dir)
        first = get_config_manager()
        assert get_config_manager() is first
        assert os.listdir(temp_dir) == []

    def test_set_replaces(self, config_manager):
        set_config_manager(config_manager)
        assert get_config_manager() is config_manager
