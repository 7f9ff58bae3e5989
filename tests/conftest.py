#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Pytest configuration and shared fixtures for all tests
"""

import pytest
import sys
import os
import tempfile
import shutil
from pathlib import Path
from unittest.mock import Mock

# Add src directory to path so we can import our modules
src_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
sys.path.insert(0, src_dir)

from techdoc_translator.config_manager import ConfigManager, set_config_manager
from techdoc_translator.usage_tracker import global_usage_tracker


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    logger = Mock()
    logger.info = Mock()
    logger.debug = Mock()
    logger.warning = Mock()
    logger.error = Mock()
    logger.exception = Mock()
    return logger


@pytest.fixture
def config_manager():
    """Configuration with built-in defaults only, no file and no environment"""
    return ConfigManager(use_env=False)


@pytest.fixture
def sample_markdown():
    """Technical markdown mixing prose with protected content"""
    return """# Installation

Install the package and check the installed version.

```bash
pip install techdoc-translator
techdoc-translate --version
```

The configuration lives in /etc/techdoc/config.yml and the server listens on 127.0.0.1:8080.
See https://example.com/docs/setup for details.

| Option | Default |
|--------|---------|
| timeout | 600 |
| retries | 3 |

Call `translate_text()` to start a translation.
"""


@pytest.fixture
def sample_japanese_text():
    """Japanese prose for language dependent tests"""
    return "これは日本語のテキストです。翻訳のテストに使います。"


@pytest.fixture
def mock_api_response():
    """Mock chat completion response"""
    return {
        "choices": [{"message": {"role": "assistant", "content": "This is the translated text."}}],
        "usage": {
            "prompt_tokens": 150,
            "completion_tokens": 75,
            "total_tokens": 225,
        },
    }


@pytest.fixture
def make_response():
    """Factory for mock requests responses"""

    def _make(status_code=200, json_data=None, text=""):
        response = Mock()
        response.status_code = status_code
        response.text = text
        if json_data is None:
            response.json.side_effect = ValueError("No JSON object could be decoded")
        else:
            response.json.return_value = json_data
        return response

    return _make


@pytest.fixture(autouse=True)
def reset_environment():
    """Reset environment variables and global state around each test"""
    env_backup = os.environ.copy()
    for name in ("TECHDOC_API_URL", "TECHDOC_MODEL", "TECHDOC_API_KEY"):
        os.environ.pop(name, None)
    set_config_manager(None)
    global_usage_tracker.reset()
    yield
    set_config_manager(None)
    global_usage_tracker.reset()
    os.environ.clear()
    os.environ.update(env_backup)


# Configure pytest options
def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
