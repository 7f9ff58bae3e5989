#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Test suite for text_processor module.
"""

import pytest

from techdoc_translator.common_constants import MSG_NO_TEXT
from techdoc_translator.text_processor import (
    detect_language,
    is_english_text,
    sanitize_text,
    validate_input,
)


class TestValidateInput:
    """Test input validation."""

    @pytest.mark.parametrize("text", [None, "", "   ", "\n\t"])
    def test_empty_rejected(self, text):
        result = validate_input(text)

        assert not result.valid
        assert result.errors == [MSG_NO_TEXT]
        assert result.metadata["has_content"] is False

    def test_empty_allowed(self):
        result = validate_input("", allow_empty=True)
        assert result.valid
        assert result.errors == []

    def test_valid_text(self):
        result = validate_input("hello world")

        assert result.valid
        assert result.metadata == {"length": 11, "estimated_tokens": 4, "has_content": True}

    def test_length_limits(self):
        assert not validate_input("abc", min_length=5).valid
        assert not validate_input("abcdef", max_length=5).valid

    def test_large_text_warning(self):
        result = validate_input("word " * 100, max_tokens=10)

        assert result.valid
        assert len(result.warnings) == 1
        assert "split into chunks" in result.warnings[0]


class TestSanitizeText:
    """Test text sanitization."""

    def test_control_characters_removed(self):
        assert sanitize_text("a\x00b\x1fc\x7fd") == "abcd"

    def test_tabs_and_newlines_kept(self):
        assert sanitize_text("a\tb\nc") == "a\tb\nc"

    def test_line_endings(self):
        assert sanitize_text("a\r\nb\rc") == "a\nb\nc"

    def test_empty(self):
        assert sanitize_text("") == ""


class TestLanguageDetection:
    """Test script based language detection."""

    def test_detect_language(self, sample_japanese_text):
        assert detect_language(sample_japanese_text) == "japanese"
        assert detect_language("This is English text.") == "english"
        assert detect_language("12345 67890") == "other"
        assert detect_language("") == "unknown"

    def test_is_english_text(self, sample_japanese_text):
        assert is_english_text("Install the package.")
        assert not is_english_text(sample_japanese_text)
