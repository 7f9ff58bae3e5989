#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Copyright (c) 2025 Emasoft
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
#
# CHANGELOG:
# - Input validation with token estimate metadata
# - Control character removal and newline normalization
# - Script based language detection
#

"""Text validation and normalization utilities for the translator."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from .common_constants import MAX_CHUNK_SIZE, MSG_NO_TEXT
from .token_estimator import JAPANESE_CHARS_RE, estimate_tokens

# Precompiled regex patterns
_control_chars_re = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_latin_letter_re = re.compile(r"[A-Za-z]")


@dataclass
class ValidationResult:
    """Outcome of validate_input."""

    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


def validate_input(
    text: Optional[str],
    min_length: int = 0,
    max_length: float = math.inf,
    allow_empty: bool = False,
    max_tokens: float = MAX_CHUNK_SIZE,
) -> ValidationResult:
    """
    Validate input text.

    Args:
        text: Text to validate
        min_length: Minimum number of characters
        max_length: Maximum number of characters
        allow_empty: Accept empty or whitespace-only text
        max_tokens: Above this estimate a warning is added (the text will be chunked)

    Returns:
        ValidationResult with errors, warnings and metadata
        (length, estimated_tokens, has_content)
    """
    text = text or ""
    result = ValidationResult(metadata={"length": len(text), "estimated_tokens": 0, "has_content": False})

    if not text.strip():
        if not allow_empty:
            result.valid = False
            result.errors.append(MSG_NO_TEXT)
        return result

    if len(text) < min_length:
        result.valid = False
        result.errors.append(f"Text is too short (minimum: {min_length} characters)")
    if len(text) > max_length:
        result.valid = False
        result.errors.append(f"Text is too long (maximum: {max_length} characters)")

    estimated = estimate_tokens(text)
    result.metadata["estimated_tokens"] = estimated
    result.metadata["has_content"] = True
    if estimated > max_tokens:
        result.warnings.append(f"Text is large ({estimated} estimated tokens) and will be split into chunks")

    return result


def sanitize_text(text: str) -> str:
    """
    Remove control characters (except tab and newline) and normalize line endings.

    Args:
        text: Text to sanitize

    Returns:
        Sanitized text
    """
    if not text:
        return ""
    sanitized = _control_chars_re.sub("", text)
    return sanitized.replace("\r\n", "\n").replace("\r", "\n")


def detect_language(text: str) -> str:
    """
    Guess the main language of a text from its script mix.

    Returns:
        'japanese', 'english', 'other' or 'unknown' (empty text)
    """
    if not text:
        return "unknown"

    japanese_ratio = len(JAPANESE_CHARS_RE.findall(text)) / len(text)
    english_ratio = len(_latin_letter_re.findall(text)) / len(text)

    if japanese_ratio > 0.3:
        return "japanese"
    if english_ratio > 0.5:
        return "english"
    return "other"


def is_english_text(text: str) -> bool:
    """True if Latin letters outnumber Japanese characters."""
    return len(_latin_letter_re.findall(text)) > len(JAPANESE_CHARS_RE.findall(text))
