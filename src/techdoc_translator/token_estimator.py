#!/usr/bin/env python3
# -*- coding: utf-8 -*-

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
token_estimator.py - Heuristic LLM token estimation for chunk sizing

The real tokenizer of the backend model is not available client-side, so the
count is approximated per script: Japanese characters, Latin words and
everything else get separate multipliers. With a target language the
estimate is scaled by the expected output/input length ratio of the
translation, because chunks must bound the size of the translated output.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from .common_constants import (
    COMPRESSION_DEFAULT,
    COMPRESSION_EN_TO_JA,
    COMPRESSION_JA_TO_EN,
    ENGLISH_MULTIPLIER,
    JAPANESE_MULTIPLIER,
    JAPANESE_SOURCE_RATIO,
    OTHER_MULTIPLIER,
    is_english_language,
    is_japanese_language,
)

# Hiragana, katakana and CJK unified ideographs
JAPANESE_CHARS_RE = re.compile(r"[\u3040-\u309f\u30a0-\u30ff\u4e00-\u9faf]")
ENGLISH_WORDS_RE = re.compile(r"[a-zA-Z]+")


class TokenEstimator:
    """Token estimator with tunable multipliers and compression ratios."""

    def __init__(
        self,
        japanese_multiplier: float = JAPANESE_MULTIPLIER,
        english_multiplier: float = ENGLISH_MULTIPLIER,
        other_multiplier: float = OTHER_MULTIPLIER,
        ja_to_en_ratio: float = COMPRESSION_JA_TO_EN,
        en_to_ja_ratio: float = COMPRESSION_EN_TO_JA,
        default_ratio: float = COMPRESSION_DEFAULT,
    ) -> None:
        self.japanese_multiplier = japanese_multiplier
        self.english_multiplier = english_multiplier
        self.other_multiplier = other_multiplier
        self.ja_to_en_ratio = ja_to_en_ratio
        self.en_to_ja_ratio = en_to_ja_ratio
        self.default_ratio = default_ratio

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "TokenEstimator":
        """Build an estimator from the ``token_estimation`` configuration section."""
        section = config.get("token_estimation") or {}
        ratios = section.get("compression_ratio") or {}
        return cls(
            japanese_multiplier=float(section.get("japanese_multiplier", JAPANESE_MULTIPLIER)),
            english_multiplier=float(section.get("english_multiplier", ENGLISH_MULTIPLIER)),
            other_multiplier=float(section.get("other_multiplier", OTHER_MULTIPLIER)),
            ja_to_en_ratio=float(ratios.get("ja_to_en", COMPRESSION_JA_TO_EN)),
            en_to_ja_ratio=float(ratios.get("en_to_ja", COMPRESSION_EN_TO_JA)),
            default_ratio=float(ratios.get("default", COMPRESSION_DEFAULT)),
        )

    def compression_ratio(self, text: str, target_language: Optional[str]) -> float:
        """
        Expected length ratio of the translation relative to ``text``.

        Args:
            text: Source text
            target_language: Target language name, code or Japanese display name

        Returns:
            ja_to_en ratio for Japanese text going to English, en_to_ja ratio for
            non-Japanese text going to Japanese, the default ratio otherwise
        """
        if not text or not target_language:
            return self.default_ratio

        japanese_chars = len(JAPANESE_CHARS_RE.findall(text))
        is_japanese_source = japanese_chars / len(text) > JAPANESE_SOURCE_RATIO

        if is_japanese_source and is_english_language(target_language):
            return self.ja_to_en_ratio
        if not is_japanese_source and is_japanese_language(target_language):
            return self.en_to_ja_ratio
        return self.default_ratio

    def estimate(self, text: str, target_language: Optional[str] = None) -> int:
        """
        Estimate the token count of ``text``.

        Args:
            text: Text to measure
            target_language: When given, scale by the translation compression ratio

        Returns:
            Estimated token count (0 for empty text)
        """
        if not text:
            return 0

        japanese_chars = len(JAPANESE_CHARS_RE.findall(text))
        english_words = ENGLISH_WORDS_RE.findall(text)
        english_chars = sum(len(word) for word in english_words)
        other_chars = len(text) - japanese_chars - english_chars

        tokens = math.ceil(
            japanese_chars * self.japanese_multiplier
            + len(english_words) * self.english_multiplier
            + other_chars * self.other_multiplier
        )

        if target_language:
            tokens = math.ceil(tokens * self.compression_ratio(text, target_language))
        return tokens


default_estimator = TokenEstimator()


def estimate_tokens(text: str, target_language: Optional[str] = None) -> int:
    """Estimate tokens with the default multipliers."""
    return default_estimator.estimate(text, target_language)


def get_translation_compression_ratio(text: str, target_language: Optional[str]) -> float:
    return default_estimator.compression_ratio(text, target_language)
