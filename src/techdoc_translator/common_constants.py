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
Common constants used across multiple modules of the translator.

This module centralizes shared constants to avoid duplication and ensure
consistency across the codebase. Values here are the built-in defaults;
most of them can be overridden from the YAML configuration file.
"""

from __future__ import annotations

# API defaults (OpenAI-compatible endpoint, LM Studio style local server)
DEFAULT_API_URL = "http://127.0.0.1:1234"
DEFAULT_MODEL_NAME = "local-model"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 10000
DEFAULT_CHUNK_MAX_TOKENS = 5000
CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
MODELS_PATH = "/v1/models"

# Timeouts in seconds
CONNECTION_TIMEOUT = 30
RESPONSE_TIMEOUT = 600  # 10 minutes, large chunks on local models are slow
MODELS_TIMEOUT = 10

# Retry settings
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0  # base delay in seconds, doubled on each attempt

# HTTP status codes that will not resolve by retrying
NON_RETRYABLE_STATUS_CODES = frozenset({400, 401, 403})

# Token estimation
JAPANESE_MULTIPLIER = 2.0  # tokens per Japanese character
ENGLISH_MULTIPLIER = 1.3  # tokens per Latin word
OTHER_MULTIPLIER = 0.5  # tokens per remaining character
JAPANESE_SOURCE_RATIO = 0.3  # share of Japanese chars that marks a Japanese source
COMPRESSION_JA_TO_EN = 0.65
COMPRESSION_EN_TO_JA = 1.5
COMPRESSION_DEFAULT = 1.0
CHARS_PER_TOKEN_ESTIMATE = 4  # used only for the progress chunk count estimate
MAX_CHUNK_SIZE = 12000

# Placeholder format used by the protection engine
PLACEHOLDER_PREFIX = "__PROTECTED_"
PLACEHOLDER_SUFFIX = "__"
MIN_PROTECTED_LENGTH = 3

# Image placeholders
IMAGE_PLACEHOLDER_FORMAT = "[[IMG_{index}]]"

# Model family that understands the bilingual translation prompt format
PLAMO_MODEL_FAMILY = "plamo-2-translate"

# Supported target languages, English names are canonical
SUPPORTED_LANGUAGES = [
    "English",
    "Japanese",
    "Chinese",
    "Korean",
    "Spanish",
    "French",
    "German",
    "Italian",
    "Portuguese",
    "Russian",
]

# Aliases accepted for target languages (lowercased), mapped to canonical names
LANGUAGE_ALIASES = {
    "english": "English",
    "en": "English",
    "英語": "English",
    "japanese": "Japanese",
    "ja": "Japanese",
    "jp": "Japanese",
    "日本語": "Japanese",
    "chinese": "Chinese",
    "zh": "Chinese",
    "中国語": "Chinese",
    "korean": "Korean",
    "ko": "Korean",
    "韓国語": "Korean",
    "spanish": "Spanish",
    "es": "Spanish",
    "スペイン語": "Spanish",
    "french": "French",
    "fr": "French",
    "フランス語": "French",
    "german": "German",
    "de": "German",
    "ドイツ語": "German",
    "italian": "Italian",
    "it": "Italian",
    "イタリア語": "Italian",
    "portuguese": "Portuguese",
    "pt": "Portuguese",
    "ポルトガル語": "Portuguese",
    "russian": "Russian",
    "ru": "Russian",
    "ロシア語": "Russian",
}

# Prefixes that models like to prepend to their answer
UNWANTED_PREFIXES = [
    "翻訳後の日本語テキスト:",
    "翻訳後のテキスト:",
    "日本語翻訳:",
    "以下が翻訳結果です:",
    "翻訳結果:",
    "Here is the translation:",
    "Here's the translation:",
    "Translation:",
]

# Text showing that the model echoed the instruction list of the prompt
PROMPT_RULE_HINTS = [
    "CRITICAL RULES FOR",
    "以下の規則を厳守してください",
    "のような前置きは絶対に付けない",
]

# Closing lines of an echoed instruction list; the translation follows them
PROMPT_LAST_RULE_MARKERS = [
    "Output only the translation",
    "Preserve ALL formatting EXACTLY",
    "前置きは絶対に付けない",
    "翻訳結果のみを出力",
]

# Language labels that sometimes start a response
LANGUAGE_LABELS = [
    "日本語:",
    "日本語：",
    "英語:",
    "英語：",
    "中国語:",
    "中国語：",
    "韓国語:",
    "韓国語：",
    "Japanese:",
    "English:",
    "Chinese:",
    "Korean:",
    "翻訳:",
]

# User visible messages
MSG_NO_TEXT = "Please provide text to translate"
MSG_TRANSLATION_CANCELLED = "Translation cancelled"
MSG_API_CONNECTION_ERROR = "Cannot connect to the translation API"
MSG_API_TIMEOUT_ERROR = "The API request timed out"
MSG_API_RESPONSE_ERROR = "The API response has an invalid format"


def normalize_language(language: str | None) -> str | None:
    """Map a language name, code or Japanese display name to its canonical English name.

    Unknown names are returned stripped but otherwise unchanged.
    """
    if language is None:
        return None
    key = language.strip()
    return LANGUAGE_ALIASES.get(key.lower(), LANGUAGE_ALIASES.get(key, key))


def is_japanese_language(language: str | None) -> bool:
    return normalize_language(language) == "Japanese"


def is_english_language(language: str | None) -> bool:
    return normalize_language(language) == "English"
