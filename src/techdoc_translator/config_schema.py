#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# HERE IS THE CHANGELOG FOR THIS VERSION OF THE CODE:
# - Configuration template for the document translator
# - Sections: api, translation, token_estimation, logging
#

"""
config_schema.py - Configuration schema and default template
"""

from .common_constants import (
    COMPRESSION_DEFAULT,
    COMPRESSION_EN_TO_JA,
    COMPRESSION_JA_TO_EN,
    CONNECTION_TIMEOUT,
    DEFAULT_API_URL,
    DEFAULT_CHUNK_MAX_TOKENS,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL_NAME,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TEMPERATURE,
    ENGLISH_MULTIPLIER,
    JAPANESE_MULTIPLIER,
    MODELS_TIMEOUT,
    OTHER_MULTIPLIER,
    RESPONSE_TIMEOUT,
)
from .config_prompts import DEFAULT_INSTRUCTION, DEFAULT_PROMPT_TEMPLATE, DEFAULT_SYSTEM_PROMPT


def indent_prompt(prompt: str, indent_level: int = 4) -> str:
    """
    Indent a multi-line prompt for proper YAML formatting.

    Args:
        prompt: The prompt string to indent
        indent_level: Number of spaces to indent (default: 4)

    Returns:
        Indented prompt string
    """
    indent = " " * indent_level
    lines = prompt.split("\n")
    return "\n".join(indent + line if line else "" for line in lines)


_SYSTEM_PROMPT_INDENTED = indent_prompt(DEFAULT_SYSTEM_PROMPT)
_PROMPT_TEMPLATE_INDENTED = indent_prompt(DEFAULT_PROMPT_TEMPLATE)

# Sections that must be present in a valid configuration
REQUIRED_SECTIONS = {
    "api": "Translation API settings (endpoint, model, timeouts, retries)",
    "translation": "Prompt settings",
    "token_estimation": "Token estimation multipliers and compression ratios",
    "logging": "Logging configuration",
}

# Default configuration template with extensive comments
DEFAULT_CONFIG_TEMPLATE = f"""# Document Translator Configuration File
# ======================================
# This file contains default settings for the document translator.
# Any command-line arguments will override these settings.
# Environment variables TECHDOC_API_URL, TECHDOC_MODEL and TECHDOC_API_KEY
# override the matching api settings.

# API Settings
# ------------
api:
  # Base URL of the OpenAI-compatible server (without /v1/...)
  default_endpoint: "{DEFAULT_API_URL}"

  # Model name sent with each request
  default_model: "{DEFAULT_MODEL_NAME}"

  # Optional API key, sent as a Bearer token (default: empty, no auth header)
  api_key: ""

  # Sampling temperature (default: {DEFAULT_TEMPERATURE})
  temperature: {DEFAULT_TEMPERATURE}

  # Maximum tokens in each response (default: {DEFAULT_MAX_TOKENS})
  max_tokens: {DEFAULT_MAX_TOKENS}

  # Estimated token budget above which a document is split into chunks (default: {DEFAULT_CHUNK_MAX_TOKENS})
  chunk_max_tokens: {DEFAULT_CHUNK_MAX_TOKENS}

  # Connection timeout in seconds (default: {CONNECTION_TIMEOUT})
  connection_timeout: {CONNECTION_TIMEOUT}

  # Response timeout per request in seconds (default: {RESPONSE_TIMEOUT})
  timeout: {RESPONSE_TIMEOUT}

  # Timeout for listing models in seconds (default: {MODELS_TIMEOUT})
  models_timeout: {MODELS_TIMEOUT}

  # Maximum attempts per request, including the first one (default: {DEFAULT_RETRY_ATTEMPTS})
  retry_attempts: {DEFAULT_RETRY_ATTEMPTS}

  # Base delay between retries in seconds, doubled after each attempt (default: {DEFAULT_RETRY_DELAY})
  retry_delay: {DEFAULT_RETRY_DELAY}

# Prompt Settings
# ---------------
translation:
  # System prompt. {{target_language}} is replaced with the target language.
  system: |-
{_SYSTEM_PROMPT_INDENTED}

  # Extra instruction, available as {{instruction}} in the template
  instruction: "{DEFAULT_INSTRUCTION}"

  # Prompt template. Placeholders: {{system}}, {{instruction}}, {{target_language}}, {{text}}
  template: |-
{_PROMPT_TEMPLATE_INDENTED}

# Token Estimation
# ----------------
# Heuristic used only to size chunks. Tune these if chunks come out
# too large or too small for your model.
token_estimation:
  # Tokens per Japanese character (default: {JAPANESE_MULTIPLIER})
  japanese_multiplier: {JAPANESE_MULTIPLIER}
  # Tokens per Latin word (default: {ENGLISH_MULTIPLIER})
  english_multiplier: {ENGLISH_MULTIPLIER}
  # Tokens per other character (default: {OTHER_MULTIPLIER})
  other_multiplier: {OTHER_MULTIPLIER}
  # Expected output/input length ratio of a translation
  compression_ratio:
    ja_to_en: {COMPRESSION_JA_TO_EN}
    en_to_ja: {COMPRESSION_EN_TO_JA}
    default: {COMPRESSION_DEFAULT}

# Logging Settings
# ----------------
logging:
  # Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
  level: INFO

  # Log to file (default: false)
  file_enabled: false
  file_path: "techdoc_translator.log"

  # Log format
  format: "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
"""
