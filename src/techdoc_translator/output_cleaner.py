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
output_cleaner.py - Cleanup of raw model output before placeholders are restored

Chat models often wrap the answer in chatter ("Here is the translation:"),
repeat the prompt before it, prefix it with a language label or pad it with
blank lines. Cleaning runs on the placeholder-bearing text, so protected
spans are never touched.
"""

from __future__ import annotations

import re
from typing import Optional

from .common_constants import LANGUAGE_LABELS, PROMPT_LAST_RULE_MARKERS, PROMPT_RULE_HINTS, UNWANTED_PREFIXES

_fence_re = re.compile(r"(```[\s\S]*?```)")
_prefix_res = [re.compile(r"\A\s*" + re.escape(prefix) + r"\s*", re.IGNORECASE) for prefix in UNWANTED_PREFIXES]
_source_marker_re = re.compile(r"\A\s*(?:Original text|原文)[ \t]*[:：][ \t]*\n?")

# Openings of the bundled prompt and of the Japanese instruction prompts
_prompt_echo_res = [
    re.compile(r"\ATranslate to [^\n]*\n[\s\S]*?^(?:Original text|原文)[ \t]*[:：][ \t]*\n", re.MULTILINE),
    re.compile(r"\Aあなたは[^。\n]*翻訳者です[。\s]*[\s\S]*?(?:原文[:：]|\n\n)"),
    re.compile(r"\AMarkdown形式を保持したまま翻訳[\s\S]*?(?:原文[:：]|\n\n)"),
    re.compile(r"\A[^\n]*以下の規則を厳守してください[:：]\s*\n+(?:[0-9]+\.|・|\*|-)[^\n]+(?:\n+(?:[0-9]+\.|・|\*|-)[^\n]+)*\s*\n+"),
]


def _remove_prompt_header(text: str, prompt_header: str) -> str:
    header = prompt_header.strip()
    candidates = [header]
    if "\n" in header:
        # the echo may stop before the source marker line
        candidates.append(header.rsplit("\n", 1)[0].rstrip())
    for candidate in candidates:
        if candidate and text.startswith(candidate):
            return text[len(candidate) :].lstrip()
    return text


def _skip_rule_lines(text: str) -> str:
    """Drop everything up to the last line that closes an echoed instruction list."""
    lines = text.split("\n")
    last_rule = -1
    for i, line in enumerate(lines):
        if any(marker in line for marker in PROMPT_LAST_RULE_MARKERS):
            last_rule = i
    if last_rule < 0:
        return text

    start = last_rule + 1
    while start < len(lines) and not lines[start].strip():
        start += 1
    if start >= len(lines):
        return text
    return "\n".join(lines[start:])


def remove_prompt_echo(text: str, prompt_header: Optional[str] = None) -> str:
    """
    Remove a prompt the model repeated before its translation.

    Args:
        text: Raw model output
        prompt_header: Rendered prompt text that preceded the document, if known

    Returns:
        Text starting at the translation
    """
    cleaned = text.lstrip()
    if prompt_header:
        cleaned = _remove_prompt_header(cleaned, prompt_header)

    for echo_re in _prompt_echo_res:
        cleaned, count = echo_re.subn("", cleaned, count=1)
        if count:
            break

    if any(hint in cleaned for hint in PROMPT_RULE_HINTS):
        cleaned = _skip_rule_lines(cleaned)

    return _source_marker_re.sub("", cleaned, count=1)


def remove_unwanted_prefixes(text: str) -> str:
    """Remove a leading "Here is the translation:" style prefix."""
    for prefix_re in _prefix_res:
        cleaned = prefix_re.sub("", text, count=1)
        if cleaned != text:
            return cleaned
    return text


def remove_language_label(text: str) -> str:
    """Remove a leading language label such as "English:" or "日本語：" from the text."""
    stripped = text.lstrip()
    for label in LANGUAGE_LABELS:
        if stripped.startswith(label):
            return stripped[len(label) :].lstrip()
    return text


def remove_excess_empty_lines(text: str) -> str:
    """
    Collapse runs of blank lines to a single blank line, outside code fences.

    Args:
        text: Text with potentially excessive empty lines

    Returns:
        Text with normalized empty lines
    """
    parts = _fence_re.split(text)
    # odd indices are the captured fences
    return "".join(part if i % 2 else re.sub(r"\n[ \t]*\n(?:[ \t]*\n)+", "\n\n", part) for i, part in enumerate(parts))


def clean_translation_output(text: str, prompt_header: Optional[str] = None) -> str:
    """
    Clean raw model output.

    Args:
        text: Raw content returned by the model
        prompt_header: Rendered prompt text that preceded the document, if known

    Returns:
        Cleaned text, or an empty string if nothing but whitespace is left
    """
    if not text or not text.strip():
        return ""

    cleaned = remove_prompt_echo(text, prompt_header)
    cleaned = remove_unwanted_prefixes(cleaned)
    cleaned = remove_language_label(cleaned)
    cleaned = remove_excess_empty_lines(cleaned)
    return cleaned.strip()
