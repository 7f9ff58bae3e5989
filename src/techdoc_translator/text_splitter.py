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
# - Chunks are sized by estimated tokens instead of characters
# - Chunks are exact slices of the input, separators stay attached
# - Oversized paragraphs fall back to sentences, then lines, then a hard cut
# - Cut points never fall inside a protection placeholder
#

"""Token-bounded text splitting for chunked translation."""

from __future__ import annotations

import logging
import math
import re
from typing import Callable, Optional

from .common_constants import CHARS_PER_TOKEN_ESTIMATE, DEFAULT_CHUNK_MAX_TOKENS
from .text_protection import PLACEHOLDER_RE
from .token_estimator import TokenEstimator, default_estimator

logger = logging.getLogger(__name__)

# A paragraph break is a newline followed by one or more blank lines
PARAGRAPH_BREAK_RE = re.compile(r"\n(?:[ \t]*\n)+")
FENCED_BLOCK_RE = re.compile(r"```[^\n`]*\n(?:[\s\S]*?\n)?[ \t]*```")
# Latin terminators need trailing whitespace, CJK terminators do not
SENTENCE_END_RE = re.compile(r"[.!?]+[\"')\]]*\s+|[。！？]+[」』）)]*\s*")
LINE_END_RE = re.compile(r"\n")

Fits = Callable[[str], bool]


def _cut_points(text: str, pattern: re.Pattern[str]) -> list[int]:
    """Offsets just after each match of ``pattern``, excluding the text boundaries."""
    return [m.end() for m in pattern.finditer(text) if 0 < m.end() < len(text)]


def _slices(text: str, points: list[int]) -> list[str]:
    pieces = []
    start = 0
    for point in points:
        if point > start:
            pieces.append(text[start:point])
            start = point
    if start < len(text):
        pieces.append(text[start:])
    return pieces


def is_safe_cut(text: str, position: int) -> bool:
    """True if cutting ``text`` at ``position`` does not split a placeholder."""
    for m in PLACEHOLDER_RE.finditer(text):
        if m.start() < position < m.end():
            return False
        if m.start() >= position:
            break
    return True


def adjust_cut_for_placeholders(text: str, position: int) -> int:
    """
    Move a cut point out of any placeholder it falls into.

    The cut moves to just before the placeholder, or just after it when the
    placeholder starts the text (so the piece is never empty).
    """
    for m in PLACEHOLDER_RE.finditer(text):
        if m.start() < position < m.end():
            return m.start() if m.start() > 0 else m.end()
        if m.start() >= position:
            break
    return position


def paragraph_units(text: str) -> list[str]:
    """
    Split text into paragraphs, each carrying its trailing blank-line separator.

    Blank lines inside fenced code blocks are not paragraph breaks.
    """
    fences = [m.span() for m in FENCED_BLOCK_RE.finditer(text)]
    points = []
    for m in PARAGRAPH_BREAK_RE.finditer(text):
        if any(start < m.start() < end for start, end in fences):
            continue
        if 0 < m.end() < len(text):
            points.append(m.end())
    return _slices(text, points)


def sentence_units(text: str) -> list[str]:
    return _slices(text, [p for p in _cut_points(text, SENTENCE_END_RE) if is_safe_cut(text, p)])


def line_units(text: str) -> list[str]:
    return _slices(text, _cut_points(text, LINE_END_RE))


def _largest_fitting_prefix(text: str, fits: Fits) -> int:
    lo, hi = 0, len(text)
    while lo < hi:
        mid = (lo + hi + 1) // 2
        if fits(text[:mid]):
            lo = mid
        else:
            hi = mid - 1
    # the estimate is not strictly monotonic (compression ratio depends on the mix of scripts)
    while lo > 0 and not fits(text[:lo]):
        lo -= 1
    return lo


def _safe_fitting_cut(text: str, fits: Fits, cut: int) -> int:
    """Walk ``cut`` back until the prefix fits and no placeholder is split; 0 if none does."""
    while cut > 0:
        if is_safe_cut(text, cut) and fits(text[:cut]):
            return cut
        cut -= 1
    return 0


def hard_split(text: str, fits: Fits) -> list[str]:
    """
    Cut text at character boundaries, preferring whitespace, never inside a placeholder.

    A piece may exceed the budget only when it is a single atomic unit
    (a placeholder or one character) that does not fit on its own.
    """
    pieces = []
    rest = text
    while rest:
        if fits(rest):
            pieces.append(rest)
            break

        cut = _largest_fitting_prefix(rest, fits)
        whitespace = max(rest.rfind(" ", 0, cut), rest.rfind("\n", 0, cut), rest.rfind("\t", 0, cut))
        if whitespace + 1 > cut // 2:
            cut = whitespace + 1
        cut = adjust_cut_for_placeholders(rest, cut)
        if cut > 0 and not fits(rest[:cut]):
            # a shorter prefix can estimate higher once its script mix changes
            cut = _safe_fitting_cut(rest, fits, _largest_fitting_prefix(rest, fits))

        if cut <= 0:
            m = PLACEHOLDER_RE.match(rest)
            cut = m.end() if m else 1
            logger.debug(f"Atomic unit of {cut} characters exceeds the chunk budget")

        pieces.append(rest[:cut])
        rest = rest[cut:]
    return pieces


_FALLBACK_SPLITTERS: list[Callable[[str], list[str]]] = [sentence_units, line_units]


def _split_oversized(unit: str, fits: Fits, level: int) -> list[str]:
    for next_level in range(level, len(_FALLBACK_SPLITTERS)):
        units = _FALLBACK_SPLITTERS[next_level](unit)
        if len(units) > 1:
            return _pack(units, fits, next_level + 1)
    return hard_split(unit, fits)


def _pack(units: list[str], fits: Fits, level: int) -> list[str]:
    """Greedily accumulate units into pieces that fit; split units that never fit."""
    pieces: list[str] = []
    current = ""

    for unit in units:
        candidate = current + unit
        if fits(candidate):
            current = candidate
            continue

        if current.strip():
            pieces.append(current)
        else:
            # whitespace-only remainder travels with the next unit
            unit = candidate
        current = ""

        if fits(unit):
            current = unit
            continue

        parts = _split_oversized(unit, fits, level)
        pieces.extend(parts[:-1])
        current = parts[-1]

    if current:
        if current.strip() or not pieces:
            pieces.append(current)
        elif fits(pieces[-1] + current):
            pieces[-1] += current
        else:
            pieces.append(current)
    return pieces


def split_text_into_chunks(
    text: str,
    max_tokens: int = DEFAULT_CHUNK_MAX_TOKENS,
    target_language: Optional[str] = None,
    estimator: Optional[TokenEstimator] = None,
) -> list[str]:
    """
    Split text into chunks whose token estimate stays within ``max_tokens``.

    Paragraphs are accumulated greedily. A paragraph too large on its own is
    split at sentence boundaries, then line boundaries, then at a character
    boundary. Chunks are contiguous slices, so ``"".join(chunks) == text``.

    Args:
        text: Text to split, usually already protected
        max_tokens: Token budget per chunk
        target_language: Target language used by the estimator
        estimator: Token estimator (default multipliers if None)

    Returns:
        Chunks in document order

    Raises:
        ValueError: If max_tokens is not positive
    """
    if max_tokens < 1:
        raise ValueError(f"max_tokens must be positive, got {max_tokens}")
    if not text:
        return []

    estimator = estimator or default_estimator

    def fits(candidate: str) -> bool:
        return estimator.estimate(candidate, target_language) <= max_tokens

    if fits(text):
        return [text]

    chunks = _pack(paragraph_units(text), fits, level=0)
    logger.debug(f"Split {len(text)} characters into {len(chunks)} chunks (budget {max_tokens} tokens)")
    return chunks


def estimate_chunk_count(text: str, max_tokens: int = DEFAULT_CHUNK_MAX_TOKENS) -> int:
    """Rough chunk count for progress display, assuming ~4 characters per token."""
    if not text or max_tokens < 1:
        return 1
    return max(1, math.ceil(len(text) / (max_tokens * CHARS_PER_TOKEN_ESTIMATE)))
