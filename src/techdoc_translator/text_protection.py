#!/usr/bin/env python3
# -*- coding: utf-8 -*-

# HERE IS THE CHANGELOG FOR THIS VERSION OF THE CODE:
# - Placeholder counter is an injectable object instead of a module global
# - Detectors are pure matcher functions composed by a cascade reducer
# - Matches overlapping an existing placeholder are rejected, not only
#   matches containing the placeholder prefix
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
text_protection.py - Reversible shielding of non-translatable text spans
========================================================================

Code blocks, tables, command output, paths, URLs, version strings and
numeric data must come back from the LLM byte-for-byte. Before translation
these spans are replaced by placeholders of the form
``__PROTECTED_<timestamp>_<counter>__``; after translation the placeholders
are swapped back.

Detection is a priority cascade. Each detector is a pure function
``(text) -> list[Span]``. Detectors are grouped (simple_table, code, table,
technical, numeric) and run in order over one buffer, so a span claimed by
an earlier detector is already a placeholder when later detectors run.
"""

from __future__ import annotations

import bisect
import logging
import re
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, NamedTuple, Optional, Sequence

from .common_constants import MIN_PROTECTED_LENGTH, PLACEHOLDER_PREFIX, PLACEHOLDER_SUFFIX

logger = logging.getLogger(__name__)

PATTERN_TYPES = ("code", "table", "technical", "numeric", "simple_table")

PLACEHOLDER_RE = re.compile(re.escape(PLACEHOLDER_PREFIX) + r"\d+_\d+" + re.escape(PLACEHOLDER_SUFFIX))


@dataclass
class ProtectedPattern:
    """One span removed from the source text."""

    type: str
    original_text: str
    placeholder: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProtectionResult:
    protected_text: str
    patterns: list[ProtectedPattern]

    @property
    def has_protected_content(self) -> bool:
        return len(self.patterns) > 0


@dataclass
class RestoreResult:
    restored_text: str
    restored_count: int


class Span(NamedTuple):
    start: int
    end: int


Matcher = Callable[[str], list[Span]]


class DetectorGroup(NamedTuple):
    name: str
    matchers: Sequence[Matcher]


class PlaceholderCounter:
    """Thread-safe monotonic counter that mints placeholder tokens.

    Placeholders are unique for the lifetime of one counter instance.
    Share an instance between protectors that may run concurrently.
    """

    def __init__(self, start: int = 0, clock: Callable[[], float] = time.time) -> None:
        self._lock = threading.Lock()
        self._value = start
        self._clock = clock

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def next_placeholder(self) -> str:
        with self._lock:
            self._value += 1
            counter = self._value
        timestamp = int(self._clock() * 1000)
        return f"{PLACEHOLDER_PREFIX}{timestamp}_{counter}{PLACEHOLDER_SUFFIX}"

    def reset(self) -> None:
        """Reset the counter. Only safe when no protected text is still pending restore."""
        with self._lock:
            self._value = 0


def regex_matcher(name: str, pattern: str, flags: int = 0, group: int = 0) -> Matcher:
    """
    Build a matcher from a regular expression.

    Args:
        name: Detector name, recorded in the pattern metadata
        pattern: Regular expression
        flags: re flags
        group: Capture group whose span is protected (0 = whole match)

    Returns:
        A function returning the non-empty spans found in a text
    """
    compiled = re.compile(pattern, flags)

    def match(text: str) -> list[Span]:
        spans = []
        for m in compiled.finditer(text):
            start, end = m.span(group)
            if start < 0 or end <= start:
                continue
            spans.append(Span(start, end))
        return spans

    match.__name__ = name
    match.__qualname__ = name
    return match


_ML = re.MULTILINE | re.ASCII

# "Label\n-------\nValue" blocks printed by CLI tools and psql
SIMPLE_TABLE_MATCHERS: list[Matcher] = [
    regex_matcher(
        "label_dashes_rows",
        r"^[ \t]*\w+(?:[ \t]+\w+)*[ \t]*\n[ \t]*-{3,}[ \t]*\n(?:[ \t]*\S[^\n]*(?:\n|$))+",
        _ML,
    ),
]

CODE_MATCHERS: list[Matcher] = [
    regex_matcher("fenced_code_block", r"```[^\n`]*\n(?:[\s\S]*?\n)?[ \t]*```", re.ASCII),
    regex_matcher("inline_code", r"`[^`\n]+`", re.ASCII),
    regex_matcher("indented_code_block", r"(?:^|\n)(    [^\n]+(?:\n    [^\n]+)*)", re.ASCII, group=1),
]

TABLE_MATCHERS: list[Matcher] = [
    regex_matcher("ascii_grid_table", r"^[ \t]*\+[-+=:]+\+[ \t]*(?:\n[ \t]*[|+][^\n]*)+$", _ML),
    regex_matcher("box_drawing_table", r"^[ \t]*[┌╔┏][─═━┬╦┳┐╗┓]+[ \t]*(?:\n[ \t]*[│║┃├╠┣└╚┗][^\n]*)+$", _ML),
    regex_matcher(
        "pipe_table",
        r"^[ \t]*\|[^\n]*\|[ \t]*\n"
        r"[ \t]*\|[ \t]*:?-+:?[ \t]*(?:\|[ \t]*:?-+:?[ \t]*)*\|[ \t]*"
        r"(?:\n[ \t]*\|[^\n]*\|[ \t]*)*$",
        _ML,
    ),
    regex_matcher(
        "header_separator_table",
        r"^[ \t]*\S[^\n]*\n[ \t]*[-=_]{3,}(?:[ \t+|]+[-=_]{3,})*[ \t]*(?:\n[ \t]*\S[^\n]*)+$",
        _ML,
    ),
]

_CODE_KEYWORDS = (
    "public|private|protected|static|final|class|interface|def|function|export|const|let|var|"
    "return|if|else|elif|for|while|try|catch|except|raise|throw|async|await|switch|case"
)

TECHNICAL_MATCHERS: list[Matcher] = [
    # whole-line detectors first, so inline detectors do not fragment them
    regex_matcher("bracketed_log_line", r"^[ \t]*\[\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}[^\]\n]*\][^\n]*$", _ML),
    regex_matcher(
        "leveled_log_line",
        r"^[ \t]*\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}\S*[ \t]+(?:TRACE|DEBUG|INFO|WARN|WARNING|ERROR|CRITICAL|FATAL)\b[^\n]*$",
        _ML,
    ),
    regex_matcher("shell_prompt", r"^[ \t]*(?:\$|>>>|[\w.-]+@[\w.-]+:[^\s$#]*[$#])[ \t]+\S[^\n]*$", _ML),
    regex_matcher("key_equals_value", r"^[ \t]*[\w.\-]+[ \t]*=[ \t]*\S[^\n]*$", _ML),
    regex_matcher("dotted_key_colon_value", r"^[ \t]*[\w\-]*[._][\w.\-]*[ \t]*:[ \t]*\S[^\n]*$", _ML),
    regex_matcher(
        "import_line",
        r"^[ \t]*(?:import[ \t]+[\w.]+(?:[ \t]+as[ \t]+\w+)?|from[ \t]+[\w.]+[ \t]+import[ \t]+[\w., *]+)[ \t]*;?[ \t]*$",
        _ML,
    ),
    regex_matcher(
        "keyword_code_line",
        r"^[ \t]*(?:" + _CODE_KEYWORDS + r")\b(?=[^\n]*(?:[(){};=<>\[\]]|:[ \t]*$))[^\n]*$",
        _ML,
    ),
    # inline detectors
    regex_matcher("url", r"https?://[^\s<>\"'`]*[^\s<>\"'`.,;:!?)\]}]", re.ASCII),
    regex_matcher(
        "sql_returns_clause",
        r"\b[A-Za-z_]\w*[ \t]*\([^()\n]*\)[ \t]+RETURNS?[ \t]+(?:SETOF[ \t]+)?\w+",
        re.ASCII,
    ),
    # a plain word followed by a plain word in parentheses is prose, as in "file(s)"
    regex_matcher(
        "function_call_signature",
        r"\b(?:(?=[\w.]*[_.])|(?=[a-z]+[A-Z])|(?=\w+\((?:\)|[^()\n]*[^A-Za-z()\n \t])|\w+\([^()\n]*\)[ \t]*(?:→|->)))"
        r"[A-Za-z_][\w.]*\([^()\n]*\)(?:[ \t]*(?:→|->)[ \t]*[\w.]+(?:\[[^\]\n]*\]|<[^>\n]*>)?)?",
        re.ASCII,
    ),
    regex_matcher(
        "spaced_function_signature",
        r"\b[A-Za-z]\w*_\w*[ \t]+\([^()\n]*\)(?:[ \t]*(?:→|->)[ \t]*[\w.]+)?",
        re.ASCII,
    ),
    regex_matcher("return_type_arrow", r"→[ \t]*[\w.]+(?:[ \t]+[\w.]+)?", re.ASCII),
    regex_matcher("windows_path", r"\b[A-Za-z]:\\(?:[\w\-. ]+\\)*[\w\-.]+", re.ASCII),
    regex_matcher("unix_path", r"(?<![\w/.~])(?:~|\.{1,2})?(?:/[\w\-.]+)+/?", re.ASCII),
    regex_matcher("ip_with_port", r"\b(?:\d{1,3}\.){3}\d{1,3}:\d{1,5}\b", re.ASCII),
    regex_matcher("ip_address", r"\b(?:\d{1,3}\.){3}\d{1,3}\b", re.ASCII),
    regex_matcher("version_string", r"\bv?\d+\.\d+(?:\.\d+)*(?:-[\w.]+)?\b", re.ASCII),
]

NUMERIC_MATCHERS: list[Matcher] = [
    regex_matcher("numeric_row", r"^[ \t]*\d+(?:\.\d+)?(?:[ \t]+\d+(?:\.\d+)?)+[ \t]*$", _ML),
    regex_matcher("parenthesized_statistic", r"\b\d+(?:\.\d+)?[ \t]*\([^()\n]+\)", re.ASCII),
    regex_matcher("percentage", r"\b\d+(?:\.\d+)?%", re.ASCII),
    regex_matcher("currency", r"[$¥€£][ \t]*\d+(?:,\d{3})*(?:\.\d{2})?", re.ASCII),
]

DEFAULT_DETECTOR_GROUPS: list[DetectorGroup] = [
    DetectorGroup("simple_table", SIMPLE_TABLE_MATCHERS),
    DetectorGroup("code", CODE_MATCHERS),
    DetectorGroup("table", TABLE_MATCHERS),
    DetectorGroup("technical", TECHNICAL_MATCHERS),
    DetectorGroup("numeric", NUMERIC_MATCHERS),
]


def find_placeholders(text: str) -> list[str]:
    """Return the placeholder tokens present in a text, in order of appearance."""
    return PLACEHOLDER_RE.findall(text)


def _placeholder_spans(text: str) -> list[Span]:
    return [Span(*m.span()) for m in PLACEHOLDER_RE.finditer(text)]


def _overlaps_any(span: Span, taken: list[Span], taken_starts: list[int]) -> bool:
    idx = bisect.bisect_right(taken_starts, span.start) - 1
    if idx >= 0 and taken[idx].end > span.start:
        return True
    nxt = idx + 1
    return nxt < len(taken) and taken[nxt].start < span.end


def apply_matcher(
    buffer: str,
    matcher: Matcher,
    pattern_type: str,
    make_placeholder: Callable[[], str],
    patterns: list[ProtectedPattern],
) -> str:
    """
    Replace every acceptable span found by ``matcher`` with a fresh placeholder.

    Rejected spans: spans that contain or overlap an existing placeholder,
    and spans shorter than MIN_PROTECTED_LENGTH once trimmed. Accepted spans
    are appended to ``patterns`` in document order.

    Returns:
        The rewritten buffer
    """
    spans = matcher(buffer)
    if not spans:
        return buffer

    taken = _placeholder_spans(buffer)
    taken_starts = [s.start for s in taken]
    pieces: list[str] = []
    cursor = 0

    for span in spans:
        if span.start < cursor:
            continue
        matched = buffer[span.start : span.end]
        if PLACEHOLDER_PREFIX in matched or _overlaps_any(span, taken, taken_starts):
            continue
        if len(matched.strip()) < MIN_PROTECTED_LENGTH:
            continue

        placeholder = make_placeholder()
        patterns.append(
            ProtectedPattern(
                type=pattern_type,
                original_text=matched,
                placeholder=placeholder,
                metadata={"detector": getattr(matcher, "__name__", "matcher"), "length": len(matched)},
            )
        )
        pieces.append(buffer[cursor : span.start])
        pieces.append(placeholder)
        cursor = span.end

    if not pieces:
        return buffer
    pieces.append(buffer[cursor:])
    return "".join(pieces)


def apply_cascade(
    text: str,
    groups: Iterable[DetectorGroup],
    make_placeholder: Callable[[], str],
) -> tuple[str, list[ProtectedPattern]]:
    """Run detector groups in priority order over one buffer. First group to claim a span wins."""
    patterns: list[ProtectedPattern] = []
    buffer = text
    for group in groups:
        for matcher in group.matchers:
            buffer = apply_matcher(buffer, matcher, group.name, make_placeholder, patterns)
    return buffer, patterns


class TextProtector:
    """Protects and restores non-translatable spans.

    Args:
        counter: Placeholder counter. Defaults to the shared module counter,
            which keeps placeholders unique across every protector in the process.
        groups: Detector groups in priority order
    """

    def __init__(
        self,
        counter: Optional[PlaceholderCounter] = None,
        groups: Optional[Sequence[DetectorGroup]] = None,
    ) -> None:
        self.counter = counter or default_placeholder_counter
        self.groups = list(groups) if groups is not None else list(DEFAULT_DETECTOR_GROUPS)

    def protect(self, text: str) -> ProtectionResult:
        """
        Replace protected spans with placeholders.

        Args:
            text: Source text

        Returns:
            ProtectionResult with the rewritten text and the patterns in detection order
        """
        if not text:
            return ProtectionResult(protected_text=text or "", patterns=[])

        protected_text, patterns = apply_cascade(text, self.groups, self.counter.next_placeholder)
        if patterns:
            logger.debug(f"Protected {len(patterns)} spans ({dict(Counter(p.type for p in patterns))})")
        return ProtectionResult(protected_text=protected_text, patterns=patterns)

    def restore(self, text: str, patterns: Sequence[ProtectedPattern]) -> RestoreResult:
        """
        Put the original spans back in place of their placeholders.

        Placeholders missing from ``text`` are skipped silently; compare
        ``restored_count`` with the number of expected placeholders to detect loss.
        """
        if not text or not patterns:
            return RestoreResult(restored_text=text, restored_count=0)

        restored = text
        count = 0
        for pattern in sorted(patterns, key=lambda p: len(p.placeholder), reverse=True):
            if pattern.placeholder in restored:
                restored = restored.replace(pattern.placeholder, pattern.original_text)
                count += 1
        return RestoreResult(restored_text=restored, restored_count=count)

    def protect_specific_types(self, text: str, types: Iterable[str]) -> ProtectionResult:
        """
        Protect only the given pattern types.

        Runs the full cascade, then restores every pattern whose type is not
        allowed, so cascade priorities stay the same as in protect().
        """
        allowed = set(types)
        unknown = allowed.difference(PATTERN_TYPES)
        if unknown:
            raise ValueError(f"Unknown pattern types: {sorted(unknown)}")

        result = self.protect(text)
        kept: list[ProtectedPattern] = []
        protected_text = result.protected_text
        for pattern in result.patterns:
            if pattern.type in allowed:
                kept.append(pattern)
            else:
                protected_text = protected_text.replace(pattern.placeholder, pattern.original_text, 1)
        return ProtectionResult(protected_text=protected_text, patterns=kept)


def get_protection_stats(patterns: Sequence[ProtectedPattern]) -> dict[str, Any]:
    """Summarize protected patterns: total count, count per type and protected characters."""
    by_type = Counter(p.type for p in patterns)
    return {
        "total": len(patterns),
        "by_type": {t: by_type.get(t, 0) for t in PATTERN_TYPES},
        "protected_chars": sum(len(p.original_text) for p in patterns),
    }


def debug_protected_patterns(patterns: Sequence[ProtectedPattern], preview_chars: int = 60) -> str:
    """Human-readable listing of protected patterns, one per line."""
    if not patterns:
        return "No protected patterns"

    lines = [f"Protected patterns: {len(patterns)}"]
    for i, pattern in enumerate(patterns, 1):
        preview = pattern.original_text
        if len(preview) > preview_chars:
            preview = preview[:preview_chars] + "..."
        detector = pattern.metadata.get("detector", "?")
        lines.append(f"{i:3d}. [{pattern.type}/{detector}] {pattern.placeholder} -> {preview!r}")
    return "\n".join(lines)


# Shared counter and protector
default_placeholder_counter = PlaceholderCounter()
default_protector = TextProtector(default_placeholder_counter)


def protect(text: str) -> ProtectionResult:
    return default_protector.protect(text)


def restore(text: str, patterns: Sequence[ProtectedPattern]) -> RestoreResult:
    return default_protector.restore(text, patterns)


def protect_specific_types(text: str, types: Iterable[str]) -> ProtectionResult:
    return default_protector.protect_specific_types(text, types)
