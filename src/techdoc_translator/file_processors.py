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
file_processors.py - Text extraction from input files

Only plain text and markdown are handled here: both are already text, so
extraction means decoding the bytes and normalizing line endings. PDF and
EPUB extraction are left to external processors implementing the same
``extract_text`` interface.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import chardet

from .text_processor import sanitize_text
from .translation_errors import FileReadError

logger = logging.getLogger(__name__)

FileContent = Union[str, bytes]

DEFAULT_FALLBACK_ENCODINGS = ["utf-8", "utf-16", "shift_jis", "euc-jp", "gb18030", "latin-1"]


def decode_bytes(
    raw_data: bytes,
    confidence_threshold: float = 0.7,
    fallback_encodings: Optional[list[str]] = None,
) -> str:
    """
    Decode bytes with chardet detection and fallback encodings.

    Args:
        raw_data: Raw file content
        confidence_threshold: Minimum chardet confidence to trust the detection
        fallback_encodings: Encodings tried in order when detection fails

    Returns:
        Decoded text
    """
    if fallback_encodings is None:
        fallback_encodings = DEFAULT_FALLBACK_ENCODINGS

    if raw_data.startswith(b"\xef\xbb\xbf"):
        return raw_data.decode("utf-8-sig")

    result = chardet.detect(raw_data[: 32 * 1024])
    encoding = result.get("encoding")
    confidence = result.get("confidence") or 0.0
    logger.debug(f"chardet.detect: {encoding} (confidence: {confidence})")

    if encoding and confidence >= confidence_threshold:
        try:
            return raw_data.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            logger.debug(f"Failed to decode with detected encoding {encoding}: {e}")

    for enc in fallback_encodings:
        try:
            content = raw_data.decode(enc)
            logger.debug(f"Decoded with fallback encoding: {enc}")
            return content
        except UnicodeDecodeError:
            continue

    logger.warning(f"All encodings failed, using {fallback_encodings[0]} with error replacement")
    return raw_data.decode(fallback_encodings[0], errors="replace")


class FileProcessor:
    """Base class for file processors."""

    file_types: tuple[str, ...] = ()

    def extract_text(self, file_content: FileContent) -> str:
        raise NotImplementedError("Subclasses must implement extract_text")


class TextFileProcessor(FileProcessor):
    """Plain text and markdown files."""

    file_types = ("txt", "text", "md", "markdown")

    def extract_text(self, file_content: FileContent) -> str:
        if isinstance(file_content, bytes):
            text = decode_bytes(file_content)
        elif isinstance(file_content, str):
            text = file_content
        else:
            raise TypeError(f"Unsupported file content type: {type(file_content).__name__}")
        return sanitize_text(text)


_PROCESSORS: dict[str, FileProcessor] = {}


def register_processor(processor: FileProcessor) -> None:
    for file_type in processor.file_types:
        _PROCESSORS[file_type] = processor


register_processor(TextFileProcessor())


def get_processor(file_type: str) -> FileProcessor:
    """
    Get the processor registered for a file type or extension.

    Raises:
        FileReadError: If no processor handles the type
    """
    key = file_type.lower().lstrip(".")
    processor = _PROCESSORS.get(key)
    if processor is None:
        raise FileReadError(f"File read error: unsupported file type '{file_type}'")
    return processor


def read_file(path: Path) -> tuple[bytes, str]:
    """
    Read a file for translation.

    Returns:
        (raw bytes, file type derived from the extension)

    Raises:
        FileReadError: If the file cannot be read
    """
    try:
        return path.read_bytes(), path.suffix.lower().lstrip(".") or "txt"
    except OSError as e:
        raise FileReadError(f"File read error: {e}") from e
