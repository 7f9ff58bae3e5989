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
image_manager.py - Keeps inline base64 images out of the translation stream
"""

from __future__ import annotations

import logging
import re
import threading
from typing import NamedTuple

logger = logging.getLogger(__name__)

# Markdown images whose target is a data URL
INLINE_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\((data:image/[^)]+)\)")
IMAGE_PLACEHOLDER_RE = re.compile(r"\[\[IMG_(\d+)\]\]")


class StoredImage(NamedTuple):
    data: str
    alt: str


class ImageManager:
    """Stores images and hands out ``[[IMG_n]]`` placeholders for them."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._images: dict[str, StoredImage] = {}
        self._counter = 0

    def store_image(self, base64_data: str, alt_text: str = "") -> str:
        """
        Store an image and return its placeholder.

        Args:
            base64_data: Image data, usually a ``data:image/...;base64,...`` URL
            alt_text: Alternative text of the image

        Returns:
            Placeholder string such as ``[[IMG_1]]``
        """
        with self._lock:
            self._counter += 1
            image_id = f"IMG_{self._counter}"
            self._images[image_id] = StoredImage(data=base64_data, alt=alt_text)
        return f"[[{image_id}]]"

    def restore_images(self, text: str) -> str:
        """Replace image placeholders with markdown images. Unknown placeholders are kept."""
        if not text:
            return text

        def replace(match: re.Match[str]) -> str:
            image = self._images.get(f"IMG_{match.group(1)}")
            if image is None:
                return match.group(0)
            return f"![{image.alt}]({image.data})"

        return IMAGE_PLACEHOLDER_RE.sub(replace, text)

    def get_image(self, image_id: str) -> StoredImage | None:
        return self._images.get(image_id)

    def has_image_placeholders(self, text: str) -> bool:
        return bool(IMAGE_PLACEHOLDER_RE.search(text))

    def extract_placeholders(self, text: str) -> list[str]:
        """Image ids referenced in a text, in order of appearance."""
        return [f"IMG_{n}" for n in IMAGE_PLACEHOLDER_RE.findall(text)]

    def get_image_ids(self) -> list[str]:
        return list(self._images)

    def clear(self) -> None:
        with self._lock:
            self._images.clear()
            self._counter = 0

    @property
    def size(self) -> int:
        return len(self._images)


def extract_inline_images(text: str, image_manager: ImageManager) -> str:
    """
    Replace every inline base64 markdown image with a placeholder from ``image_manager``.

    Args:
        text: Markdown text
        image_manager: Manager that stores the images

    Returns:
        Text without binary image payloads
    """

    def replace(match: re.Match[str]) -> str:
        return image_manager.store_image(match.group(2), match.group(1))

    result, count = INLINE_IMAGE_RE.subn(replace, text)
    if count:
        logger.debug(f"Moved {count} inline images out of the text")
    return result
