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
# - TranslationState tracks one translate_text call
# - Added TranslationOptions and FileTranslationOptions records
# - Added ModelInfo for the models listing endpoint
#

"""Data models for the translation pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence

if TYPE_CHECKING:
    from .cancellation import CancellationToken
    from .file_processors import FileProcessor
    from .image_manager import ImageManager

ProgressCallback = Callable[[float, str], None]
ChunkCompleteCallback = Callable[[int, int, str], None]


class TranslationState(enum.Enum):
    """A description of the translation's current state."""

    PENDING = 1
    """No translation has started yet."""
    RUNNING = 2
    """A translation is in flight."""
    CANCELLED = 3
    """The last translation was cancelled."""
    ERROR = 4
    """The last translation failed with an error."""
    SUCCESS = 5
    """The last translation completed successfully."""


@dataclass
class TranslationOptions:
    """
    Per-call options. Unset fields fall back to the configuration.

    Attributes:
        api_url: Base URL of the backend
        model_name: Model to use
        on_progress: Called with (percent, message) after each chunk
        on_chunk_complete: Called with (chunk_number, estimated_total, translated_chunk)
        max_chunk_tokens: Token budget that triggers chunking
        image_manager: Receives inline base64 images before translation
        protected_types: Only protect these pattern types (all types if None)
        cancel_token: Token used for this call; abort() cancels it
    """

    api_url: Optional[str] = None
    model_name: Optional[str] = None
    on_progress: Optional[ProgressCallback] = None
    on_chunk_complete: Optional[ChunkCompleteCallback] = None
    max_chunk_tokens: Optional[int] = None
    image_manager: Optional["ImageManager"] = None
    protected_types: Optional[Sequence[str]] = None
    cancel_token: Optional["CancellationToken"] = None


@dataclass
class FileTranslationOptions(TranslationOptions):
    """Options for translate_file: adds the processor that extracts the text."""

    processor: Optional["FileProcessor"] = None


@dataclass
class ModelInfo:
    """One entry of the /v1/models listing."""

    id: str
    object: str = "model"
    created: Optional[int] = None
    owned_by: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModelInfo":
        created = data.get("created")
        return cls(
            id=str(data["id"]),
            object=str(data.get("object") or "model"),
            created=int(created) if isinstance(created, (int, float)) else None,
            owned_by=data.get("owned_by"),
        )
