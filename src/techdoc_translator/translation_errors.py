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
translation_errors.py - Exception hierarchy for the translation pipeline

Every exception carries a ``kind`` tag so callers (the CLI, a UI) can react
to the category without matching on class names:

- validation: empty input, rejected before any network activity
- api-connection: network unreachable, retries exhausted, retryable HTTP errors
- api-timeout: a single request exceeded its deadline
- api-response-format: the backend answered with an unexpected JSON shape
- client-error: HTTP 400/401/403, never retried
- translation-cancelled: abort() or a cancelled token
- file-read: the file processor failed to extract text
"""

from __future__ import annotations

from typing import Optional

from .common_constants import MSG_TRANSLATION_CANCELLED


class TranslationError(Exception):
    """Base class for all translation pipeline errors."""

    kind = "translation"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class InputValidationError(TranslationError):
    """Input text is empty or otherwise unusable."""

    kind = "validation"


class APIConnectionError(TranslationError):
    """The API could not be reached, or all retry attempts failed."""

    kind = "api-connection"


class APITimeoutError(TranslationError):
    """A single request exceeded its timeout."""

    kind = "api-timeout"


class APIResponseFormatError(TranslationError):
    """The API answered, but the body is not a usable chat completion."""

    kind = "api-response-format"


class APIHTTPError(TranslationError):
    """Non-2xx HTTP response. Retryable unless it is an APIClientError."""

    kind = "api-connection"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class APIClientError(APIHTTPError):
    """HTTP 400, 401 or 403: the request itself is wrong and retrying will not help."""

    kind = "client-error"


class TranslationCancelledError(TranslationError):
    """The translation was cancelled. The message is always the same."""

    kind = "translation-cancelled"

    def __init__(self, message: str = MSG_TRANSLATION_CANCELLED) -> None:
        super().__init__(message)


class FileReadError(TranslationError):
    """Text extraction from an input file failed."""

    kind = "file-read"
