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
usage_tracker.py - Token usage reported by the translation backend
"""

import logging
import threading
from typing import Any, Optional

logger = logging.getLogger(__name__)


class UsageTracker:
    """Thread-safe accumulation of the ``usage`` block of chat completion responses"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.total_tokens = 0
        self.total_prompt_tokens = 0
        self.total_completion_tokens = 0
        self.request_count = 0

    def track_usage(self, usage: Optional[dict[str, Any]]) -> int:
        """
        Record the usage of one request.

        Args:
            usage: Usage dict from the API response (may be missing)

        Returns:
            Total tokens of this request (0 when the backend reports nothing)
        """
        with self._lock:
            self.request_count += 1
            if not usage:
                logger.debug("Usage information not available in response")
                return 0

            prompt_tokens = int(usage.get("prompt_tokens", 0) or 0)
            completion_tokens = int(usage.get("completion_tokens", 0) or 0)
            total_tokens = int(usage.get("total_tokens", 0) or 0) or prompt_tokens + completion_tokens

            self.total_tokens += total_tokens
            self.total_prompt_tokens += prompt_tokens
            self.total_completion_tokens += completion_tokens
            logger.debug(f"Request used {total_tokens} tokens (cumulative: {self.total_tokens})")
            return total_tokens

    def get_summary(self) -> dict[str, Any]:
        """Get usage summary"""
        with self._lock:
            return {
                "total_tokens": self.total_tokens,
                "total_prompt_tokens": self.total_prompt_tokens,
                "total_completion_tokens": self.total_completion_tokens,
                "request_count": self.request_count,
                "average_tokens_per_request": self.total_tokens / self.request_count if self.request_count > 0 else 0,
            }

    def reset(self) -> None:
        """Reset all counters"""
        with self._lock:
            self.total_tokens = 0
            self.total_prompt_tokens = 0
            self.total_completion_tokens = 0
            self.request_count = 0


# Global usage tracker instance
global_usage_tracker = UsageTracker()
