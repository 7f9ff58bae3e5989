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
techdoc-translator - LLM translation of technical documents

Code blocks, tables, paths, log lines and numeric data are shielded behind
placeholders, long documents are split into token-bounded chunks and each
chunk is sent to an OpenAI-compatible chat completion backend.
"""

__version__ = "1.0.0"
__author__ = "Emasoft"
__email__ = "713559+Emasoft@users.noreply.github.com"
__license__ = "Apache-2.0"

# Main modules
from . import translation_service
from . import api_clients
from . import cli

# Core transformations
from . import text_protection
from . import token_estimator
from . import text_splitter
from . import text_processor
from . import output_cleaner

# Support modules
from . import cancellation
from . import common_constants
from . import common_print_utils
from . import config_manager
from . import file_processors
from . import http_transport
from . import image_manager
from . import models
from . import prompt_strategies
from . import translation_errors
from . import usage_tracker

__all__ = [
    "translation_service",
    "api_clients",
    "cli",
    "text_protection",
    "token_estimator",
    "text_splitter",
    "text_processor",
    "output_cleaner",
    "cancellation",
    "common_constants",
    "common_print_utils",
    "config_manager",
    "file_processors",
    "http_transport",
    "image_manager",
    "models",
    "prompt_strategies",
    "translation_errors",
    "usage_tracker",
]
