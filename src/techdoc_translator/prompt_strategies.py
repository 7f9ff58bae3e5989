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
prompt_strategies.py - Model specific prompt construction

Dedicated translation models expect their own prompt format instead of a
chat instruction. A small registry maps model-family predicates to prompt
strategies; the first matching predicate wins and a template strategy
handles every other model.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from .common_constants import PLAMO_MODEL_FAMILY, is_japanese_language
from .config_manager import ConfigManager, get_config_manager
from .text_processor import is_english_text

logger = logging.getLogger(__name__)

ModelPredicate = Callable[[str], bool]


class PromptStrategy(Protocol):
    """Builds the user message for one translation request."""

    name: str

    def build(self, text: str, target_language: str) -> str: ...


class TemplatePromptStrategy:
    """Instruction prompt built from the configured template."""

    name = "template"

    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        self._config_manager = config_manager

    @property
    def config_manager(self) -> ConfigManager:
        return self._config_manager or get_config_manager()

    def build(self, text: str, target_language: str) -> str:
        return self.config_manager.build_translation_prompt(text, target_language)


class BilingualPromptStrategy:
    """
    Prompt format of the PLaMo translation models.

    The source language is detected from the text itself (Latin letters
    versus Japanese characters); the target is Japanese when requested,
    English otherwise.
    """

    name = "bilingual"

    def build(self, text: str, target_language: str) -> str:
        source_lang = "English" if is_english_text(text) else "Japanese"
        target_lang = "Japanese" if is_japanese_language(target_language) else "English"
        return (
            "<|plamo:op|>dataset\n"
            "translation\n"
            f"<|plamo:op|>input lang={source_lang}\n"
            f"{text}\n"
            f"<|plamo:op|>output lang={target_lang}"
        )


def model_family(family: str) -> ModelPredicate:
    """Predicate matching model names that contain ``family``, case-insensitive.

    Matches with or without a version or quantization suffix
    (``plamo-2-translate``, ``PLaMo-2-Translate@8bit``, ``org/plamo-2-translate-v2``).
    """
    needle = family.lower()

    def predicate(model_name: str) -> bool:
        return needle in (model_name or "").lower()

    predicate.__name__ = f"model_family_{needle}"
    return predicate


class PromptStrategyRegistry:
    """Ordered list of (predicate, strategy) pairs with a fallback strategy."""

    def __init__(self, default: PromptStrategy) -> None:
        self.default = default
        self._entries: list[tuple[ModelPredicate, PromptStrategy]] = []

    def register(self, predicate: ModelPredicate, strategy: PromptStrategy) -> None:
        self._entries.append((predicate, strategy))

    def select(self, model_name: str) -> PromptStrategy:
        for predicate, strategy in self._entries:
            if predicate(model_name):
                return strategy
        return self.default

    def build_prompt(self, text: str, target_language: str, model_name: str) -> str:
        strategy = self.select(model_name)
        logger.debug(f"Using '{strategy.name}' prompt strategy for model '{model_name}'")
        return strategy.build(text, target_language)


def create_default_registry(config_manager: Optional[ConfigManager] = None) -> PromptStrategyRegistry:
    """Registry with the bilingual strategy for PLaMo translation models and the template fallback."""
    registry = PromptStrategyRegistry(default=TemplatePromptStrategy(config_manager))
    registry.register(model_family(PLAMO_MODEL_FAMILY), BilingualPromptStrategy())
    return registry
