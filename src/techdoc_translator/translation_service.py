#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Copyright (c) 2025 Emasoft
# Licensed under the Apache License, Version 2.0 (the "License");
# You may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# HERE IS THE CHANGELOG FOR THIS VERSION OF THE CODE:
# - TranslationService drives protect, estimate, chunk, translate and restore
# - Cancellation token per call, abort() cancels the active one
# - Inline images are moved to the image manager before protection
# - Lost placeholders are reported as warnings
#

"""
translation_service.py - Document translation orchestration

Pipeline of one translate_text call:

    validate -> extract images -> protect -> estimate tokens
        -> single request, or split into chunks and translate them in order
        -> clean output -> restore protected spans -> restore images
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .api_clients import TranslationAPIClient
from .cancellation import CancellationToken
from .common_constants import DEFAULT_CHUNK_MAX_TOKENS
from .config_manager import ConfigManager, get_config_manager
from .file_processors import FileContent, get_processor
from .image_manager import ImageManager, extract_inline_images
from .models import FileTranslationOptions, TranslationOptions, TranslationState
from .output_cleaner import clean_translation_output
from .text_processor import sanitize_text, validate_input
from .text_protection import ProtectedPattern, TextProtector, default_protector, find_placeholders
from .text_splitter import estimate_chunk_count, split_text_into_chunks
from .token_estimator import TokenEstimator
from .translation_errors import FileReadError, InputValidationError, TranslationCancelledError, TranslationError

logger = logging.getLogger(__name__)

CHUNK_SEPARATOR = "\n\n"


class TranslationService:
    """
    Translates documents through an OpenAI-compatible backend while keeping
    code, tables and technical content out of the model's reach.

    One translation may be active per instance. Callers check
    is_translating() before starting another one.
    """

    def __init__(
        self,
        api_client: Optional[TranslationAPIClient] = None,
        config_manager: Optional[ConfigManager] = None,
        protector: Optional[TextProtector] = None,
        estimator: Optional[TokenEstimator] = None,
    ):
        """
        Initialize the service.

        Args:
            api_client: Client for the backend (created from the configuration if None)
            config_manager: Configuration source (default: the global one)
            protector: Pattern protector (default: the shared one)
            estimator: Token estimator (default: built from the token_estimation section)
        """
        self._config_manager = config_manager
        self.api_client = api_client or TranslationAPIClient(config_manager)
        self.protector = protector or default_protector
        self._estimator = estimator
        self._lock = threading.RLock()
        self._cancel_token: Optional[CancellationToken] = None
        self.state = TranslationState.PENDING

    @property
    def config(self) -> ConfigManager:
        return self._config_manager or get_config_manager()

    @property
    def estimator(self) -> TokenEstimator:
        if self._estimator is None:
            self._estimator = TokenEstimator.from_config(self.config.get_config())
        return self._estimator

    def is_translating(self) -> bool:
        with self._lock:
            return self._cancel_token is not None

    def abort(self) -> bool:
        """
        Cancel the active translation.

        Returns:
            True if a translation was running, False otherwise
        """
        with self._lock:
            token = self._cancel_token
            self._cancel_token = None

        if token is None:
            return False

        logger.info("Aborting translation")
        token.cancel()
        return True

    def translate_text(self, text: str, target_language: str, options: Optional[TranslationOptions] = None) -> str:
        """
        Translate a document.

        Args:
            text: Source text (plain text or markdown)
            target_language: Target language name
            options: Per-call options

        Returns:
            The translated text with every protected span restored

        Raises:
            InputValidationError: Empty or whitespace-only input
            TranslationCancelledError: abort() was called or the token was cancelled
            TranslationError: Any other API failure; no partial result is returned
        """
        options = options or TranslationOptions()

        validation = validate_input(text)
        if not validation.valid:
            raise InputValidationError("; ".join(validation.errors))

        token = options.cancel_token or CancellationToken()
        with self._lock:
            self._cancel_token = token
        self.state = TranslationState.RUNNING

        try:
            result = self._translate(text, target_language, options, token)
        except TranslationCancelledError:
            self.state = TranslationState.CANCELLED
            logger.info("Translation cancelled")
            raise
        except TranslationError as e:
            if token.is_cancelled:
                self.state = TranslationState.CANCELLED
                logger.info("Translation cancelled")
                raise TranslationCancelledError() from e
            self.state = TranslationState.ERROR
            logger.error(f"Translation failed ({e.kind}): {e}")
            raise
        except Exception:
            self.state = TranslationState.ERROR
            raise
        finally:
            with self._lock:
                if self._cancel_token is token:
                    self._cancel_token = None

        self.state = TranslationState.SUCCESS
        return result

    def _translate(self, text: str, target_language: str, options: TranslationOptions, token: CancellationToken) -> str:
        token.raise_if_cancelled()

        image_manager = options.image_manager
        if image_manager is not None:
            text = extract_inline_images(text, image_manager)

        if options.protected_types is not None:
            protection = self.protector.protect_specific_types(text, options.protected_types)
        else:
            protection = self.protector.protect(text)
        protected_text = sanitize_text(protection.protected_text)

        max_tokens = options.max_chunk_tokens or int(self.config.get("api.chunk_max_tokens", DEFAULT_CHUNK_MAX_TOKENS))
        estimated = self.estimator.estimate(protected_text, target_language)
        logger.info(f"Estimated {estimated} tokens for {target_language} (chunk budget {max_tokens}, {len(protection.patterns)} protected spans)")

        if estimated <= max_tokens:
            return self._translate_single(protected_text, target_language, protection.patterns, options, token)
        return self._translate_chunks(protected_text, target_language, protection.patterns, max_tokens, options, token)

    def _translate_single(
        self,
        protected_text: str,
        target_language: str,
        patterns: list[ProtectedPattern],
        options: TranslationOptions,
        token: CancellationToken,
    ) -> str:
        raw = self.api_client.translate(
            protected_text,
            target_language,
            api_url=options.api_url,
            model_name=options.model_name,
            cancel_token=token,
        )
        result = self._finish_chunk(raw, protected_text, target_language, patterns, options.image_manager)
        if options.on_progress:
            options.on_progress(100.0, "Translation complete")
        return result

    def _translate_chunks(
        self,
        protected_text: str,
        target_language: str,
        patterns: list[ProtectedPattern],
        max_tokens: int,
        options: TranslationOptions,
        token: CancellationToken,
    ) -> str:
        chunks = split_text_into_chunks(protected_text, max_tokens, target_language, self.estimator)
        total = len(chunks)
        estimated_total = estimate_chunk_count(protected_text, max_tokens)
        logger.info(f"Text split into {total} chunks")

        results: list[str] = []
        for index, chunk in enumerate(chunks):
            token.raise_if_cancelled()

            if chunk.strip():
                logger.info(f"Translating chunk {index + 1:06d} of {total:06d} ...")
                raw = self.api_client.translate(
                    chunk,
                    target_language,
                    api_url=options.api_url,
                    model_name=options.model_name,
                    cancel_token=token,
                )
                translated = self._finish_chunk(raw, chunk, target_language, patterns, options.image_manager)
                results.append(translated)
            else:
                translated = chunk

            if options.on_chunk_complete:
                options.on_chunk_complete(index + 1, estimated_total, translated)
            if options.on_progress:
                options.on_progress((index + 1) / total * 100, f"Translated chunk {index + 1} of {total}")

        return CHUNK_SEPARATOR.join(result for result in results if result)

    def _finish_chunk(
        self,
        raw: str,
        source: str,
        target_language: str,
        patterns: list[ProtectedPattern],
        image_manager: Optional[ImageManager],
    ) -> str:
        """Clean the model output, restore protected spans and images."""
        try:
            prompt_header: Optional[str] = self.config.build_prompt_header(target_language)
        except ValueError:
            prompt_header = None
        cleaned = clean_translation_output(raw, prompt_header)

        expected = find_placeholders(source)
        lost = [placeholder for placeholder in expected if placeholder not in cleaned]
        if lost:
            logger.warning(f"{len(lost)} of {len(expected)} protected spans were not returned by the model and cannot be restored")

        restored = self.protector.restore(cleaned, patterns).restored_text
        if image_manager is not None:
            restored = image_manager.restore_images(restored)
        return restored

    def translate_file(
        self,
        file_content: FileContent,
        file_type: str,
        target_language: str,
        options: Optional[FileTranslationOptions] = None,
    ) -> str:
        """
        Extract the text of a file and translate it.

        Args:
            file_content: Raw bytes or already decoded text
            file_type: Type or extension ("md", "txt", ...)
            target_language: Target language name
            options: Translation options, optionally with a processor

        Raises:
            FileReadError: The processor could not extract the text
        """
        options = options or FileTranslationOptions()
        processor = getattr(options, "processor", None)
        try:
            if processor is None:
                processor = get_processor(file_type)
            text = processor.extract_text(file_content)
        except FileReadError:
            raise
        except Exception as e:
            raise FileReadError(f"File read error: {e}") from e

        logger.info(f"Extracted {len(text)} characters from {file_type} content")
        return self.translate_text(text, target_language, options)

    def test_connection(self, api_url: Optional[str] = None, model_name: Optional[str] = None) -> bool:
        return self.api_client.test_connection(api_url, model_name)

    def fetch_available_models(self, api_url: Optional[str] = None) -> list[str]:
        return [model.id for model in self.api_client.fetch_available_models(api_url)]
