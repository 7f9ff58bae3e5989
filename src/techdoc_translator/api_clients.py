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
api_clients.py - Client for OpenAI-compatible chat completion backends

One TranslationAPIClient serves every model. The prompt format is chosen by
the prompt strategy registry, the request goes through a fresh requests
session whose in-flight connection is shut down when the cancellation token
fires, and transient failures are retried with exponential backoff via
tenacity.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional

import requests
from tenacity import RetryError, Retrying, before_sleep_log, retry_if_exception, stop_after_attempt, wait_exponential

from .cancellation import CancellationToken, run_cancellable
from .common_constants import (
    CHAT_COMPLETIONS_PATH,
    CONNECTION_TIMEOUT,
    DEFAULT_API_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL_NAME,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TEMPERATURE,
    MODELS_PATH,
    MODELS_TIMEOUT,
    MSG_API_CONNECTION_ERROR,
    MSG_API_RESPONSE_ERROR,
    MSG_API_TIMEOUT_ERROR,
    NON_RETRYABLE_STATUS_CODES,
    RESPONSE_TIMEOUT,
)
from .config_manager import ConfigManager, get_config_manager
from .http_transport import AbortableHTTPAdapter
from .models import ModelInfo
from .prompt_strategies import PromptStrategyRegistry, create_default_registry
from .translation_errors import (
    APIClientError,
    APIConnectionError,
    APIHTTPError,
    APIResponseFormatError,
    APITimeoutError,
    TranslationCancelledError,
    TranslationError,
)
from .usage_tracker import UsageTracker, global_usage_tracker

logger = logging.getLogger(__name__)


def extract_error_message(response: requests.Response) -> str:
    """
    Pull a human readable message out of an error response.

    Accepts ``{"error": {"message": ...}}`` and ``{"error": "..."}``, falls
    back to the raw body and finally to the status code.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict) and "error" in data:
        error = data["error"]
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error

    text = response.text if isinstance(response.text, str) else ""
    return text.strip() or f"Status {response.status_code}"


def parse_completion(data: Any) -> str:
    """
    Return ``choices[0].message.content`` of a chat completion.

    Raises:
        APIResponseFormatError: If the structure is missing or the content is not a string
    """
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise APIResponseFormatError(f"{MSG_API_RESPONSE_ERROR}: missing choices")

    message = choices[0].get("message")
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise APIResponseFormatError(f"{MSG_API_RESPONSE_ERROR}: missing message content")
    return content


def is_retryable_error(error: BaseException, cancel_token: Optional[CancellationToken] = None) -> bool:
    """Transient errors are retried; client errors, bad responses and cancellation are not."""
    if cancel_token is not None and cancel_token.is_cancelled:
        return False
    if not isinstance(error, TranslationError):
        return False
    return not isinstance(error, (TranslationCancelledError, APIClientError, APIResponseFormatError))


class TranslationAPIClient:
    """Client for the chat completions endpoint of a local or remote LLM server."""

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        prompt_registry: Optional[PromptStrategyRegistry] = None,
        retry_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Optional[Callable[[float], None]] = None,
        usage_tracker: Optional[UsageTracker] = None,
    ):
        """
        Initialize the API client.

        Args:
            config_manager: Configuration source (default: the global one)
            prompt_registry: Prompt strategies (default: bilingual for PLaMo, template otherwise)
            retry_attempts: Total attempts per request, overrides api.retry_attempts
            retry_delay: Base backoff delay in seconds, overrides api.retry_delay
            timeout: Read timeout in seconds, overrides api.timeout
            session_factory: Creates the requests session used for one request (an
                AbortableHTTPAdapter is mounted on it)
            sleep: Backoff sleep function; by default the backoff waits on the cancellation token
            usage_tracker: Receives the ``usage`` block of every response
        """
        self._config_manager = config_manager
        self.prompt_registry = prompt_registry or create_default_registry(config_manager)
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay
        self._timeout = timeout
        self._session_factory = session_factory
        self._sleep = sleep
        self.usage_tracker = usage_tracker or global_usage_tracker

    @property
    def config(self) -> ConfigManager:
        return self._config_manager or get_config_manager()

    @property
    def retry_attempts(self) -> int:
        if self._retry_attempts is not None:
            return max(1, int(self._retry_attempts))
        return max(1, int(self.config.get("api.retry_attempts", DEFAULT_RETRY_ATTEMPTS)))

    @property
    def retry_delay(self) -> float:
        if self._retry_delay is not None:
            return float(self._retry_delay)
        return float(self.config.get("api.retry_delay", DEFAULT_RETRY_DELAY))

    @property
    def request_timeout(self) -> tuple[float, float]:
        """(connect, read) timeout tuple for requests."""
        read_timeout = self._timeout if self._timeout is not None else self.config.get("api.timeout", RESPONSE_TIMEOUT)
        return (float(self.config.get("api.connection_timeout", CONNECTION_TIMEOUT)), float(read_timeout))

    def base_url(self, api_url: Optional[str] = None) -> str:
        """Server base URL. A full endpoint path is accepted and reduced to the base."""
        url = (api_url or self.config.get("api.default_endpoint") or DEFAULT_API_URL).strip().rstrip("/")
        for suffix in (CHAT_COMPLETIONS_PATH, MODELS_PATH, "/v1"):
            if url.endswith(suffix):
                return url[: -len(suffix)]
        return url

    def get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        api_key = self.config.get_api_key()
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    def build_request(
        self,
        text: str,
        target_language: str,
        model_name: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Build the chat completion request body.

        Args:
            text: Protected text to translate
            target_language: Target language name
            model_name: Model to use (default: api.default_model)
            temperature: Sampling temperature (default: api.temperature)
            max_tokens: Response token limit (default: api.max_tokens)

        Returns:
            JSON-serializable request body
        """
        model = model_name or self.config.get("api.default_model") or DEFAULT_MODEL_NAME
        prompt = self.prompt_registry.build_prompt(text, target_language, model)
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature if temperature is not None else self.config.get("api.temperature", DEFAULT_TEMPERATURE),
            "max_tokens": max_tokens if max_tokens is not None else self.config.get("api.max_tokens", DEFAULT_MAX_TOKENS),
            "stream": False,
        }

    def translate(
        self,
        text: str,
        target_language: str,
        api_url: Optional[str] = None,
        model_name: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Translate one piece of (protected) text.

        Args:
            text: Text to translate
            target_language: Target language name
            api_url: Backend base URL (default: api.default_endpoint)
            model_name: Model to use (default: api.default_model)
            cancel_token: Token that aborts the request and the backoff sleeps
            temperature: Sampling temperature override
            max_tokens: Response token limit override

        Returns:
            The raw model output

        Raises:
            TranslationError: One of its subclasses, see translation_errors
        """
        body = self.build_request(text, target_language, model_name, temperature, max_tokens)
        url = self.base_url(api_url) + CHAT_COMPLETIONS_PATH
        logger.debug(f"Sending {len(text)} characters to {url} (model: {body['model']})")
        return self.make_request_with_retry(url, body, cancel_token)

    def make_request_with_retry(self, url: str, body: dict[str, Any], cancel_token: Optional[CancellationToken] = None) -> str:
        """
        Run make_request with exponential backoff.

        Delays are ``retry_delay * 2 ** (attempt - 1)``. Non-retryable errors
        propagate unchanged; when all attempts fail the last error is wrapped
        in APITimeoutError (if it was a timeout) or APIConnectionError.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_delay, exp_base=2),
            retry=retry_if_exception(lambda e: is_retryable_error(e, cancel_token)),
            sleep=lambda seconds: self._backoff_sleep(seconds, cancel_token),
            before_sleep=before_sleep_log(logger, logging.WARNING),
        )
        try:
            return retrying(self.make_request, url, body, cancel_token)
        except RetryError as e:
            attempts = e.last_attempt.attempt_number
            last_error = e.last_attempt.exception()
            if isinstance(last_error, APITimeoutError):
                raise APITimeoutError(f"{last_error.message} (failed after {attempts} attempts)") from last_error
            raise APIConnectionError(f"{MSG_API_CONNECTION_ERROR} after {attempts} attempts: {last_error}") from last_error

    def _backoff_sleep(self, seconds: float, cancel_token: Optional[CancellationToken]) -> None:
        if self._sleep is not None:
            self._sleep(seconds)
        elif cancel_token is not None:
            if cancel_token.wait(seconds):
                raise TranslationCancelledError()
        else:
            time.sleep(seconds)

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

    def make_request(self, url: str, body: dict[str, Any], cancel_token: Optional[CancellationToken] = None) -> str:
        """
        Perform a single request and return the translated content.

        Raises:
            APIClientError: HTTP 400, 401 or 403
            APIHTTPError: Any other non-2xx status
            APIResponseFormatError: The body is not a chat completion
            APITimeoutError: The request timed out
            APIConnectionError: Network failure
            TranslationCancelledError: The token was cancelled
        """
        response = self._post(url, body, cancel_token, self.request_timeout)

        if not 200 <= response.status_code < 300:
            message = f"API error ({response.status_code}): {extract_error_message(response)}"
            if response.status_code in NON_RETRYABLE_STATUS_CODES:
                raise APIClientError(message, response.status_code)
            raise APIHTTPError(message, response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise APIResponseFormatError(f"{MSG_API_RESPONSE_ERROR}: {e}") from e

        content = parse_completion(data)
        self.usage_tracker.track_usage(data.get("usage"))
        return content

    def _post(
        self,
        url: str,
        body: dict[str, Any],
        cancel_token: Optional[CancellationToken],
        timeout: tuple[float, float],
    ) -> requests.Response:
        session = self._session_factory()
        adapter = AbortableHTTPAdapter()
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        def abort_transfer() -> None:
            adapter.abort()
            session.close()

        unregister = cancel_token.register(abort_transfer) if cancel_token is not None else None
        try:
            return run_cancellable(cancel_token, session.post, url, json=body, headers=self.get_headers(), timeout=timeout)
        except requests.exceptions.Timeout as e:
            if cancel_token is not None and cancel_token.is_cancelled:
                raise TranslationCancelledError() from e
            raise APITimeoutError(f"{MSG_API_TIMEOUT_ERROR} (limit {timeout[1]:g}s)") from e
        except requests.exceptions.RequestException as e:
            if cancel_token is not None and cancel_token.is_cancelled:
                raise TranslationCancelledError() from e
            raise APIConnectionError(f"{MSG_API_CONNECTION_ERROR}: {e}") from e
        finally:
            if unregister is not None:
                unregister()
            session.close()

    def test_connection(self, api_url: Optional[str] = None, model_name: Optional[str] = None) -> bool:
        """
        Send a one-token request without retries.

        Returns:
            True if the backend answered with a 2xx status
        """
        body = {
            "model": model_name or self.config.get("api.default_model") or DEFAULT_MODEL_NAME,
            "messages": [{"role": "user", "content": "Hello"}],
            "max_tokens": 1,
            "temperature": 0,
            "stream": False,
        }
        url = self.base_url(api_url) + CHAT_COMPLETIONS_PATH
        try:
            response = self._post(url, body, None, self.request_timeout)
        except TranslationError as e:
            logger.warning(f"Connection test failed: {e}")
            return False

        if 200 <= response.status_code < 300:
            logger.info(f"Connection test succeeded: {url}")
            return True
        logger.warning(f"Connection test failed with status {response.status_code}: {extract_error_message(response)}")
        return False

    def fetch_available_models(self, api_url: Optional[str] = None) -> list[ModelInfo]:
        """
        List the models served by the backend.

        Any failure is logged and yields an empty list.
        """
        url = self.base_url(api_url) + MODELS_PATH
        timeout = float(self.config.get("api.models_timeout", MODELS_TIMEOUT))
        try:
            response = requests.get(url, headers=self.get_headers(), timeout=timeout)
            if not 200 <= response.status_code < 300:
                logger.warning(f"Failed to fetch models ({response.status_code}): {extract_error_message(response)}")
                return []
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Failed to fetch models from {url}: {e}")
            return []

        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            logger.warning("Models response has no 'data' list")
            return []
        return [ModelInfo.from_dict(item) for item in items if isinstance(item, dict) and item.get("id")]
