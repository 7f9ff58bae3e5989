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
cancellation.py - Cooperative cancellation for blocking translation calls

A CancellationToken is created per translation call and passed down to
every point where the pipeline can block: the chunk loop, the HTTP request
and the retry backoff sleep.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, TypeVar

from .translation_errors import TranslationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Thread-safe, one-shot cancellation flag with callbacks."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Cancel the token and run the registered callbacks once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.debug(f"Cancellation callback failed: {e}")

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback to run when the token is cancelled.

        If the token is already cancelled the callback runs immediately.

        Args:
            callback: Function without arguments

        Returns:
            A function that unregisters the callback
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                registered = True
            else:
                registered = False

        if not registered:
            callback()

        def unregister() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unregister

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to ``timeout`` seconds. Returns True if the token was cancelled."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TranslationCancelledError()


def run_cancellable(cancel_token: CancellationToken | None, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """
    Run a blocking function so that cancelling the token releases the caller at once.

    The function runs on a daemon worker thread while the caller waits for
    either its completion or the cancellation. When the token wins, the
    worker is left behind (its result is discarded) and
    TranslationCancelledError is raised. Callers that need the worker to
    exit register a teardown on the token that unblocks ``func``.

    Args:
        cancel_token: Token to observe; None runs ``func`` directly
        func: Blocking callable
        *args: Positional arguments for ``func``
        **kwargs: Keyword arguments for ``func``

    Returns:
        Whatever ``func`` returns

    Raises:
        TranslationCancelledError: If the token is cancelled first
    """
    if cancel_token is None:
        return func(*args, **kwargs)

    cancel_token.raise_if_cancelled()

    outcome: dict[str, Any] = {}
    finished = threading.Event()

    def worker() -> None:
        try:
            outcome["result"] = func(*args, **kwargs)
        except BaseException as e:  # re-raised in the calling thread
            outcome["error"] = e
        finally:
            finished.set()

    unregister = cancel_token.register(finished.set)
    thread = threading.Thread(target=worker, name="translation-request", daemon=True)
    thread.start()
    try:
        finished.wait()
    finally:
        unregister()

    if "error" in outcome:
        raise outcome["error"]
    if "result" in outcome:
        return outcome["result"]  # type: ignore[no-any-return]
    raise TranslationCancelledError()
