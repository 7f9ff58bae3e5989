#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Test suite for cancellation module.
"""

import threading
import time
from unittest.mock import Mock

import pytest

from techdoc_translator.cancellation import CancellationToken, run_cancellable
from techdoc_translator.translation_errors import TranslationCancelledError


class TestCancellationToken:
    """Test the CancellationToken class."""

    def test_initial_state(self):
        token = CancellationToken()
        assert not token.is_cancelled
        token.raise_if_cancelled()

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()

        assert token.is_cancelled
        with pytest.raises(TranslationCancelledError, match="Translation cancelled"):
            token.raise_if_cancelled()

    def test_callbacks_run_once(self):
        token = CancellationToken()
        callback = Mock()
        token.register(callback)

        token.cancel()
        token.cancel()

        callback.assert_called_once_with()

    def test_register_after_cancel_runs_immediately(self):
        token = CancellationToken()
        token.cancel()
        callback = Mock()

        token.register(callback)

        callback.assert_called_once_with()

    def test_unregister(self):
        token = CancellationToken()
        callback = Mock()
        unregister = token.register(callback)

        unregister()
        unregister()
        token.cancel()

        callback.assert_not_called()

    def test_failing_callback_does_not_stop_others(self):
        token = CancellationToken()
        second = Mock()
        token.register(Mock(side_effect=OSError("already closed")))
        token.register(second)

        token.cancel()

        second.assert_called_once_with()
        assert token.is_cancelled

    def test_wait(self):
        token = CancellationToken()
        assert token.wait(0.01) is False
        token.cancel()
        assert token.wait(10) is True


class TestRunCancellable:
    """Test the run_cancellable helper."""

    def test_without_token(self):
        assert run_cancellable(None, lambda a, b=0: a + b, 1, b=2) == 3

    def test_returns_result(self):
        assert run_cancellable(CancellationToken(), lambda text: text.upper(), "abc") == "ABC"

    def test_propagates_exception(self):
        def fail():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            run_cancellable(CancellationToken(), fail)

    def test_precancelled_token(self):
        token = CancellationToken()
        token.cancel()
        func = Mock()

        with pytest.raises(TranslationCancelledError):
            run_cancellable(token, func)
        func.assert_not_called()

    def test_cancel_releases_caller(self):
        """Cancelling from another thread returns control before the call finishes."""
        token = CancellationToken()
        release = threading.Event()
        started = threading.Event()

        def blocking():
            started.set()
            release.wait(10)
            return "late"

        def cancel_when_started():
            started.wait(10)
            token.cancel()

        canceller = threading.Thread(target=cancel_when_started)
        canceller.start()
        begin = time.monotonic()
        try:
            with pytest.raises(TranslationCancelledError):
                run_cancellable(token, blocking)
            assert time.monotonic() - begin < 5
        finally:
            release.set()
            canceller.join()
