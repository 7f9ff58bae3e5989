#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Test suite for api_clients module.
"""

import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
import requests

from techdoc_translator.api_clients import (
    TranslationAPIClient,
    extract_error_message,
    is_retryable_error,
    parse_completion,
)
from techdoc_translator.cancellation import CancellationToken
from techdoc_translator.common_constants import CONNECTION_TIMEOUT
from techdoc_translator.http_transport import AbortableHTTPAdapter
from techdoc_translator.translation_errors import (
    APIClientError,
    APIConnectionError,
    APIHTTPError,
    APIResponseFormatError,
    APITimeoutError,
    TranslationCancelledError,
)
from techdoc_translator.usage_tracker import UsageTracker


@pytest.fixture
def session():
    """Mock requests session returned by the session factory"""
    return Mock()


@pytest.fixture
def sleeps():
    """Records backoff delays instead of sleeping"""
    return []


@pytest.fixture
def slow_server():
    """Local HTTP server that reads the request and stays silent until the test ends"""
    received = threading.Event()
    release = threading.Event()

    class SilentHandler(BaseHTTPRequestHandler):
        def do_POST(self):
            self.rfile.read(int(self.headers.get("Content-Length", 0)))
            received.set()
            release.wait(10)

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), SilentHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield SimpleNamespace(url=f"http://127.0.0.1:{server.server_address[1]}", received=received)
    finally:
        release.set()
        server.shutdown()
        server.server_close()


@pytest.fixture
def client(config_manager, session, sleeps):
    """Client with a mock session and recorded backoff"""
    return TranslationAPIClient(
        config_manager=config_manager,
        session_factory=lambda: session,
        sleep=sleeps.append,
        usage_tracker=UsageTracker(),
    )


class TestBuildRequest:
    """Test request construction."""

    def test_template_prompt(self, client):
        body = client.build_request("Hello world", "Japanese")

        assert body["model"] == "local-model"
        assert body["temperature"] == 0.3
        assert body["max_tokens"] == 10000
        assert body["stream"] is False
        assert len(body["messages"]) == 1
        assert body["messages"][0]["role"] == "user"
        content = body["messages"][0]["content"]
        assert content.endswith("Original text:\nHello world")
        assert "Japanese" in content

    def test_overrides(self, client):
        body = client.build_request("text", "English", model_name="other-model", temperature=0.7, max_tokens=50)
        assert body["model"] == "other-model"
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 50

    @pytest.mark.parametrize("model_name", ["plamo-2-translate", "PLaMo-2-Translate@8bit", "mlx/plamo-2-translate-v2"])
    def test_bilingual_prompt_for_plamo(self, client, model_name):
        body = client.build_request("Install the package.", "Japanese", model_name=model_name)

        assert body["messages"][0]["content"] == (
            "<|plamo:op|>dataset\n"
            "translation\n"
            "<|plamo:op|>input lang=English\n"
            "Install the package.\n"
            "<|plamo:op|>output lang=Japanese"
        )

    def test_bilingual_prompt_detects_source(self, client):
        """Source language comes from the text, not from the target."""
        body = client.build_request("これはテストです", "English", model_name="plamo-2-translate")
        content = body["messages"][0]["content"]
        assert "<|plamo:op|>input lang=Japanese" in content
        assert content.endswith("<|plamo:op|>output lang=English")


class TestTranslate:
    """Test translate and single requests."""

    def test_success(self, client, session, make_response, mock_api_response):
        session.post.return_value = make_response(200, mock_api_response)

        result = client.translate("Hallo Welt", "English")

        assert result == "This is the translated text."
        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "http://127.0.0.1:1234/v1/chat/completions"
        assert kwargs["timeout"] == (float(CONNECTION_TIMEOUT), 600.0)
        assert kwargs["headers"] == {"Content-Type": "application/json"}
        assert kwargs["json"]["messages"][0]["content"].endswith("Hallo Welt")
        session.close.assert_called()

    def test_usage_tracked(self, client, session, make_response, mock_api_response):
        session.post.return_value = make_response(200, mock_api_response)
        client.translate("text", "English")
        assert client.usage_tracker.get_summary()["total_tokens"] == 225

    def test_api_url_variants(self, client, session, make_response, mock_api_response):
        session.post.return_value = make_response(200, mock_api_response)

        for url in ("http://server:8000", "http://server:8000/", "http://server:8000/v1", "http://server:8000/v1/chat/completions"):
            client.translate("text", "English", api_url=url)
            assert session.post.call_args[0][0] == "http://server:8000/v1/chat/completions"

    def test_api_key_header(self, config_manager, session, make_response, mock_api_response):
        config_manager.update_config({"api": {"api_key": "secret"}})
        session.post.return_value = make_response(200, mock_api_response)
        client = TranslationAPIClient(config_manager=config_manager, session_factory=lambda: session)

        client.translate("text", "English")

        assert session.post.call_args[1]["headers"]["Authorization"] == "Bearer secret"

    def test_response_format_error(self, client, session, make_response, sleeps):
        """An unexpected body is never retried."""
        session.post.return_value = make_response(200, {"result": "nothing"})

        with pytest.raises(APIResponseFormatError):
            client.translate("text", "English")
        assert session.post.call_count == 1
        assert sleeps == []

    def test_non_string_content(self, client, session, make_response):
        session.post.return_value = make_response(200, {"choices": [{"message": {"content": None}}]})
        with pytest.raises(APIResponseFormatError):
            client.translate("text", "English")

    def test_invalid_json(self, client, session, make_response):
        session.post.return_value = make_response(200, None, text="<html>")
        with pytest.raises(APIResponseFormatError):
            client.translate("text", "English")

    def test_empty_content_is_valid(self, client, session, make_response):
        session.post.return_value = make_response(200, {"choices": [{"message": {"content": ""}}]})
        assert client.translate("text", "English") == ""


class TestRetry:
    """Test the retry policy."""

    def test_client_error_not_retried(self, client, session, make_response, sleeps):
        """HTTP 401 leads to exactly one attempt."""
        session.post.return_value = make_response(401, {"error": {"message": "Invalid API key"}})

        with pytest.raises(APIClientError) as exc_info:
            client.translate("text", "English")

        assert session.post.call_count == 1
        assert sleeps == []
        assert exc_info.value.status_code == 401
        assert "Invalid API key" in exc_info.value.message
        assert exc_info.value.kind == "client-error"

    @pytest.mark.parametrize("status_code", [400, 403])
    def test_other_client_errors(self, client, session, make_response, status_code):
        session.post.return_value = make_response(status_code, {"error": "bad request"})
        with pytest.raises(APIClientError):
            client.translate("text", "English")
        assert session.post.call_count == 1

    def test_server_error_retried_with_backoff(self, client, session, make_response, sleeps):
        """HTTP 500 is retried up to the configured attempts with growing delays."""
        session.post.return_value = make_response(500, None, text="Internal Server Error")

        with pytest.raises(APIConnectionError) as exc_info:
            client.translate("text", "English")

        assert session.post.call_count == 3
        assert sleeps == [1.0, 2.0]
        assert all(later > earlier for earlier, later in zip(sleeps, sleeps[1:]))
        assert "Internal Server Error" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, APIHTTPError)

    def test_retry_attempts_and_delay_configurable(self, config_manager, session, make_response):
        sleeps = []
        client = TranslationAPIClient(
            config_manager=config_manager,
            retry_attempts=4,
            retry_delay=0.5,
            session_factory=lambda: session,
            sleep=sleeps.append,
        )
        session.post.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(APIConnectionError):
            client.translate("text", "English")

        assert session.post.call_count == 4
        assert sleeps == [0.5, 1.0, 2.0]

    def test_recovers_after_transient_error(self, client, session, make_response, mock_api_response, sleeps):
        session.post.side_effect = [
            requests.exceptions.ConnectionError("refused"),
            make_response(503, {"error": {"message": "loading model"}}),
            make_response(200, mock_api_response),
        ]

        assert client.translate("text", "English") == "This is the translated text."
        assert session.post.call_count == 3
        assert sleeps == [1.0, 2.0]

    def test_timeout(self, client, session, sleeps):
        """Timeouts are retried and surface as APITimeoutError."""
        session.post.side_effect = requests.exceptions.ReadTimeout("read timed out")

        with pytest.raises(APITimeoutError) as exc_info:
            client.translate("text", "English")

        assert session.post.call_count == 3
        assert exc_info.value.kind == "api-timeout"

    def test_cancelled_token_stops_immediately(self, client, session):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(TranslationCancelledError):
            client.translate("text", "English", cancel_token=token)
        session.post.assert_not_called()

    def test_cancel_during_attempt_not_retried(self, client, session, sleeps):
        """A request failing because the token was cancelled is not retried."""
        token = CancellationToken()

        def cancel_then_fail(*args, **kwargs):
            token.cancel()
            raise requests.exceptions.ConnectionError("connection closed")

        session.post.side_effect = cancel_then_fail

        with pytest.raises(TranslationCancelledError):
            client.translate("text", "English", cancel_token=token)

        assert session.post.call_count == 1
        assert sleeps == []

    def test_abortable_adapter_mounted(self, client, session, make_response):
        session.post.return_value = make_response(200, {"choices": [{"message": {"content": "ok"}}]})

        client.translate("text", "English", cancel_token=CancellationToken())

        mounted = {call[0][0]: call[0][1] for call in session.mount.call_args_list}
        assert set(mounted) == {"http://", "https://"}
        assert isinstance(mounted["http://"], AbortableHTTPAdapter)
        assert mounted["http://"] is mounted["https://"]
        session.close.assert_called_once_with()

    def test_cancel_tears_down_request_to_slow_server(self, config_manager, slow_server, monkeypatch):
        """Cancelling releases the caller and ends the request thread while the server is still silent."""
        for name in ("HTTP_PROXY", "http_proxy", "ALL_PROXY", "all_proxy"):
            monkeypatch.delenv(name, raising=False)

        client = TranslationAPIClient(config_manager=config_manager, retry_attempts=1, timeout=30, usage_tracker=UsageTracker())
        token = CancellationToken()
        before = set(threading.enumerate())

        def cancel_when_received():
            slow_server.received.wait(5)
            token.cancel()

        canceller = threading.Thread(target=cancel_when_received)
        canceller.start()
        started = time.monotonic()
        with pytest.raises(TranslationCancelledError):
            client.translate("text", "English", api_url=slow_server.url, cancel_token=token)
        canceller.join()

        assert slow_server.received.is_set()
        assert time.monotonic() - started < 5

        def request_threads():
            return [t for t in threading.enumerate() if t.name == "translation-request" and t not in before]

        deadline = time.monotonic() + 2
        while request_threads() and time.monotonic() < deadline:
            time.sleep(0.05)
        assert request_threads() == []

    def test_backoff_wait_cancelled(self, config_manager, session, make_response):
        """Without an injected sleep the backoff waits on the token."""
        waits = []

        class CancelDuringWait(CancellationToken):
            def wait(self, timeout=None):
                waits.append(timeout)
                self.cancel()
                return super().wait(timeout)

        token = CancelDuringWait()
        client = TranslationAPIClient(config_manager=config_manager, retry_delay=30, session_factory=lambda: session)
        session.post.return_value = make_response(502, None, text="Bad Gateway")

        with pytest.raises(TranslationCancelledError):
            client.translate("text", "English", cancel_token=token)
        assert session.post.call_count == 1
        assert waits == [30.0]


class TestHelpers:
    """Test error parsing helpers."""

    def test_error_message_object(self, make_response):
        assert extract_error_message(make_response(500, {"error": {"message": "boom"}})) == "boom"

    def test_error_message_string(self, make_response):
        assert extract_error_message(make_response(500, {"error": "boom"})) == "boom"

    def test_error_message_raw_text(self, make_response):
        assert extract_error_message(make_response(502, None, text=" Bad Gateway \n")) == "Bad Gateway"

    def test_error_message_status(self, make_response):
        assert extract_error_message(make_response(504, None)) == "Status 504"

    def test_parse_completion(self):
        assert parse_completion({"choices": [{"message": {"content": "ok"}}]}) == "ok"
        for data in ({}, {"choices": []}, {"choices": [{}]}, {"choices": [{"message": {}}]}, ["choices"]):
            with pytest.raises(APIResponseFormatError):
                parse_completion(data)

    def test_is_retryable_error(self):
        assert is_retryable_error(APIConnectionError("x"))
        assert is_retryable_error(APITimeoutError("x"))
        assert is_retryable_error(APIHTTPError("x", 500))
        assert not is_retryable_error(APIClientError("x", 401))
        assert not is_retryable_error(APIResponseFormatError("x"))
        assert not is_retryable_error(TranslationCancelledError())
        assert not is_retryable_error(ValueError("x"))

        token = CancellationToken()
        token.cancel()
        assert not is_retryable_error(APIConnectionError("x"), token)


class TestConnectionAndModels:
    """Test connectivity probing and model listing."""

    def test_connection_success(self, client, session, make_response):
        session.post.return_value = make_response(200, {"choices": [{"message": {"content": "H"}}]})

        assert client.test_connection() is True
        body = session.post.call_args[1]["json"]
        assert body["max_tokens"] == 1
        assert body["messages"] == [{"role": "user", "content": "Hello"}]

    def test_connection_failure_status(self, client, session, make_response):
        session.post.return_value = make_response(500, None, text="down")
        assert client.test_connection() is False
        assert session.post.call_count == 1

    def test_connection_network_error(self, client, session):
        session.post.side_effect = requests.exceptions.ConnectionError("refused")
        assert client.test_connection("http://other:1234", "model-x") is False
        assert session.post.call_count == 1
        assert session.post.call_args[0][0] == "http://other:1234/v1/chat/completions"

    @patch("techdoc_translator.api_clients.requests.get")
    def test_fetch_models(self, mock_get, client, make_response):
        mock_get.return_value = make_response(
            200,
            {
                "object": "list",
                "data": [
                    {"id": "plamo-2-translate", "object": "model", "created": 1700000000, "owned_by": "pfnet"},
                    {"id": "qwen3-8b", "object": "model"},
                    {"object": "model"},
                ],
            },
        )

        models = client.fetch_available_models("http://server:1234/")

        assert [m.id for m in models] == ["plamo-2-translate", "qwen3-8b"]
        assert models[0].owned_by == "pfnet"
        assert models[0].created == 1700000000
        assert models[1].created is None
        mock_get.assert_called_once()
        assert mock_get.call_args[0][0] == "http://server:1234/v1/models"
        assert mock_get.call_args[1]["timeout"] == 10.0

    @patch("techdoc_translator.api_clients.requests.get")
    def test_fetch_models_failure(self, mock_get, client, make_response):
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")
        assert client.fetch_available_models() == []

        mock_get.side_effect = None
        mock_get.return_value = make_response(404, None, text="Not Found")
        assert client.fetch_available_models() == []

        mock_get.return_value = make_response(200, None, text="not json")
        assert client.fetch_available_models() == []

        mock_get.return_value = make_response(200, {"data": "nope"})
        assert client.fetch_available_models() == []
