import json

import httpx
import pytest

from chat_core.domain.exceptions import (
    ApiError,
    NetworkError,
    QuotaExceededError,
    RateLimitError,
    StreamError,
    ValidationError,
)
from chat_core.domain.models import ChatMessage, ChatRequest
from chat_core.providers.gateway_client import GatewayClient
from chat_core.session.orchestrator import ChatSession
from chat_core.session.state import StreamState


class SettingsStub:
    gateway_api_key = "gw-test-key"
    gateway_base_url = "https://gateway.test/v1"
    http_timeout = 1.0
    stream_idle_timeout = 5.0


class FakeResponse:
    def __init__(self, status_code=200, chunks=(), body=b"", headers=None, error=None):
        self.status_code = status_code
        self.headers = headers or {"content-type": "text/event-stream"}
        self._chunks = list(chunks)
        self._body = body
        self._error = error
        self.text = ""

    @property
    def is_success(self):
        return 200 <= self.status_code < 300

    def read(self):
        self.text = self._body.decode("utf-8")
        return self._body

    def iter_bytes(self):
        for c in self._chunks:
            yield c
        if self._error is not None:
            raise self._error


class StreamContext:
    def __init__(self, response):
        self._response = response

    def __enter__(self):
        return self._response

    def __exit__(self, *args):
        return False


def _patch_client(monkeypatch, response, captured=None):
    class Client:
        def __init__(self, *a, **kw):
            if captured is not None:
                captured["timeout"] = kw.get("timeout")

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def stream(self, method, url, **kw):
            if captured is not None:
                captured.update(method=method, url=url, **kw)
            if isinstance(response, Exception):
                raise response
            return StreamContext(response)

    monkeypatch.setattr("httpx.Client", Client)


def _req():
    return ChatRequest(model="threat-doctor", messages=[ChatMessage(role="user", content="hi")])


def test_stream_request_payload(monkeypatch):
    captured = {}
    _patch_client(monkeypatch, FakeResponse(chunks=[b"data: [DONE]\n"]), captured)
    client = GatewayClient(SettingsStub(), system_prompt="You are ThreatDoctor.")
    with client.open_stream(_req()) as chunks:
        assert list(chunks) == [b"data: [DONE]\n"]
    assert captured["method"] == "POST"
    assert captured["url"] == "https://gateway.test/v1/chat/completions"
    assert captured["headers"]["Authorization"] == "Bearer gw-test-key"
    assert captured["json"] == {
        "model": "google/gemini-2.5-flash",
        "messages": [
            {"role": "system", "content": "You are ThreatDoctor."},
            {"role": "user", "content": "hi"},
        ],
        "stream": True,
    }
    assert captured["timeout"].read == 5.0


def test_default_system_prompt_is_loaded(monkeypatch):
    captured = {}
    _patch_client(monkeypatch, FakeResponse(), captured)
    with GatewayClient(SettingsStub()).open_stream(_req()) as chunks:
        list(chunks)
    system = captured["json"]["messages"][0]
    assert system["role"] == "system"
    assert system["content"].startswith("You are ThreatDoctor")


def test_missing_api_key():
    class NoKey(SettingsStub):
        gateway_api_key = None

    with pytest.raises(ValidationError):
        with GatewayClient(NoKey()).open_stream(_req()):
            pass


@pytest.mark.parametrize(
    "status, exc_type, text",
    [
        (429, RateLimitError, "Rate limits exceeded"),
        (402, QuotaExceededError, "Payment required"),
    ],
)
def test_rate_and_quota_errors(monkeypatch, status, exc_type, text):
    _patch_client(monkeypatch, FakeResponse(status_code=status))
    with pytest.raises(exc_type) as exc:
        with GatewayClient(SettingsStub()).open_stream(_req()):
            pass
    assert text in exc.value.message
    assert exc.value.http_status == status


def test_error_envelope_message(monkeypatch):
    body = json.dumps({"error": "AI gateway error"}).encode()
    _patch_client(monkeypatch, FakeResponse(status_code=500, body=body))
    with pytest.raises(ApiError) as exc:
        with GatewayClient(SettingsStub()).open_stream(_req()):
            pass
    assert exc.value.message == "AI gateway error"


def test_error_without_envelope(monkeypatch):
    _patch_client(monkeypatch, FakeResponse(status_code=503, body=b"<html>down</html>"))
    with pytest.raises(ApiError) as exc:
        with GatewayClient(SettingsStub()).open_stream(_req()):
            pass
    assert exc.value.message == "Request failed with status 503"


def test_redirect_is_not_a_stream(monkeypatch):
    _patch_client(monkeypatch, FakeResponse(status_code=307, body=b"<html>moved</html>"))
    with pytest.raises(ApiError) as exc:
        with GatewayClient(SettingsStub()).open_stream(_req()):
            pass
    assert exc.value.message == "Request failed with status 307"
    assert exc.value.http_status == 307


def test_redirect_fails_session_and_rolls_back(monkeypatch):
    class SessionSettings(SettingsStub):
        default_model = "threat-doctor"
        sse_max_buffer_chars = 1024 * 1024
        max_history_messages = 50

    _patch_client(monkeypatch, FakeResponse(status_code=307, body=b"<html>moved</html>"))
    cfg = SessionSettings()
    session = ChatSession(client=GatewayClient(cfg, system_prompt="sys"), cfg=cfg)
    assert session.send_message("hi") is False
    assert session.state == StreamState.FAILED
    assert session.messages == []
    assert session.notifications[-1].description == "Request failed with status 307"


def test_missing_body(monkeypatch):
    _patch_client(monkeypatch, FakeResponse(status_code=204))
    with pytest.raises(ApiError) as exc:
        with GatewayClient(SettingsStub()).open_stream(_req()):
            pass
    assert exc.value.message == "No response body"


def test_network_error(monkeypatch):
    _patch_client(monkeypatch, httpx.ConnectError("connection refused"))
    with pytest.raises(NetworkError):
        with GatewayClient(SettingsStub()).open_stream(_req()):
            pass


def test_read_timeout_becomes_stream_error(monkeypatch):
    response = FakeResponse(chunks=[b"data: x"], error=httpx.ReadTimeout("idle"))
    _patch_client(monkeypatch, response)
    received = []
    with pytest.raises(StreamError) as exc:
        with GatewayClient(SettingsStub()).open_stream(_req()) as chunks:
            for c in chunks:
                received.append(c)
    assert received == [b"data: x"]
    assert exc.value.code == "STREAM_IDLE_TIMEOUT"
