"""
Integration tests for the chat proxy HTTP API.

The FastAPI app runs in-process through TestClient; upstream providers
are replaced by a recording httpx.MockTransport.
"""

import logging
from contextlib import ExitStack

import httpx
import pytest
from fastapi.testclient import TestClient

from chat_proxy.core.config import ServiceSettings, config_from_dict
from chat_proxy.main import create_app


@pytest.fixture
def groq_ok(make_transport):
    return make_transport(
        lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "hello"}}]})
    )


@pytest.fixture
def make_client(gateway_config, service_settings):
    """Build a TestClient around an app wired to the given transport."""
    with ExitStack() as stack:

        def factory(transport, config=None, settings=None):
            app = create_app(
                gateway_config=config or gateway_config,
                service_settings=settings or service_settings,
                transport=transport,
            )
            return stack.enter_context(TestClient(app))

        yield factory


class TestMethodAndValidation:
    """Test request rejection paths."""

    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    def test_non_post_rejected(self, make_client, groq_ok, method):
        client = make_client(groq_ok)
        response = client.request(method, "/api/chat")

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}
        assert groq_ok.call_count == 0

    def test_unknown_provider(self, make_client, groq_ok):
        client = make_client(groq_ok)
        response = client.post(
            "/api/chat",
            json={"ai": "claude", "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 400
        assert "Unknown AI" in response.json()["error"]
        assert groq_ok.call_count == 0

    def test_missing_provider(self, make_client, groq_ok):
        client = make_client(groq_ok)
        response = client.post("/api/chat", json={"history": [{"role": "user", "content": "hi"}]})

        assert response.status_code == 400
        assert "Missing" in response.json()["error"]

    def test_invalid_history(self, make_client, groq_ok):
        client = make_client(groq_ok)
        response = client.post("/api/chat", json={"ai": "groq", "history": "hi"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid chat history provided"}
        assert groq_ok.call_count == 0

    def test_malformed_json(self, make_client, groq_ok):
        client = make_client(groq_ok)
        response = client.post(
            "/api/chat",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "JSON" in response.json()["error"]

    def test_missing_credential(self, make_client, groq_ok, unconfigured_config):
        client = make_client(groq_ok, config=unconfigured_config)
        response = client.post(
            "/api/chat",
            json={"ai": "groq", "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "GROQ_API_KEY not set"}
        assert groq_ok.call_count == 0


class TestBufferedChat:
    """Test buffered replies."""

    def test_groq_reply(self, make_client, groq_ok):
        client = make_client(groq_ok)
        response = client.post(
            "/api/chat",
            json={"ai": "groq", "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 200
        assert response.json() == {"response": "hello"}
        assert groq_ok.call_count == 1

    def test_legacy_grok_selector(self, make_client, groq_ok):
        client = make_client(groq_ok)
        response = client.post(
            "/api/chat",
            json={"ai": "grok", "messages": [{"sender": "user", "text": "hi"}]},
        )

        assert response.status_code == 200
        assert groq_ok.last_json()["messages"] == [{"role": "user", "content": "hi"}]

    def test_gemini_system_instruction(self, make_client, make_transport):
        transport = make_transport(
            lambda request: httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "hey"}]}}],
            })
        )
        client = make_client(transport)
        response = client.post(
            "/api/chat",
            json={
                "ai": "gemini",
                "messages": [
                    {"role": "system", "text": "be terse"},
                    {"role": "user", "text": "hi"},
                ],
            },
        )

        assert response.status_code == 200
        assert response.json() == {"response": "hey"}

        sent = transport.last_json()
        assert sent["systemInstruction"]["parts"][0]["text"] == "be terse"
        assert len(sent["contents"]) == 1
        assert sent["contents"][0]["role"] == "user"

    def test_gemini_blocked_is_success(self, make_client, make_transport):
        transport = make_transport(
            lambda request: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})
        )
        client = make_client(transport)
        response = client.post(
            "/api/chat",
            json={"ai": "gemini", "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 200
        assert "SAFETY" in response.json()["response"]

    def test_upstream_error_relayed(self, make_client, make_transport):
        transport = make_transport(lambda request: httpx.Response(503, text="rate limited"))
        client = make_client(transport)
        response = client.post(
            "/api/chat",
            json={"ai": "groq", "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 503
        assert response.json() == {"error": "Upstream API error", "details": "rate limited"}
        assert transport.call_count == 1

    def test_network_failure(self, make_client, make_transport):
        def refuse(request):
            raise httpx.ConnectError("connection refused")

        client = make_client(make_transport(refuse))
        response = client.post(
            "/api/chat",
            json={"ai": "groq", "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Server error", "details": "connection refused"}

    def test_unparseable_upstream_body(self, make_client, make_transport):
        transport = make_transport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        client = make_client(transport)
        response = client.post(
            "/api/chat",
            json={"ai": "groq", "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 500
        assert response.json()["error"] == "Server error"
        assert response.json()["details"]


class TestStreamedChat:
    """Test streamed passthrough."""

    def test_stream_endpoint(self, make_client, make_transport, make_stream):
        text = 'data: {"delta": "héllo"}\n\ndata: [DONE]\n\n'
        raw = text.encode("utf-8")
        split = raw.index("é".encode()) + 1
        stream = make_stream([raw[:split], raw[split:]])
        transport = make_transport(lambda request: httpx.Response(200, stream=stream))

        client = make_client(transport)
        response = client.post(
            "/api/chat/stream",
            json={"ai": "groq", "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/plain; charset=utf-8"
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["connection"] == "keep-alive"
        assert response.text == text
        assert transport.last_json()["stream"] is True
        assert stream.closed is True

    def test_stream_flag_in_body(self, make_client, make_transport, make_stream):
        stream = make_stream([b"data: {}\n\n"])
        transport = make_transport(lambda request: httpx.Response(200, stream=stream))

        client = make_client(transport)
        response = client.post(
            "/api/chat",
            json={"ai": "gemini", "stream": True, "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 200
        assert response.text == "data: {}\n\n"
        assert transport.requests[0].url.path.endswith(":streamGenerateContent")

    def test_stream_upstream_error(self, make_client, make_transport):
        transport = make_transport(lambda request: httpx.Response(503, text="rate limited"))
        client = make_client(transport)
        response = client.post(
            "/api/chat/stream",
            json={"ai": "groq", "history": [{"role": "user", "content": "hi"}]},
        )

        assert response.status_code == 503
        assert response.json() == {"error": "Upstream API error", "details": "rate limited"}

    def test_stream_rejects_non_post(self, make_client, groq_ok):
        client = make_client(groq_ok)
        response = client.get("/api/chat/stream")

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed"}


class TestServiceEndpoints:
    """Test health and provider listing."""

    def test_health(self, make_client, groq_ok):
        client = make_client(groq_ok)
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_providers(self, make_client, groq_ok, unconfigured_config):
        client = make_client(groq_ok, config=unconfigured_config)
        response = client.get("/api/providers")

        assert response.status_code == 200
        providers = {p["provider"]: p for p in response.json()["providers"]}
        assert set(providers) == {"groq", "gemini"}
        assert providers["groq"]["configured"] is False
        assert "api_key" not in providers["groq"]


class TestUpstreamClient:
    """Test logging and timeouts of upstream calls."""

    def test_gemini_key_not_logged(self, make_client, make_transport, caplog):
        caplog.set_level(logging.DEBUG)
        transport = make_transport(
            lambda request: httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": "hey"}]}}],
            })
        )
        client = make_client(transport)

        body = {"ai": "gemini", "history": [{"role": "user", "content": "hi"}]}
        assert client.post("/api/chat", json=body).status_code == 200
        assert transport.requests[0].url.params["key"] == "test-gemini-key"

        leaked = [r.getMessage() for r in caplog.records if "test-gemini-key" in r.getMessage()]
        assert leaked == []

    def test_service_timeout_applies_to_upstream(self, make_client, groq_ok):
        settings = ServiceSettings(otel_endpoint=None, cors_allow_origins=["*"], upstream_timeout=5.0)
        client = make_client(groq_ok, settings=settings)
        client.post("/api/chat", json={"ai": "groq", "history": [{"role": "user", "content": "hi"}]})

        timeout = groq_ok.requests[0].extensions["timeout"]
        assert timeout["read"] == 5.0
        assert timeout["connect"] == 5.0

    def test_provider_timeout_overrides_service_timeout(self, make_client, groq_ok):
        config = config_from_dict(
            {"providers": [{"provider": "groq", "timeout": 12}]},
            environ={"GROQ_API_KEY": "k"},
        )
        settings = ServiceSettings(otel_endpoint=None, cors_allow_origins=["*"], upstream_timeout=5.0)
        client = make_client(groq_ok, config=config, settings=settings)
        client.post("/api/chat", json={"ai": "groq", "history": [{"role": "user", "content": "hi"}]})

        assert groq_ok.requests[0].extensions["timeout"]["read"] == 12.0
