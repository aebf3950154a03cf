"""Tests for the local (Ollama-style) adapter."""

import asyncio
import base64
import json

import httpx
import pytest

from labeldispatch.adapters.local_adapter import LocalAdapter
from labeldispatch.errors import ContentResolutionError, ProviderDispatchError
from labeldispatch.types import InputType, RequestOptions


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeOllama:
    """Mock transport handler recording every request it sees."""

    def __init__(self, status: int = 200, body: dict | None = None, image: bytes = b"GIF89a"):
        self.status = status
        self.body = {"response": "ok"} if body is None else body
        self.image = image
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            return httpx.Response(200, content=self.image, headers={"content-type": "image/gif"})
        return httpx.Response(self.status, json=self.body)

    @property
    def generate_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    def last_body(self) -> dict:
        return json.loads(self.generate_requests[-1].content)


def _adapter(server: FakeOllama, **kwargs) -> LocalAdapter:
    return LocalAdapter(transport=httpx.MockTransport(server), **kwargs)


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestLocalDispatch:
    def test_no_api_key_needed(self):
        server = FakeOllama()
        result = asyncio.run(_adapter(server).dispatch("hello"))

        assert result == "ok"
        assert "authorization" not in server.generate_requests[0].headers

    def test_text_prompt_composition(self):
        server = FakeOllama()
        asyncio.run(_adapter(server).dispatch("The food was great.", prompt="Label sentiment."))

        assert server.last_body() == {
            "model": "llama3",
            "stream": False,
            "prompt": "Label sentiment.\n\nText to analyze:\nThe food was great.",
        }

    def test_default_instruction(self):
        server = FakeOllama()
        asyncio.run(_adapter(server).dispatch("hello"))

        assert server.last_body()["prompt"] == (
            "You are a helpful data labeling assistant.\n\nText to analyze:\nhello"
        )

    def test_options_nested(self):
        server = FakeOllama()
        asyncio.run(
            _adapter(server).dispatch(
                "hello",
                model_id="mistral",
                options=RequestOptions(temperature=0.2, max_tokens=64),
            )
        )

        body = server.last_body()
        assert body["model"] == "mistral"
        assert body["options"] == {"temperature": 0.2, "num_predict": 64}

    def test_default_endpoint(self):
        server = FakeOllama()
        asyncio.run(_adapter(server).dispatch("hello"))

        assert str(server.generate_requests[0].url) == "http://localhost:11434/api/generate"

    def test_trailing_slash_normalized(self):
        server = FakeOllama()
        adapter = _adapter(server)
        asyncio.run(adapter.dispatch("hello", base_url="http://host:1234/"))
        asyncio.run(adapter.dispatch("hello", base_url="http://host:1234"))

        first, second = (str(r.url) for r in server.generate_requests)
        assert first == second == "http://host:1234/api/generate"

    def test_configured_base_url(self):
        server = FakeOllama()
        asyncio.run(_adapter(server, base_url="http://gpu-box:11434/").dispatch("hello"))

        assert str(server.generate_requests[0].url) == "http://gpu-box:11434/api/generate"

    def test_default_timeout_applied(self):
        server = FakeOllama()
        asyncio.run(_adapter(server).dispatch("hello"))

        assert set(server.generate_requests[0].extensions["timeout"].values()) == {120.0}

    def test_explicit_none_disables_timeout(self):
        server = FakeOllama()
        asyncio.run(_adapter(server, timeout=30.0).dispatch("hello", timeout=None))

        assert set(server.generate_requests[0].extensions["timeout"].values()) == {None}

    def test_per_call_timeout_overrides_default(self):
        server = FakeOllama()
        asyncio.run(_adapter(server, timeout=30.0).dispatch("hello", timeout=2.5))

        assert set(server.generate_requests[0].extensions["timeout"].values()) == {2.5}

    def test_missing_response_field_returns_empty_string(self):
        server = FakeOllama(body={"done": True})
        assert asyncio.run(_adapter(server).dispatch("hello")) == ""


class TestLocalImageDispatch:
    def test_inline_payload_sent_without_prefix(self):
        server = FakeOllama()
        payload = "data:image/png;base64,iVBORw0KGgo="
        asyncio.run(_adapter(server).dispatch(payload, input_type=InputType.IMAGE))

        body = server.last_body()
        assert body["images"] == ["iVBORw0KGgo="]
        assert body["prompt"] == "Describe this image"

    def test_prompt_replaces_instruction(self):
        server = FakeOllama()
        payload = "data:image/png;base64,iVBORw0KGgo="
        asyncio.run(
            _adapter(server).dispatch(payload, prompt="Count the cats.", input_type="image")
        )

        assert server.last_body()["prompt"] == "Count the cats."

    def test_external_url_fetched_and_encoded(self):
        server = FakeOllama(image=b"GIF89a-pixels")
        asyncio.run(
            _adapter(server).dispatch("https://cdn.example.org/a.gif", input_type="image")
        )

        assert [r.method for r in server.requests] == ["GET", "POST"]
        images = server.last_body()["images"]
        assert base64.b64decode(images[0]) == b"GIF89a-pixels"

    def test_unreachable_image(self):
        def handler(request):
            if request.method == "GET":
                return httpx.Response(404)
            return httpx.Response(200, json={"response": "ok"})

        adapter = LocalAdapter(transport=httpx.MockTransport(handler))
        with pytest.raises(ContentResolutionError):
            asyncio.run(adapter.dispatch("http://localhost:5173/a.png", input_type="image"))


class TestLocalErrors:
    def test_connection_refused_names_endpoint(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        adapter = LocalAdapter(transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderDispatchError) as exc_info:
            asyncio.run(adapter.dispatch("hello", base_url="http://localhost:11434"))

        assert "http://localhost:11434/api/generate" in str(exc_info.value)
        assert "Make sure it is running" in str(exc_info.value)

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        adapter = LocalAdapter(transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderDispatchError, match="timed out"):
            asyncio.run(adapter.dispatch("hello", timeout=0.1))

    def test_error_string_promoted(self):
        server = FakeOllama(status=404, body={"error": "model 'llama9' not found"})
        with pytest.raises(ProviderDispatchError) as exc_info:
            asyncio.run(_adapter(server).dispatch("hello", model_id="llama9"))

        assert exc_info.value.message == "model 'llama9' not found"
        assert exc_info.value.status_code == 404

    def test_undecodable_error_body(self):
        def handler(request):
            return httpx.Response(500, content=b"Internal Server Error")

        adapter = LocalAdapter(transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderDispatchError, match="^Local API Error$"):
            asyncio.run(adapter.dispatch("hello"))
