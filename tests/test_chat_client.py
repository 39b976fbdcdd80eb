"""Tests for the OpenAI-compatible streaming client."""

import json

import httpx
import pytest

from sheetmatch.llm import AssistantError, ChatCompletionsClient, ChatMessage


def sse(*chunks: str) -> bytes:
    """Encode content deltas as a server-sent event stream."""
    events = [
        "data: " + json.dumps({"choices": [{"delta": {"content": chunk}}]})
        for chunk in chunks
    ]
    events.append("data: [DONE]")
    return ("\n\n".join(events) + "\n\n").encode()


def make_client(handler, base_url="https://llm.test/v1") -> ChatCompletionsClient:
    return ChatCompletionsClient(
        api_key="sk-test",
        base_url=base_url,
        model="test-model",
        max_tokens=256,
        transport=httpx.MockTransport(handler),
    )


class TestCompletionsUrl:
    """Tests for endpoint normalization."""

    def test_appends_path_to_api_root(self):
        """Test that an API root gets the completions path."""
        client = ChatCompletionsClient(api_key="k", base_url="https://llm.test/v1/", model="m")

        assert client.url == "https://llm.test/v1/chat/completions"

    def test_full_endpoint_kept(self):
        """Test that a full endpoint URL is used as given."""
        client = ChatCompletionsClient(
            api_key="k", base_url="https://llm.test/v1/chat/completions", model="m"
        )

        assert client.url == "https://llm.test/v1/chat/completions"


class TestStreamChat:
    """Tests for stream_chat."""

    def test_yields_content_deltas(self):
        """Test that deltas are yielded in order."""

        def handler(request):
            return httpx.Response(200, content=sse("Hel", "lo"))

        chunks = list(make_client(handler).stream_chat([ChatMessage("user", "hi")]))

        assert chunks == ["Hel", "lo"]

    def test_request_payload(self):
        """Test the request URL, headers and body."""
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=sse("ok"))

        list(make_client(handler).stream_chat([ChatMessage("user", "hi")], system="Be brief"))

        assert seen["url"] == "https://llm.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["stream"] is True
        assert seen["body"]["model"] == "test-model"
        assert seen["body"]["max_tokens"] == 256
        assert seen["body"]["messages"] == [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "hi"},
        ]

    def test_stops_at_done(self):
        """Test that events after [DONE] are ignored."""
        body = sse("a") + b'data: {"choices": [{"delta": {"content": "late"}}]}\n\n'

        def handler(request):
            return httpx.Response(200, content=body)

        assert list(make_client(handler).stream_chat([ChatMessage("user", "hi")])) == ["a"]

    def test_skips_unparsable_and_empty_chunks(self):
        """Test that broken chunks and role-only deltas produce nothing."""
        body = (
            b": keep-alive\n\n"
            b"data: {not json}\n\n"
            b'data: {"choices": [{"delta": {"role": "assistant"}}]}\n\n'
            b'data: {"choices": [{"delta": {"content": "x"}}]}\n\n'
            b"data: [DONE]\n\n"
        )

        def handler(request):
            return httpx.Response(200, content=body)

        assert list(make_client(handler).stream_chat([ChatMessage("user", "hi")])) == ["x"]

    def test_error_status(self):
        """Test that an error response carries status and body."""

        def handler(request):
            return httpx.Response(401, content=b'{"error": "bad key"}')

        with pytest.raises(AssistantError) as exc_info:
            list(make_client(handler).stream_chat([ChatMessage("user", "hi")]))

        assert "API Error: 401 Unauthorized" in str(exc_info.value)
        assert "bad key" in str(exc_info.value)

    def test_transport_failure(self):
        """Test that connection errors are wrapped."""

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(AssistantError, match="failed"):
            list(make_client(handler).stream_chat([ChatMessage("user", "hi")]))
