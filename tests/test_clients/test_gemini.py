"""
Tests for the Gemini streaming client.
"""

import json

import httpx
import pytest

from dialog_ledger.clients import (
    AuthenticationError,
    ClientError,
    GeminiClient,
    RateLimitError,
    RetryableError,
)

BASE_URL = "https://generativelanguage.test/v1beta"


def sse_body(*texts):
    events = [
        "data: "
        + json.dumps({"candidates": [{"content": {"parts": [{"text": text}]}}]})
        for text in texts
    ]
    return ("\r\n\r\n".join(events) + "\r\n\r\n").encode()


def make_client(handler, **kwargs):
    client = GeminiClient(api_key="test-key", base_url=BASE_URL, **kwargs)
    client._http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url=BASE_URL,
        headers={"x-goog-api-key": "test-key"},
    )
    return client


async def collect(client, prompt="Explain recursion"):
    return [fragment async for fragment in client.generate(prompt)]


class TestGeminiClientInit:
    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="API key is required"):
            GeminiClient(api_key="")

    def test_defaults(self):
        client = GeminiClient(api_key="test-key")
        assert client.provider_name == "gemini"
        assert client.model == "gemini-1.5-flash"
        assert client.max_output_tokens is None

    def test_prepare_request(self):
        client = GeminiClient(api_key="test-key", max_output_tokens=256)

        request = client._prepare_request("hello")

        assert request["contents"] == [{"role": "user", "parts": [{"text": "hello"}]}]
        assert request["generationConfig"] == {"maxOutputTokens": 256}


class TestGeminiStreaming:
    @pytest.mark.asyncio
    async def test_streams_fragments(self):
        captured = {}

        def handler(request):
            captured["url"] = request.url
            captured["headers"] = request.headers
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, content=sse_body("Recursion ", "is neat."))

        client = make_client(handler, model="gemini-test")

        fragments = await collect(client)

        assert fragments == ["Recursion ", "is neat."]
        assert captured["url"].path == "/v1beta/models/gemini-test:streamGenerateContent"
        assert captured["url"].params["alt"] == "sse"
        assert captured["headers"]["x-goog-api-key"] == "test-key"
        assert captured["body"]["contents"][0]["parts"][0]["text"] == "Explain recursion"
        await client.close()

    @pytest.mark.asyncio
    async def test_ignores_events_without_text(self):
        body = (
            b'data: {"candidates": []}\r\n\r\n'
            b": keep-alive\r\n\r\n"
            + sse_body("only this")
        )
        client = make_client(lambda request: httpx.Response(200, content=body))

        assert await collect(client) == ["only this"]

    @pytest.mark.asyncio
    async def test_malformed_event(self):
        client = make_client(
            lambda request: httpx.Response(200, content=b"data: {not json\r\n\r\n")
        )

        with pytest.raises(ClientError, match="Malformed stream event"):
            await collect(client)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,error_type",
        [
            (401, AuthenticationError),
            (403, AuthenticationError),
            (429, RateLimitError),
            (503, RetryableError),
            (400, ClientError),
        ],
    )
    async def test_http_errors(self, status_code, error_type):
        client = make_client(
            lambda request: httpx.Response(
                status_code, json={"error": {"message": "nope"}}
            )
        )

        with pytest.raises(error_type) as exc_info:
            await collect(client)

        assert exc_info.value.details["status_code"] == status_code
        assert "nope" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(ClientError) as exc_info:
            await collect(client)

        assert exc_info.value.details["error_type"] == "ConnectError"
