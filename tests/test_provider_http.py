"""Tests for the httpx-based Anthropic and Ollama adapters."""

import json

import httpx
import pytest

from generation_dispatch.errors import ProviderError, UnsupportedCapability
from generation_dispatch.providers.anthropic import AnthropicProvider
from generation_dispatch.providers.base import CompletionCall
from generation_dispatch.providers.ollama import OllamaProvider


def _call(**overrides):
    base = dict(
        model="test-model",
        prompt="hello",
        temperature=0.7,
        max_tokens=64,
        stop=("\n",),
        system="sys",
    )
    base.update(overrides)
    return CompletionCall(**base)


def _client(handler, base_url):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)


class _Recorder:
    def __init__(self, status=200, body=None):
        self.status = status
        self.body = body
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status, json=self.body)
        return httpx.Response(self.status, text=self.body or "")

    @property
    def payload(self):
        return json.loads(self.requests[-1].content)


@pytest.mark.asyncio
async def test_anthropic_invoke_joins_text_blocks():
    handler = _Recorder(
        body={
            "content": [
                {"type": "text", "text": "Hello "},
                {"type": "tool_use", "id": "x"},
                {"type": "text", "text": "there"},
            ]
        }
    )
    provider = AnthropicProvider(api_key="k", client=_client(handler, "https://api.anthropic.com/v1"))

    text = await provider.invoke(_call())

    assert text == "Hello there"
    request = handler.requests[0]
    assert request.url.path == "/v1/messages"
    assert handler.payload == {
        "model": "test-model",
        "max_tokens": 64,
        "temperature": 0.7,
        "messages": [{"role": "user", "content": "hello"}],
        "system": "sys",
        "stop_sequences": ["\n"],
    }
    await provider.aclose()


@pytest.mark.asyncio
async def test_anthropic_rejects_penalties():
    handler = _Recorder(body={"content": []})
    provider = AnthropicProvider(api_key="k", client=_client(handler, "https://api.anthropic.com/v1"))

    with pytest.raises(UnsupportedCapability):
        await provider.invoke(_call(frequency_penalty=0.5))

    assert handler.requests == []


@pytest.mark.asyncio
async def test_anthropic_structured_unsupported():
    provider = AnthropicProvider(api_key="k", client=_client(_Recorder(), "https://api.anthropic.com/v1"))

    assert provider.supports_structured is False
    with pytest.raises(UnsupportedCapability):
        await provider.invoke_structured(_call(), {"type": "object"}, "Thing")


@pytest.mark.parametrize("status,retryable", [(429, True), (529, True), (400, False), (401, False)])
@pytest.mark.asyncio
async def test_anthropic_status_errors(status, retryable):
    provider = AnthropicProvider(
        api_key="k",
        client=_client(_Recorder(status=status, body="nope"), "https://api.anthropic.com/v1"),
    )

    with pytest.raises(ProviderError) as exc:
        await provider.invoke(_call())

    assert exc.value.code == f"anthropic_http_{status}"
    assert exc.value.retryable is retryable
    assert exc.value.details["status_code"] == status


@pytest.mark.asyncio
async def test_anthropic_connection_error_is_retryable():
    def _handler(request):
        raise httpx.ConnectError("refused", request=request)

    provider = AnthropicProvider(api_key="k", client=_client(_handler, "https://api.anthropic.com/v1"))

    with pytest.raises(ProviderError) as exc:
        await provider.invoke(_call())

    assert exc.value.code == "anthropic_connection"
    assert exc.value.retryable is True


@pytest.mark.asyncio
async def test_ollama_invoke_sends_options():
    handler = _Recorder(body={"response": "hi there", "done": True})
    provider = OllamaProvider(client=_client(handler, "http://localhost:11434"))

    text = await provider.invoke(_call(frequency_penalty=0.1, presence_penalty=0.2))

    assert text == "hi there"
    assert handler.requests[0].url.path == "/api/generate"
    assert handler.payload == {
        "model": "test-model",
        "prompt": "hello",
        "stream": False,
        "system": "sys",
        "options": {
            "temperature": 0.7,
            "num_predict": 64,
            "frequency_penalty": 0.1,
            "presence_penalty": 0.2,
            "stop": ["\n"],
        },
    }
    await provider.aclose()


@pytest.mark.asyncio
async def test_ollama_structured_sets_format():
    handler = _Recorder(body={"response": '{"name": "x"}'})
    provider = OllamaProvider(client=_client(handler, "http://localhost:11434"))
    schema = {"type": "object", "properties": {"name": {"type": "string"}}}

    value = await provider.invoke_structured(_call(), schema, "Thing")

    assert value == {"name": "x"}
    assert handler.payload["format"] == schema


@pytest.mark.asyncio
async def test_ollama_structured_invalid_json_is_retryable():
    handler = _Recorder(body={"response": "not json"})
    provider = OllamaProvider(client=_client(handler, "http://localhost:11434"))

    with pytest.raises(ProviderError) as exc:
        await provider.invoke_structured(_call(), {"type": "object"}, "Thing")

    assert exc.value.code == "invalid_structured_output"
    assert exc.value.retryable is True


@pytest.mark.asyncio
async def test_ollama_server_error_is_retryable():
    provider = OllamaProvider(client=_client(_Recorder(status=503, body="loading"), "http://localhost:11434"))

    with pytest.raises(ProviderError) as exc:
        await provider.invoke(_call())

    assert exc.value.retryable is True
    assert exc.value.message == "loading"
