"""Tests for the OpenAI-compatible custom provider."""

import json

import httpx
import pytest

from src.assistant.models import LLMConfig, Provider
from src.assistant.providers.base import GenerationError
from src.assistant.providers.custom import CustomProvider, api_base


def _config(**overrides) -> LLMConfig:
    return LLMConfig(provider="custom", endpoint="http://vllm.test:8000", **overrides)


def _sse(*chunks: str, done: bool = True) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": c}}]}) + "\n\n" for c in chunks
    ]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


@pytest.mark.parametrize(
    ("endpoint", "expected"),
    [
        ("http://host:8000", "http://host:8000/v1"),
        ("http://host:8000/", "http://host:8000/v1"),
        ("http://host:8000/v1", "http://host:8000/v1"),
        ("http://host:8000/v1/", "http://host:8000/v1"),
    ],
)
def test_api_base(endpoint: str, expected: str) -> None:
    assert api_base(endpoint) == expected


async def test_fetch_models_parses_openai_list() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "http://vllm.test:8000/v1/models"
        return httpx.Response(200, json={"object": "list", "data": [{"id": "qwen-14b", "created": 1}]})

    result = await CustomProvider(transport=httpx.MockTransport(handler)).fetch_models(_config())
    assert result.success
    assert [m.name for m in result.models] == ["qwen-14b"]


async def test_bearer_token_sent_when_configured() -> None:
    headers: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        headers.update(request.headers)
        return httpx.Response(200, json={"data": []})

    provider = CustomProvider(transport=httpx.MockTransport(handler))
    await provider.fetch_models(_config(api_key="sk-test"))
    assert headers["authorization"] == "Bearer sk-test"


async def test_no_auth_header_without_key() -> None:
    headers: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        headers.update(request.headers)
        return httpx.Response(200, json={"data": []})

    await CustomProvider(transport=httpx.MockTransport(handler)).fetch_models(_config())
    assert "authorization" not in headers


async def test_fetch_models_wrong_shape() -> None:
    transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"models": []}))
    result = await CustomProvider(transport=transport).fetch_models(_config())
    assert not result.success


async def test_probe_resolves_model() -> None:
    transport = httpx.MockTransport(
        lambda r: httpx.Response(200, json={"data": [{"id": "a"}, {"id": "b"}]})
    )
    status = await CustomProvider(transport=transport).probe(_config(model="b"))
    assert status.connected
    assert status.provider == Provider.CUSTOM
    assert status.model == "b"


async def test_probe_unreachable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused")

    status = await CustomProvider(transport=httpx.MockTransport(handler)).probe(_config())
    assert status.connected is False
    assert status.error


async def test_stream_decodes_sse() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, content=_sse("Hel", "lo"))

    provider = CustomProvider(transport=httpx.MockTransport(handler))
    fragments = [f async for f in provider.stream("hi", [], [], _config(max_tokens=64))]

    assert fragments == ["Hel", "lo"]
    assert captured["url"] == "http://vllm.test:8000/v1/chat/completions"
    assert captured["body"]["stream"] is True
    assert captured["body"]["max_tokens"] == 64
    assert captured["body"]["messages"][-1] == {"role": "user", "content": "hi"}


async def test_stream_ignores_comments_and_bad_lines() -> None:
    body = b": keep-alive\n\ndata: {broken\n\n" + _sse("ok")
    transport = httpx.MockTransport(lambda r: httpx.Response(200, content=body))
    fragments = [f async for f in CustomProvider(transport=transport).stream("hi", [], [], _config())]
    assert fragments == ["ok"]


async def test_stream_stops_at_done_marker() -> None:
    body = _sse("a") + _sse("never", done=False)
    transport = httpx.MockTransport(lambda r: httpx.Response(200, content=body))
    fragments = [f async for f in CustomProvider(transport=transport).stream("hi", [], [], _config())]
    assert fragments == ["a"]


async def test_stream_http_error() -> None:
    transport = httpx.MockTransport(lambda r: httpx.Response(401))
    with pytest.raises(GenerationError, match="HTTP 401"):
        async for _ in CustomProvider(transport=transport).stream("hi", [], [], _config()):
            pass
