"""Tests for the response generator's provider dispatch and fallback."""

import httpx
import pytest

from src.assistant import providers
from src.assistant.generator import generate
from src.assistant.models import LLMConfig, MemoryItem, MemoryType
from src.assistant.providers import OllamaProvider
from src.assistant.providers.simulated import RISK_RESPONSE, WALLET_RESPONSE


class _BrokenStream(httpx.AsyncByteStream):
    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = chunks

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        raise httpx.ReadError("connection reset")


def _use_ollama(monkeypatch, handler) -> None:
    monkeypatch.setitem(
        providers._registry, "ollama", OllamaProvider(transport=httpx.MockTransport(handler))
    )


async def _collect(text: str, config: LLMConfig, memories=None) -> list[str]:
    return [f async for f in generate(text, [], memories or [], config)]


async def test_mock_generation() -> None:
    fragments = await _collect("钱包", LLMConfig(provider="mock"))
    assert "".join(fragments) == WALLET_RESPONSE


async def test_http_generation_passes_fragments_through(monkeypatch) -> None:
    body = b'{"response": "one "}\n{"response": "two", "done": true}\n'
    _use_ollama(monkeypatch, lambda r: httpx.Response(200, content=body))

    assert await _collect("hi", LLMConfig(provider="ollama")) == ["one ", "two"]


async def test_unreachable_endpoint_falls_back_to_canned(monkeypatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused")

    _use_ollama(monkeypatch, handler)

    fragments = await _collect("风险分析", LLMConfig(provider="ollama"))
    assert fragments == [RISK_RESPONSE]


async def test_mid_stream_failure_appends_canned_fragment(monkeypatch) -> None:
    stream = _BrokenStream([b'{"response": "partial "}\n'])
    _use_ollama(monkeypatch, lambda r: httpx.Response(200, stream=stream))

    fragments = await _collect("wallet", LLMConfig(provider="ollama"))
    assert fragments == ["partial ", WALLET_RESPONSE]


async def test_fallback_is_personalized(monkeypatch) -> None:
    _use_ollama(monkeypatch, lambda r: httpx.Response(503))
    memories = [MemoryItem(type=MemoryType.PREFERENCE, key="语言", value="中文", confidence=0.9)]

    fragments = await _collect("钱包", LLMConfig(provider="ollama"), memories)
    assert len(fragments) == 1
    assert "语言: 中文" in fragments[0]


async def test_unexpected_errors_propagate(monkeypatch) -> None:
    class _Exploding:
        name = "ollama"

        async def stream(self, *args):
            raise RuntimeError("bug")
            yield  # pragma: no cover

    monkeypatch.setitem(providers._registry, "ollama", _Exploding())
    with pytest.raises(RuntimeError):
        await _collect("hi", LLMConfig(provider="ollama"))
