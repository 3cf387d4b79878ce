"""Custom provider: any OpenAI-compatible ``/v1`` endpoint (vLLM, LM Studio, ...)."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from src.assistant.models import ConnectionStatus, ModelDescriptor, Provider
from src.assistant.prompt import build_chat_messages, select_context_memories
from src.assistant.providers.base import (
    FetchResult,
    GenerationError,
    describe_http_error,
    generate_timeout,
    probe_timeout,
    resolve_model,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from src.assistant.models import LLMConfig, MemoryItem, Message

logger = logging.getLogger(__name__)


def api_base(endpoint: str) -> str:
    """Normalise *endpoint* so it ends in exactly one ``/v1``."""
    base = endpoint.strip().rstrip("/")
    if base.endswith("/v1"):
        return base
    return f"{base}/v1"


def _extract_delta(data: dict[str, Any]) -> str | None:
    """Pull the text piece out of one streamed chunk."""
    choices = data.get("choices")
    if not choices or not isinstance(choices, list):
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    delta = choice.get("delta") or choice.get("message") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    if content is None:
        content = choice.get("text")
    return content if isinstance(content, str) else None


class CustomProvider:
    """Talks to a self-hosted OpenAI-compatible server."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    @property
    def name(self) -> str:
        return Provider.CUSTOM.value

    def _client(self, config: LLMConfig, timeout: httpx.Timeout) -> httpx.AsyncClient:
        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        return httpx.AsyncClient(timeout=timeout, headers=headers, transport=self._transport)

    async def fetch_models(self, config: LLMConfig) -> FetchResult:
        url = f"{api_base(config.endpoint)}/models"
        try:
            async with self._client(config, probe_timeout()) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as err:
            logger.warning("Custom endpoint model listing failed: %s", err)
            return FetchResult(error=describe_http_error(err))
        except ValueError:
            return FetchResult(error=f"Malformed model list from {url}")

        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return FetchResult(error=f"Malformed model list from {url}")
        models = [
            ModelDescriptor(name=str(item["id"]), modified_at=str(item.get("created", "")))
            for item in items
            if isinstance(item, dict) and item.get("id")
        ]
        return FetchResult(models=models)

    async def probe(self, config: LLMConfig) -> ConnectionStatus:
        result = await self.fetch_models(config)
        if not result.success:
            return ConnectionStatus(connected=False, provider=Provider.CUSTOM, error=result.error)
        return ConnectionStatus(
            connected=True,
            provider=Provider.CUSTOM,
            model=resolve_model(config.model, result.models),
        )

    def context_memories(self, memories: list[MemoryItem]) -> list[MemoryItem]:
        return select_context_memories(memories)

    async def stream(
        self,
        user_message: str,
        history: list[Message],
        memories: list[MemoryItem],
        config: LLMConfig,
    ) -> AsyncIterator[str]:
        """Stream ``/chat/completions`` server-sent events."""
        url = f"{api_base(config.endpoint)}/chat/completions"
        payload = {
            "model": config.model,
            "messages": build_chat_messages(user_message, history, memories, config),
            "stream": True,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }
        try:
            async with (
                self._client(config, generate_timeout()) as client,
                client.stream("POST", url, json=payload) as resp,
            ):
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    line = line.strip()
                    if not line or line.startswith(":"):
                        continue
                    if line.startswith("data:"):
                        line = line[5:].strip()
                    if line == "[DONE]":
                        return
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed stream line: %s", line[:80])
                        continue
                    if not isinstance(data, dict):
                        continue
                    if data.get("error"):
                        raise GenerationError(str(data["error"]))
                    piece = _extract_delta(data)
                    if piece:
                        yield piece
        except httpx.HTTPError as err:
            raise GenerationError(describe_http_error(err)) from err
