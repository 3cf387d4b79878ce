"""Ollama provider: local HTTP inference via ``/api/tags`` and ``/api/generate``."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from src.assistant.models import ConnectionStatus, ModelDescriptor, Provider
from src.assistant.prompt import build_prompt, select_context_memories
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


def _base_url(endpoint: str) -> str:
    return endpoint.strip().rstrip("/")


def parse_model_list(data: object) -> list[ModelDescriptor]:
    """Parse an ``/api/tags`` body. Raises ``ValueError`` if it is not a model list."""
    if not isinstance(data, dict) or not isinstance(data.get("models", []), list):
        msg = "Unexpected /api/tags response shape"
        raise ValueError(msg)  # noqa: TRY004
    return [
        ModelDescriptor.model_validate(item)
        for item in data.get("models", [])
        if isinstance(item, dict) and item.get("name")
    ]


class OllamaProvider:
    """Talks to an Ollama-compatible server.

    Pass a custom *transport* (e.g. ``httpx.MockTransport``) for tests.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    @property
    def name(self) -> str:
        return Provider.OLLAMA.value

    def _client(self, timeout: httpx.Timeout) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    # -- Connectivity ----------------------------------------------------------

    async def fetch_models(self, config: LLMConfig) -> FetchResult:
        url = f"{_base_url(config.endpoint)}/api/tags"
        try:
            async with self._client(probe_timeout()) as client:
                resp = await client.get(url)
                resp.raise_for_status()
                models = parse_model_list(resp.json())
        except httpx.HTTPError as err:
            logger.warning("Ollama model listing failed: %s", err)
            return FetchResult(error=describe_http_error(err))
        except (ValueError, ValidationError):
            logger.warning("Ollama returned a malformed model list from %s", url)
            return FetchResult(error=f"Malformed model list from {url}")
        return FetchResult(models=models)

    async def probe(self, config: LLMConfig) -> ConnectionStatus:
        result = await self.fetch_models(config)
        if not result.success:
            return ConnectionStatus(connected=False, provider=Provider.OLLAMA, error=result.error)
        return ConnectionStatus(
            connected=True,
            provider=Provider.OLLAMA,
            model=resolve_model(config.model, result.models),
        )

    # -- Generation ------------------------------------------------------------

    def context_memories(self, memories: list[MemoryItem]) -> list[MemoryItem]:
        return select_context_memories(memories)

    async def stream(
        self,
        user_message: str,
        history: list[Message],
        memories: list[MemoryItem],
        config: LLMConfig,
    ) -> AsyncIterator[str]:
        """Stream ``/api/generate`` output, one ``response`` piece per NDJSON line."""
        url = f"{_base_url(config.endpoint)}/api/generate"
        payload = {
            "model": config.model,
            "prompt": build_prompt(user_message, history, memories, config),
            "stream": True,
            "options": {
                "temperature": config.temperature,
                "num_predict": config.max_tokens,
            },
        }
        try:
            async with (
                self._client(generate_timeout()) as client,
                client.stream("POST", url, json=payload) as resp,
            ):
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed stream line: %s", line[:80])
                        continue
                    if not isinstance(data, dict):
                        continue
                    if data.get("error"):
                        raise GenerationError(str(data["error"]))
                    piece = data.get("response")
                    if isinstance(piece, str) and piece:
                        yield piece
                    if data.get("done"):
                        return
        except httpx.HTTPError as err:
            raise GenerationError(describe_http_error(err)) from err
