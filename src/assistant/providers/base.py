"""Provider protocol and the internal result type shared by all backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from src.config import settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from src.assistant.models import (
        ConnectionStatus,
        LLMConfig,
        MemoryItem,
        Message,
        ModelDescriptor,
    )


class GenerationError(Exception):
    """Raised by a provider's stream when the backend cannot produce a reply."""


@dataclass
class FetchResult:
    """Outcome of a model-listing request.

    Providers return one of these instead of raising; the connection layer
    turns it into a ``ConnectionStatus``.
    """

    models: list[ModelDescriptor] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


def resolve_model(configured: str, models: list[ModelDescriptor]) -> str:
    """Pick the configured model if served, else the first served, else as configured."""
    names = [m.name for m in models]
    if configured in names:
        return configured
    if names:
        return names[0]
    return configured


def describe_http_error(err: httpx.HTTPError) -> str:
    """Human-readable cause for a failed request."""
    try:
        url = str(err.request.url)
    except RuntimeError:  # request not attached
        url = "endpoint"
    if isinstance(err, httpx.HTTPStatusError):
        return f"HTTP {err.response.status_code} from {url}"
    if isinstance(err, httpx.TimeoutException):
        return f"Timed out waiting for {url}"
    if isinstance(err, httpx.ConnectError):
        return f"Cannot connect to {url}"
    return f"Request to {url} failed: {err}"


def probe_timeout() -> httpx.Timeout:
    return httpx.Timeout(settings.probe_timeout_seconds)


def generate_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        settings.generate_timeout_seconds, connect=settings.connect_timeout_seconds
    )


@runtime_checkable
class Provider(Protocol):
    """Protocol that every inference backend must satisfy."""

    @property
    def name(self) -> str:
        """Provider identifier (matches ``LLMConfig.provider``)."""
        ...

    async def probe(self, config: LLMConfig) -> ConnectionStatus:
        """Check reachability. Must not raise."""
        ...

    async def fetch_models(self, config: LLMConfig) -> FetchResult:
        """List the models the endpoint serves. Must not raise."""
        ...

    def context_memories(self, memories: list[MemoryItem]) -> list[MemoryItem]:
        """The memories this provider feeds into a reply."""
        ...

    def stream(
        self,
        user_message: str,
        history: list[Message],
        memories: list[MemoryItem],
        config: LLMConfig,
    ) -> AsyncIterator[str]:
        """Yield reply fragments. May raise ``GenerationError``."""
        ...
