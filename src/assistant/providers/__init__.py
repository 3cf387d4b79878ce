"""Inference backends, selected by ``LLMConfig.provider`` at call time."""

from src.assistant.models import Provider as ProviderName
from src.assistant.providers.base import FetchResult, GenerationError, Provider
from src.assistant.providers.custom import CustomProvider
from src.assistant.providers.ollama import OllamaProvider
from src.assistant.providers.simulated import SimulatedProvider

_registry: dict[str, Provider] = {
    ProviderName.MOCK: SimulatedProvider(),
    ProviderName.OLLAMA: OllamaProvider(),
    ProviderName.CUSTOM: CustomProvider(),
}


def get_provider(name: str) -> Provider:
    """Return the backend registered under *name*. Raises KeyError if unknown."""
    if name not in _registry:
        msg = f"Provider '{name}' is not registered"
        raise KeyError(msg)
    return _registry[name]


def register_provider(name: str, provider: Provider) -> None:
    """Install (or replace) the backend for *name*."""
    _registry[name] = provider


__all__ = [
    "CustomProvider",
    "FetchResult",
    "GenerationError",
    "OllamaProvider",
    "Provider",
    "SimulatedProvider",
    "get_provider",
    "register_provider",
]
