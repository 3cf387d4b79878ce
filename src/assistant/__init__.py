"""OmniCore assistant core: store, providers, extractor and orchestrator."""

from src.assistant.orchestrator import AssistantOrchestrator
from src.assistant.store import AssistantStore

__all__ = [
    "AssistantOrchestrator",
    "AssistantStore",
]
