"""Conversation orchestrator: the stateful facade over store, prober and generator.

One instance per application session.  It owns the in-memory copies of the
configuration, conversation, memories and capability toggles, keeps them in
sync with ``AssistantStore`` and sequences each turn:

    Idle --send_message--> Generating --stream done--> persist, learn --> Idle

At most one generation runs at a time; ``send_message`` while generating is a
no-op rather than queued.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from src.assistant.capabilities import default_capabilities
from src.assistant.connection import list_models, probe
from src.assistant.extractor import extract_memory
from src.assistant.generator import generate
from src.assistant.models import ConnectionStatus, Message, Provider, default_config
from src.assistant.providers import get_provider
from src.assistant.providers.simulated import MOCK_MODEL_NAME
from src.assistant.store import AssistantStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.assistant.models import (
        Capability,
        LLMConfig,
        MemoryDraft,
        MemoryItem,
        ModelDescriptor,
    )

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = "抱歉，生成回复时出现错误。请检查本地模型服务是否正常运行。"


def _initial_status(config: LLMConfig) -> ConnectionStatus:
    """Status shown before any probe: mock is always up, HTTP backends are unknown."""
    if config.provider == Provider.MOCK:
        return ConnectionStatus(connected=True, provider=Provider.MOCK, model=MOCK_MODEL_NAME)
    return ConnectionStatus(connected=False, provider=config.provider)


class AssistantOrchestrator:
    """Owns one assistant session.

    Build with ``await AssistantOrchestrator.create()`` to restore persisted
    state, or construct directly and call ``load()``.
    """

    def __init__(self, store: AssistantStore | None = None) -> None:
        self._store = store or AssistantStore.get()
        self.config: LLMConfig = default_config()
        self.messages: list[Message] = []
        self.memories: list[MemoryItem] = []
        self.capabilities: list[Capability] = default_capabilities()
        self.available_models: list[ModelDescriptor] = []
        self.connection_status: ConnectionStatus = _initial_status(self.config)
        self.streaming_content = ""
        self.is_connecting = False
        self._generating = False
        self._task: asyncio.Task[str] | None = None

    @classmethod
    async def create(cls, store: AssistantStore | None = None) -> AssistantOrchestrator:
        orchestrator = cls(store)
        await orchestrator.load()
        return orchestrator

    async def load(self) -> None:
        """Restore config, conversation and memories from storage."""
        self.config = await self._store.load_config()
        self.messages = await self._store.load_messages()
        self.memories = await self._store.load_memories()
        self.connection_status = _initial_status(self.config)
        logger.info(
            "Loaded assistant state: provider=%s, %d messages, %d memories",
            self.config.provider,
            len(self.messages),
            len(self.memories),
        )

    @property
    def is_generating(self) -> bool:
        return self._generating

    # -- Conversation ----------------------------------------------------------

    async def send_message(
        self,
        text: str,
        on_text_delta: Callable[[str], Awaitable[None]] | None = None,
    ) -> Message | None:
        """Run one turn and return the assistant message.

        Returns None without doing anything when *text* is blank or another
        generation is in flight, and None when the generation is cancelled.
        """
        content = text.strip()
        if not content or self._generating:
            return None

        history = list(self.messages)
        memories = list(self.memories)
        used_memories = get_provider(self.config.provider).context_memories(memories)

        self.messages.append(Message(role="user", content=content))
        self._generating = True
        self.streaming_content = ""
        self._task = asyncio.create_task(
            self._collect_reply(content, history, memories, on_text_delta)
        )

        try:
            failed = False
            try:
                reply = await self._task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    raise
                logger.info("Generation cancelled, discarded %d chars", len(self.streaming_content))
                await self._store.save_messages(self.messages)
                return None
            except Exception:
                logger.exception("Message generation failed")
                reply = APOLOGY_MESSAGE
                failed = True

            assistant = Message(role="assistant", content=reply)
            self.messages.append(assistant)
            self.streaming_content = ""
            await self._store.save_messages(self.messages)

            if not failed:
                await self._learn(content, reply)
                await self._record_usage(used_memories)
            return assistant
        finally:
            self._generating = False
            self._task = None
            self.streaming_content = ""

    async def _collect_reply(
        self,
        content: str,
        history: list[Message],
        memories: list[MemoryItem],
        on_text_delta: Callable[[str], Awaitable[None]] | None,
    ) -> str:
        async for fragment in generate(content, history, memories, self.config):
            self.streaming_content += fragment
            if on_text_delta:
                await on_text_delta(fragment)
        return self.streaming_content

    async def _learn(self, user_message: str, reply: str) -> None:
        draft = extract_memory(user_message, reply)
        if draft is None:
            return
        item = await self._store.add_memory(draft)
        self.memories.append(item)

    async def _record_usage(self, used: list[MemoryItem]) -> None:
        used_ids = {m.id for m in used}
        touched = False
        for memory in self.memories:
            if memory.id in used_ids:
                memory.usage_count += 1
                touched = True
        if touched:
            await self._store.save_memories(self.memories)

    def cancel_generation(self) -> bool:
        """Abort the in-flight generation. Returns False if nothing was running."""
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        return True

    async def clear_conversation(self) -> None:
        """Empty the conversation (memory and storage). Cancels any in-flight reply."""
        self.cancel_generation()
        self.messages = []
        self.streaming_content = ""
        await self._store.save_messages([])

    async def clear_all_stored_data(self) -> None:
        """Wipe storage and reset config, conversation and memories to defaults."""
        self.cancel_generation()
        await self._store.clear_all()
        self.config = default_config()
        self.messages = []
        self.memories = []
        self.available_models = []
        self.connection_status = _initial_status(self.config)
        self.streaming_content = ""

    # -- Configuration & connectivity ------------------------------------------

    async def update_config(self, **partial: Any) -> LLMConfig:
        """Merge *partial* into the active config and persist it.

        Raises ``pydantic.ValidationError`` (leaving the config untouched) on
        invalid values.  Does not probe; call ``refresh_connection()`` after
        changing the provider or endpoint.
        """
        updated = self.config.merged(partial)
        self.config = updated
        await self._store.save_config(updated.model_dump(mode="json"))
        logger.info("Config updated: %s", ", ".join(sorted(partial)))
        return updated

    async def refresh_connection(self) -> ConnectionStatus:
        """Probe the endpoint, refresh the model list and fix up a missing model."""
        self.is_connecting = True
        try:
            status = await probe(self.config)
            self.connection_status = status
            if not status.connected:
                self.available_models = []
                return status

            self.available_models = await list_models(self.config)
            names = [m.name for m in self.available_models]
            if names and self.config.model not in names:
                logger.info("Model %s not served, switching to %s", self.config.model, names[0])
                await self.update_config(model=names[0])
            return status
        finally:
            self.is_connecting = False

    # -- Memories --------------------------------------------------------------

    async def add_memory(self, draft: MemoryDraft) -> MemoryItem:
        """Store a memory the user entered explicitly."""
        item = await self._store.add_memory(draft)
        self.memories.append(item)
        return item

    async def delete_memory(self, memory_id: str) -> bool:
        remaining = [m for m in self.memories if m.id != memory_id]
        if len(remaining) == len(self.memories):
            return False
        self.memories = remaining
        await self._store.save_memories(remaining)
        logger.info("Deleted memory: %s", memory_id)
        return True

    # -- Capabilities ----------------------------------------------------------

    def toggle_capability(self, capability_id: str) -> Capability | None:
        """Flip one capability on/off. In-memory only."""
        for capability in self.capabilities:
            if capability.id == capability_id:
                capability.enabled = not capability.enabled
                return capability
        return None
