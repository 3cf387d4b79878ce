"""Prompt assembly: system instruction, recalled memories and recent history."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.config import settings

if TYPE_CHECKING:
    from src.assistant.models import LLMConfig, MemoryItem, Message

_ROLE_LABELS = {"user": "用户", "assistant": "助手", "system": "系统"}


def select_context_memories(
    memories: list[MemoryItem],
    limit: int | None = None,
    min_confidence: float | None = None,
) -> list[MemoryItem]:
    """Most-used memories above the confidence floor.

    ``sorted`` is stable, so ties keep their stored order.
    """
    limit = settings.context_memory_limit if limit is None else limit
    floor = settings.context_min_confidence if min_confidence is None else min_confidence
    eligible = [m for m in memories if m.confidence > floor]
    ranked = sorted(eligible, key=lambda m: m.usage_count, reverse=True)
    return ranked[:limit]


def recent_history(history: list[Message], limit: int | None = None) -> list[Message]:
    """The tail of the conversation."""
    limit = settings.context_history_limit if limit is None else limit
    if limit <= 0:
        return []
    return history[-limit:]


def format_memories(memories: list[MemoryItem]) -> str:
    if not memories:
        return ""
    lines = ["## 用户记忆"]
    for memory in memories:
        lines.append(f"- [{memory.type}] {memory.key}: {memory.value}")
    return "\n".join(lines)


def format_history(history: list[Message]) -> str:
    if not history:
        return ""
    lines = ["## 最近对话"]
    for message in history:
        label = _ROLE_LABELS.get(message.role, message.role)
        lines.append(f"{label}: {message.content}")
    return "\n".join(lines)


def build_prompt(
    user_message: str,
    history: list[Message],
    memories: list[MemoryItem],
    config: LLMConfig,
) -> str:
    """Assemble a single completion prompt for ``/api/generate``."""
    sections = [config.system_prompt]

    memory_block = format_memories(select_context_memories(memories))
    if memory_block:
        sections.append(memory_block)

    history_block = format_history(recent_history(history))
    if history_block:
        sections.append(history_block)

    sections.append(f"用户: {user_message}\n助手:")
    return "\n\n".join(sections)


def build_chat_messages(
    user_message: str,
    history: list[Message],
    memories: list[MemoryItem],
    config: LLMConfig,
) -> list[dict[str, str]]:
    """Assemble chat-completion messages for OpenAI-compatible endpoints."""
    system = config.system_prompt
    memory_block = format_memories(select_context_memories(memories))
    if memory_block:
        system = f"{system}\n\n{memory_block}"

    messages = [{"role": "system", "content": system}]
    for message in recent_history(history):
        if message.role in ("user", "assistant"):
            messages.append({"role": message.role, "content": message.content})
    messages.append({"role": "user", "content": user_message})
    return messages
