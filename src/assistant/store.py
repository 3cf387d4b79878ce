"""AssistantStore: durable key-value storage for config, messages and memories.

Each logical collection lives under its own key in a single ``kv_store``
table, serialised as JSON.  Collections are read and written independently:
a corrupt value under one key never affects the others.  Nothing here raises
to the caller; failures are logged and degrade to defaults or dropped writes.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

from src.assistant.models import LLMConfig, MemoryDraft, MemoryItem, Message, default_config
from src.config import settings
from src.db import ensure_schema, get_connection

if TYPE_CHECKING:
    from pathlib import Path

    from src.db import _AsyncConnection

logger = logging.getLogger(__name__)

CONFIG_KEY = "llm_config"
MESSAGES_KEY = "ai_messages"
MEMORIES_KEY = "ai_memories"

_messages_adapter = TypeAdapter(list[Message])
_memories_adapter = TypeAdapter(list[MemoryItem])


class AssistantStore:
    """Persists assistant state in SQLite.

    Singleton accessed via ``AssistantStore.get()``.  Pass an explicit
    *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: AssistantStore | None = None

    def __init__(self, db_path: Path | None = None, max_messages: int | None = None) -> None:
        self._db_path = db_path
        self._max_messages = settings.max_stored_messages if max_messages is None else max_messages
        self._initialised = False

    @classmethod
    def get(cls) -> AssistantStore:
        """Return the shared AssistantStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    @property
    def max_messages(self) -> int:
        return self._max_messages

    # -- Raw key-value access --------------------------------------------------

    async def _connect(self) -> _AsyncConnection:
        db = await get_connection(local_path_override=self._db_path)
        if not self._initialised:
            try:
                await ensure_schema(db)
            except Exception:
                await db.close()
                raise
            self._initialised = True
        return db

    async def get_raw(self, key: str) -> str | None:
        """Return the stored text for *key*, or None if absent."""
        async with await self._connect() as db:
            cursor = await db.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
            return row[0] if row else None

    async def set_raw(self, key: str, value: str) -> None:
        """Insert or replace the text stored under *key*."""
        async with await self._connect() as db:
            await db.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, datetime.now(UTC).isoformat()),
            )
            await db.commit()

    async def delete_raw(self, key: str) -> None:
        async with await self._connect() as db:
            await db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await db.commit()


    async def _read_json(self, key: str) -> Any:
        """Read and decode *key*. Returns None on absence, corruption or I/O error."""
        try:
            raw = await self.get_raw(key)
        except Exception:
            logger.exception("Failed to read %s from storage", key)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt stored value for %s", key)
            return None

    async def _write_json(self, key: str, value: Any) -> bool:
        """Encode and write *value*. Returns False (after logging) on failure."""
        try:
            await self.set_raw(key, json.dumps(value, ensure_ascii=False))
            return True
        except Exception:
            logger.exception("Failed to write %s to storage", key)
            return False

    # -- Configuration ---------------------------------------------------------

    async def load_config(self) -> LLMConfig:
        """Return the stored config merged over defaults (stored fields win)."""
        defaults = default_config()
        stored = await self._read_json(CONFIG_KEY)
        if not isinstance(stored, dict):
            return defaults
        try:
            return defaults.merged(stored)
        except ValidationError:
            logger.warning("Stored config failed validation, using defaults")
            return defaults

    async def save_config(self, partial: dict[str, Any]) -> LLMConfig:
        """Merge *partial* over the stored config, write it, and return the result."""
        current = await self.load_config()
        updated = current.merged(partial)
        await self._write_json(CONFIG_KEY, updated.model_dump(mode="json"))
        return updated

    # -- Messages --------------------------------------------------------------

    async def load_messages(self) -> list[Message]:
        stored = await self._read_json(MESSAGES_KEY)
        if stored is None:
            return []
        try:
            return _messages_adapter.validate_python(stored)
        except ValidationError:
            logger.warning("Stored messages failed validation, starting empty")
            return []

    async def save_messages(self, messages: list[Message]) -> None:
        """Persist the most recent ``max_messages`` entries (oldest dropped first)."""
        trimmed = messages[-self._max_messages :] if self._max_messages else []
        await self._write_json(MESSAGES_KEY, _messages_adapter.dump_python(trimmed, mode="json"))

    # -- Memories --------------------------------------------------------------

    async def load_memories(self) -> list[MemoryItem]:
        stored = await self._read_json(MEMORIES_KEY)
        if stored is None:
            return []
        try:
            return _memories_adapter.validate_python(stored)
        except ValidationError:
            logger.warning("Stored memories failed validation, starting empty")
            return []

    async def save_memories(self, memories: list[MemoryItem]) -> None:
        await self._write_json(MEMORIES_KEY, _memories_adapter.dump_python(memories, mode="json"))

    async def add_memory(self, draft: MemoryDraft) -> MemoryItem:
        """Finalize *draft* (id, learned_at, usage_count=0) and append it to storage."""
        item = MemoryItem.from_draft(draft)
        memories = await self.load_memories()
        memories.append(item)
        await self.save_memories(memories)
        logger.info("Stored memory [%s] %s", item.type, item.key)
        return item

    # -- Reset -----------------------------------------------------------------

    async def clear_all(self) -> None:
        """Remove all three collections. Each key is attempted independently."""
        for key in (CONFIG_KEY, MESSAGES_KEY, MEMORIES_KEY):
            try:
                await self.delete_raw(key)
            except Exception:
                logger.exception("Failed to clear %s", key)
        logger.info("Cleared all stored assistant data")
