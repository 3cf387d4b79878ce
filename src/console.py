"""Interactive terminal front-end with streaming replies and slash commands."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from src.assistant.models import MemoryDraft, MemoryType

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.assistant.orchestrator import AssistantOrchestrator

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  /help                   show this help
  /clear                  clear the conversation
  /status                 show provider, model and connection state
  /refresh                probe the endpoint again
  /models                 list models served by the endpoint
  /provider <name>        switch provider (mock, ollama, custom)
  /endpoint <url>         set the endpoint URL
  /model <name>           set the model
  /memories               list learned memories
  /remember <key> <text>  store a preference memory
  /forget <id>            delete a memory
  /capabilities           list capabilities
  /toggle <id>            enable/disable a capability
  /reset                  delete all stored data
  /quit                   exit"""


def _print(text: str, end: str = "\n") -> None:
    print(text, end=end, flush=True)


class Console:
    """Maps terminal input onto orchestrator operations."""

    def __init__(
        self,
        orchestrator: AssistantOrchestrator,
        write: Callable[..., None] = _print,
    ) -> None:
        self._assistant = orchestrator
        self._write = write
        self._commands: dict[str, Callable[[str], Awaitable[None]]] = {
            "help": self.handle_help,
            "clear": self.handle_clear,
            "status": self.handle_status,
            "refresh": self.handle_refresh,
            "models": self.handle_models,
            "provider": self.handle_provider,
            "endpoint": self.handle_endpoint,
            "model": self.handle_model,
            "memories": self.handle_memories,
            "remember": self.handle_remember,
            "forget": self.handle_forget,
            "capabilities": self.handle_capabilities,
            "toggle": self.handle_toggle,
            "reset": self.handle_reset,
        }

    async def handle_line(self, line: str) -> bool:
        """Process one input line. Returns False when the user asked to quit."""
        line = line.strip()
        if not line:
            return True
        if not line.startswith("/"):
            await self.chat(line)
            return True

        name, _, arg = line[1:].partition(" ")
        if name in ("quit", "exit"):
            return False
        handler = self._commands.get(name)
        if handler is None:
            self._write(f"Unknown command /{name}. Type /help for a list.")
            return True
        await handler(arg.strip())
        return True

    async def chat(self, text: str) -> None:
        async def on_text_delta(fragment: str) -> None:
            self._write(fragment, end="")

        self._write("OmniCore AI> ", end="")
        reply = await self._assistant.send_message(text, on_text_delta=on_text_delta)
        self._write("")
        if reply is None:
            self._write("(no reply)")

    # -- Commands --------------------------------------------------------------

    async def handle_help(self, arg: str) -> None:
        self._write(HELP_TEXT)

    async def handle_clear(self, arg: str) -> None:
        count = len(self._assistant.messages)
        await self._assistant.clear_conversation()
        self._write(f"Cleared {count} messages. Starting fresh.")

    async def handle_status(self, arg: str) -> None:
        config = self._assistant.config
        status = self._assistant.connection_status
        state = "connected" if status.connected else "disconnected"
        lines = [
            f"Provider: {config.provider}",
            f"Endpoint: {config.endpoint}",
            f"Model: {config.model}",
            f"Connection: {state}" + (f" ({status.error})" if status.error else ""),
            f"Messages: {len(self._assistant.messages)}",
            f"Memories: {len(self._assistant.memories)}",
        ]
        self._write("\n".join(lines))

    async def handle_refresh(self, arg: str) -> None:
        status = await self._assistant.refresh_connection()
        if status.connected:
            self._write(f"Connected to {status.provider} ({status.model})")
        else:
            self._write(f"Not connected: {status.error}")

    async def handle_models(self, arg: str) -> None:
        models = self._assistant.available_models
        if not models:
            self._write("No models listed. Try /refresh.")
            return
        current = self._assistant.config.model
        for model in models:
            marker = "*" if model.name == current else " "
            self._write(f"{marker} {model.name}")

    async def _update(self, **partial: str) -> bool:
        try:
            await self._assistant.update_config(**partial)
        except ValidationError as err:
            self._write(f"Invalid value: {err.errors()[0]['msg']}")
            return False
        return True

    async def handle_provider(self, arg: str) -> None:
        if not arg:
            self._write("Usage: /provider <mock|ollama|custom>")
            return
        if await self._update(provider=arg):
            self._write(f"Provider set to {arg}. Use /refresh to connect.")

    async def handle_endpoint(self, arg: str) -> None:
        if not arg:
            self._write("Usage: /endpoint <url>")
            return
        if await self._update(endpoint=arg):
            self._write(f"Endpoint set to {arg}. Use /refresh to connect.")

    async def handle_model(self, arg: str) -> None:
        if not arg:
            self._write(f"Current model: {self._assistant.config.model}")
            return
        if await self._update(model=arg):
            self._write(f"Model set to {arg}")

    async def handle_memories(self, arg: str) -> None:
        memories = self._assistant.memories
        if not memories:
            self._write("No memories yet.")
            return
        for m in memories:
            self._write(
                f"{m.id} [{m.type}] {m.key}: {m.value} "
                f"(confidence {m.confidence:.0%}, used {m.usage_count}x)"
            )

    async def handle_remember(self, arg: str) -> None:
        key, _, value = arg.partition(" ")
        if not key or not value.strip():
            self._write("Usage: /remember <key> <text>")
            return
        item = await self._assistant.add_memory(
            MemoryDraft(type=MemoryType.PREFERENCE, key=key, value=value.strip(), confidence=0.9)
        )
        self._write(f"Remembered {item.key} ({item.id})")

    async def handle_forget(self, arg: str) -> None:
        if await self._assistant.delete_memory(arg):
            self._write(f"Deleted {arg}")
        else:
            self._write(f"No memory with id {arg!r}")

    async def handle_capabilities(self, arg: str) -> None:
        for cap in self._assistant.capabilities:
            state = "on " if cap.enabled else "off"
            self._write(f"[{state}] {cap.id} ({cap.category}) {cap.name}")

    async def handle_toggle(self, arg: str) -> None:
        cap = self._assistant.toggle_capability(arg)
        if cap is None:
            self._write(f"No capability with id {arg!r}")
            return
        self._write(f"{cap.name} {'enabled' if cap.enabled else 'disabled'}")

    async def handle_reset(self, arg: str) -> None:
        await self._assistant.clear_all_stored_data()
        self._write("All stored data cleared.")

    # -- Loop ------------------------------------------------------------------

    async def run(self) -> None:
        """Read lines from stdin until EOF or /quit."""
        self._write("OmniCore assistant. Type /help for commands.")
        while True:
            try:
                line = await asyncio.to_thread(input, "you> ")
            except (EOFError, KeyboardInterrupt):
                self._write("")
                break
            if not await self.handle_line(line):
                break
