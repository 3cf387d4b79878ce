"""Response generator: one reply per user turn, as a stream of text fragments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.assistant.providers import GenerationError, get_provider
from src.assistant.providers.simulated import canned_response

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from src.assistant.models import LLMConfig, MemoryItem, Message

logger = logging.getLogger(__name__)


async def generate(
    user_message: str,
    history: list[Message],
    memories: list[MemoryItem],
    config: LLMConfig,
) -> AsyncIterator[str]:
    """Yield the reply to *user_message* fragment by fragment.

    The sequence is single-pass; call again for a fresh reply.  If an HTTP
    backend fails (mid-stream or before the first fragment), the simulated
    reply is yielded as one final fragment instead of raising, so the caller
    always receives some answer.
    """
    provider = get_provider(config.provider)
    try:
        async for fragment in provider.stream(user_message, history, memories, config):
            yield fragment
    except GenerationError as err:
        logger.warning("%s generation failed, using simulated reply: %s", provider.name, err)
        yield canned_response(user_message, memories)
