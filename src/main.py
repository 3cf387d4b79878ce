"""OmniCore assistant entry point."""

import asyncio
import logging

from src.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def _run() -> None:
    from src.assistant.orchestrator import AssistantOrchestrator
    from src.console import Console

    orchestrator = await AssistantOrchestrator.create()
    if orchestrator.config.provider != "mock":
        await orchestrator.refresh_connection()
    logger.info("Starting OmniCore assistant with provider %s", orchestrator.config.provider)
    await Console(orchestrator).run()


def main() -> None:
    """Start the interactive assistant."""
    asyncio.run(_run())


if __name__ == "__main__":
    main()
