"""Connection prober: reachability and model availability for the active backend.

Both entry points always return data: an unreachable endpoint is reported as
``ConnectionStatus(connected=False, error=...)`` or an empty model list, so
callers can render a stable "disconnected" state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.assistant.models import ConnectionStatus
from src.assistant.providers import get_provider

if TYPE_CHECKING:
    from src.assistant.models import LLMConfig, ModelDescriptor

logger = logging.getLogger(__name__)


async def probe(config: LLMConfig) -> ConnectionStatus:
    """Check whether the configured endpoint is reachable and which model it serves."""
    try:
        status = await get_provider(config.provider).probe(config)
    except Exception as err:
        logger.exception("Connection probe failed for %s", config.provider)
        return ConnectionStatus(
            connected=False,
            provider=config.provider,
            error=f"连接检查失败: {err}",
        )
    if status.connected:
        logger.info("Connected to %s (model=%s)", config.provider, status.model)
    else:
        logger.warning("Provider %s unreachable: %s", config.provider, status.error)
    return status


async def list_models(config: LLMConfig) -> list[ModelDescriptor]:
    """Models offered by the endpoint; empty when mock or unreachable."""
    try:
        result = await get_provider(config.provider).fetch_models(config)
    except Exception:
        logger.exception("Model listing failed for %s", config.provider)
        return []
    return result.models if result.success else []
