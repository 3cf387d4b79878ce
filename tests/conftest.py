"""Shared test fixtures."""

from pathlib import Path

import pytest

from src.assistant.orchestrator import AssistantOrchestrator
from src.assistant.store import AssistantStore


@pytest.fixture(autouse=True)
def _instant_streaming(monkeypatch: pytest.MonkeyPatch) -> None:
    """Stream simulated replies without the artificial delay."""
    monkeypatch.setattr("src.config.settings.mock_stream_delay_ms", 0)


@pytest.fixture
def store(tmp_path: Path) -> AssistantStore:
    """An AssistantStore backed by a temp database."""
    return AssistantStore(db_path=tmp_path / "test.db")


@pytest.fixture
async def orchestrator(store: AssistantStore) -> AssistantOrchestrator:
    """A fresh orchestrator over an empty store."""
    return await AssistantOrchestrator.create(store)
