"""Tests for assistant data models."""

import pytest
from pydantic import ValidationError

from src.assistant.models import (
    DEFAULT_SYSTEM_PROMPT,
    ActionStatus,
    ActionType,
    ConnectionStatus,
    LLMConfig,
    MemoryDraft,
    MemoryItem,
    MemoryType,
    Message,
    MessageAction,
    ModelDescriptor,
    Provider,
    default_config,
)


class TestLLMConfig:
    def test_defaults(self):
        config = LLMConfig()
        assert config.provider == Provider.MOCK
        assert config.temperature == 0.7
        assert config.system_prompt == DEFAULT_SYSTEM_PROMPT

    def test_merged_applies_partial(self):
        config = LLMConfig().merged({"provider": "ollama", "model": "llama3"})
        assert config.provider == Provider.OLLAMA
        assert config.model == "llama3"
        assert config.endpoint == "http://localhost:11434"

    def test_merged_ignores_unknown_keys(self):
        config = LLMConfig().merged({"colour": "blue", "max_tokens": 512})
        assert config.max_tokens == 512
        assert not hasattr(config, "colour")

    def test_merged_does_not_mutate_original(self):
        original = LLMConfig()
        original.merged({"model": "other"})
        assert original.model == "qwen2.5:7b"

    def test_temperature_bounds(self):
        with pytest.raises(ValidationError):
            LLMConfig(temperature=3.5)
        with pytest.raises(ValidationError):
            LLMConfig().merged({"temperature": -0.1})

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            LLMConfig(provider="spark")

    def test_default_config_uses_settings(self, monkeypatch):
        monkeypatch.setattr("src.config.settings.default_provider", "ollama")
        monkeypatch.setattr("src.config.settings.default_model", "llama3.1")
        config = default_config()
        assert config.provider == Provider.OLLAMA
        assert config.model == "llama3.1"


class TestMessage:
    def test_ids_are_unique(self):
        ids = {Message(role="user", content="hi").id for _ in range(200)}
        assert len(ids) == 200

    def test_timestamp_is_set(self):
        msg = Message(role="assistant", content="ok")
        assert msg.timestamp
        assert msg.action is None

    def test_invalid_role_rejected(self):
        with pytest.raises(ValidationError):
            Message(role="robot", content="beep")

    def test_action_round_trips_through_json(self):
        msg = Message(
            role="assistant",
            content="Signed",
            action=MessageAction(type=ActionType.SIGN_TRANSACTION, status=ActionStatus.COMPLETED),
        )
        data = msg.model_dump(mode="json")
        assert data["action"] == {"type": "sign_transaction", "status": "completed", "result": None}
        assert Message.model_validate(data) == msg


class TestMemory:
    def test_from_draft_sets_bookkeeping(self):
        draft = MemoryDraft(type=MemoryType.CONTACT, key="supplier", value="0xabc", confidence=0.7)
        item = MemoryItem.from_draft(draft)
        assert item.id.startswith("mem-")
        assert item.learned_at
        assert item.usage_count == 0
        assert item.value == "0xabc"

    def test_confidence_bounds(self):
        with pytest.raises(ValidationError):
            MemoryDraft(type="preference", key="k", value="v", confidence=1.5)


class TestModelDescriptor:
    def test_accepts_snake_case(self):
        model = ModelDescriptor.model_validate(
            {"name": "llama3", "modified_at": "2024-05-01", "size": 10, "digest": "abc"}
        )
        assert model.modified_at == "2024-05-01"

    def test_accepts_camel_case(self):
        model = ModelDescriptor.model_validate({"name": "llama3", "modifiedAt": "2024-05-01"})
        assert model.modified_at == "2024-05-01"
        assert model.size == 0


def test_connection_status_defaults():
    status = ConnectionStatus(connected=False, provider="ollama")
    assert status.model is None
    assert status.error is None
    assert status.last_checked
