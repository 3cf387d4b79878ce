"""Data models for the assistant: configuration, messages, memories, status."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.config import settings

DEFAULT_SYSTEM_PROMPT = """你是 OmniCore 智能助手，一个专业的企业级加密资产管理平台AI助手。

你的核心能力包括:
1. 钱包管理 - 帮助用户查询余额、创建钱包、管理资产
2. 交易处理 - 协助发起、审核和签署交易
3. DeFi策略 - 提供收益优化建议和风险分析
4. 风险评估 - 实时评估交易和地址风险

请用专业、友好的语气回复用户。如果涉及敏感操作，请提醒用户进行二次确认。
对于复杂问题，请分步骤清晰地解释。"""


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _make_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# -- Configuration -----------------------------------------------------------


class Provider(StrEnum):
    MOCK = "mock"
    OLLAMA = "ollama"
    CUSTOM = "custom"


class LLMConfig(BaseModel):
    """The active inference configuration."""

    model_config = ConfigDict(validate_assignment=True)

    provider: Provider = Provider.MOCK
    endpoint: str = "http://localhost:11434"
    model: str = "qwen2.5:7b"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, ge=1)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    api_key: str = ""  # sent as a bearer token by the custom provider

    def merged(self, partial: dict[str, Any]) -> LLMConfig:
        """Return a validated copy with *partial* applied. Unknown keys are dropped."""
        known = {k: v for k, v in partial.items() if k in type(self).model_fields}
        return type(self).model_validate({**self.model_dump(), **known})


def default_config() -> LLMConfig:
    """The hard-coded defaults, with the provider/endpoint/model from settings."""
    return LLMConfig(
        provider=Provider(settings.default_provider),
        endpoint=settings.default_endpoint,
        model=settings.default_model,
    )


# -- Conversation ------------------------------------------------------------


class ActionType(StrEnum):
    QUERY_BALANCE = "query_balance"
    CREATE_TRANSACTION = "create_transaction"
    SIGN_TRANSACTION = "sign_transaction"
    ANALYZE_RISK = "analyze_risk"
    DEFI_STRATEGY = "defi_strategy"
    UPDATE_SETTINGS = "update_settings"


class ActionStatus(StrEnum):
    PENDING = "pending"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"


class MessageAction(BaseModel):
    """An operation attached to an assistant message."""

    type: ActionType
    status: ActionStatus = ActionStatus.PENDING
    result: str | None = None


class Message(BaseModel):
    """A single conversation message."""

    id: str = Field(default_factory=lambda: _make_id("msg"))
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: str = Field(default_factory=_now)
    action: MessageAction | None = None


# -- Memory ------------------------------------------------------------------


class MemoryType(StrEnum):
    PREFERENCE = "preference"
    TRANSACTION_PATTERN = "transaction_pattern"
    CONTACT = "contact"
    INSIGHT = "insight"


class MemoryDraft(BaseModel):
    """A memory candidate that has not been stored yet."""

    type: MemoryType
    key: str
    value: str
    confidence: float = Field(ge=0.0, le=1.0)


class MemoryItem(MemoryDraft):
    """A stored memory."""

    id: str = Field(default_factory=lambda: _make_id("mem"))
    learned_at: str = Field(default_factory=_now)
    usage_count: int = Field(default=0, ge=0)

    @classmethod
    def from_draft(cls, draft: MemoryDraft) -> MemoryItem:
        return cls(**draft.model_dump())


# -- Connectivity ------------------------------------------------------------


class ConnectionStatus(BaseModel):
    """Snapshot of the last reachability check. Never persisted."""

    connected: bool
    provider: Provider
    model: str | None = None
    last_checked: str = Field(default_factory=_now)
    error: str | None = None


class ModelDescriptor(BaseModel):
    """A model advertised by an inference endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    modified_at: str = Field(default="", alias="modifiedAt")
    size: int = 0
    digest: str = ""


# -- Capabilities ------------------------------------------------------------


class Capability(BaseModel):
    """A toggleable assistant feature shown in the capabilities panel."""

    id: str
    name: str
    description: str
    category: Literal["memory", "language", "control"]
    enabled: bool = True
