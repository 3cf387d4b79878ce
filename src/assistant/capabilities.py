"""Default assistant capabilities shown in the capabilities panel.

Toggles live in memory only; every new orchestrator starts from this list.
"""

from __future__ import annotations

from src.assistant.models import Capability

_DEFAULTS: list[dict] = [
    {
        "id": "cap-conversation-memory",
        "name": "对话记忆",
        "description": "记住对话上下文，支持多轮连续交流",
        "category": "memory",
    },
    {
        "id": "cap-preference-learning",
        "name": "偏好学习",
        "description": "学习和记住用户偏好与模式",
        "category": "memory",
    },
    {
        "id": "cap-natural-language",
        "name": "自然语言理解",
        "description": "理解中英文自然语言指令",
        "category": "language",
    },
    {
        "id": "cap-intent-parsing",
        "name": "意图解析",
        "description": '将 "从Treasury Vault转账5000 USDC" 这类指令解析为结构化操作',
        "category": "language",
    },
    {
        "id": "cap-wallet-control",
        "name": "钱包控制",
        "description": "查询余额、管理钱包",
        "category": "control",
    },
    {
        "id": "cap-transaction-control",
        "name": "交易控制",
        "description": "发起、审核和签署交易（敏感操作需二次确认）",
        "category": "control",
    },
    {
        "id": "cap-risk-monitoring",
        "name": "风险监控",
        "description": "实时评估交易和地址风险",
        "category": "control",
        "enabled": False,
    },
]


def default_capabilities() -> list[Capability]:
    """A fresh copy of the default capability list."""
    return [Capability.model_validate(item) for item in _DEFAULTS]
