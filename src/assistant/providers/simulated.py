"""Simulated provider: canned replies streamed one character at a time."""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING

from src.assistant.models import ConnectionStatus, MemoryType, Provider
from src.assistant.providers.base import FetchResult
from src.config import settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from src.assistant.models import LLMConfig, MemoryItem, Message

MOCK_MODEL_NAME = "mock-omnicore"

WALLET_RESPONSE = (
    "我已经检查了您的钱包状态。您目前有:\n\n"
    "💰 **总资产**: $231,690.75\n\n"
    "主要钱包:\n"
    "- Treasury Vault: $125,432 (Ethereum)\n"
    "- Operating Account: $23,234 (Polygon)\n"
    "- DeFi Strategy: $8,024 (Arbitrum)\n\n"
    "需要我执行什么操作吗？"
)

TRANSACTION_RESPONSE = (
    "我可以帮您创建新交易。请提供以下信息:\n\n"
    "1. 发送方钱包\n"
    "2. 接收地址\n"
    "3. 金额和代币\n"
    "4. 交易描述\n\n"
    '或者您可以说 "从Treasury Vault转账5000 USDC到供应商"，我会自动解析。'
)

RISK_RESPONSE = (
    "🔍 **风险分析报告**\n\n"
    "当前待处理交易风险:\n\n"
    "⚠️ **高风险** - tx-3 (Operating Account)\n"
    "- 大额转账: 25,000 USDT\n"
    "- 首次收款地址\n"
    "- 建议: 验证收款方身份\n\n"
    "✅ **低风险** - tx-1 (Treasury Vault)\n"
    "- 已知收款方\n"
    "- 常规交易模式\n\n"
    "需要我提供更详细的分析吗？"
)

DEFI_RESPONSE = (
    "📊 **DeFi 策略建议**\n\n"
    "基于您的风险偏好，推荐:\n\n"
    "1. **稳定币借贷** (Aave V3)\n   - APY: 5.2%\n   - 风险: 低\n\n"
    "2. **ETH 质押** (Lido)\n   - APY: 3.8%\n   - 风险: 低\n\n"
    "3. **流动性挖矿** (Uniswap V3)\n   - APY: 12.5%\n   - 风险: 中\n\n"
    "需要我帮您配置自动投资策略吗？"
)

GREETING_RESPONSE = (
    "您好！我是 OmniCore 智能助手 👋\n\n"
    "我可以帮您查询钱包余额、创建和审核交易、分析风险以及管理 DeFi 策略。\n\n"
    "今天需要我做些什么？"
)

MEMORY_RESPONSE = (
    "🧠 **记忆功能**\n\n"
    "我会在对话中学习您的偏好和常用地址，并保存在本地。\n"
    '您可以直接说 "记住..." 让我记下重要信息，也可以在记忆面板中查看和删除。'
)

DEFAULT_RESPONSE = (
    "感谢您的提问！我是 OmniCore 智能助手，可以帮助您:\n\n"
    "• 📊 查询和管理钱包\n"
    "• 💸 创建和签署交易\n"
    "• 🔍 分析交易风险\n"
    "• 📈 管理 DeFi 策略\n"
    "• ⚙️ 配置平台设置\n\n"
    "请告诉我您需要什么帮助？"
)

# Evaluated in order; first group with a matching keyword wins.
RESPONSE_TABLE: list[tuple[str, tuple[str, ...], str]] = [
    ("wallet", ("钱包", "余额", "wallet", "balance"), WALLET_RESPONSE),
    ("transaction", ("交易", "转账", "transaction", "transfer"), TRANSACTION_RESPONSE),
    ("risk", ("风险", "分析", "risk", "analysis"), RISK_RESPONSE),
    ("defi", ("defi", "策略", "收益", "strategy", "yield"), DEFI_RESPONSE),
    ("greeting", ("你好", "您好", "hello", "hi", "hey"), GREETING_RESPONSE),
    ("memory", ("记住", "记得", "记忆", "remember", "memory"), MEMORY_RESPONSE),
]

# Short greetings that occur inside ordinary words ("this", "they").
_WHOLE_WORD_KEYWORDS = {
    kw: re.compile(rf"(?<![a-z]){kw}(?![a-z])") for kw in ("hi", "hey")
}


def _contains(text: str, keyword: str) -> bool:
    pattern = _WHOLE_WORD_KEYWORDS.get(keyword)
    if pattern is not None:
        return pattern.search(text) is not None
    return keyword in text


def match_group(user_message: str) -> str:
    """Return the name of the response group for *user_message*."""
    lowered = user_message.lower()
    for group, keywords, _ in RESPONSE_TABLE:
        if any(_contains(lowered, kw) for kw in keywords):
            return group
    return "default"


def _personalize(response: str, memories: list[MemoryItem]) -> str:
    preferences = [m for m in memories if m.type == MemoryType.PREFERENCE]
    if not preferences:
        return response
    lines = [f"- {m.key}: {m.value}" for m in preferences]
    return f"{response}\n\n📝 根据您的偏好:\n" + "\n".join(lines)


def canned_response(user_message: str, memories: list[MemoryItem]) -> str:
    """Full simulated reply for *user_message*, personalised with preferences."""
    group = match_group(user_message)
    text = next((t for name, _, t in RESPONSE_TABLE if name == group), DEFAULT_RESPONSE)
    return _personalize(text, memories)


class SimulatedProvider:
    """Answers from a fixed keyword table without any network access."""

    def __init__(self, delay: float | None = None) -> None:
        self._delay = delay

    @property
    def name(self) -> str:
        return Provider.MOCK.value

    @property
    def delay(self) -> float:
        return settings.mock_stream_delay if self._delay is None else self._delay

    async def probe(self, config: LLMConfig) -> ConnectionStatus:
        return ConnectionStatus(connected=True, provider=Provider.MOCK, model=MOCK_MODEL_NAME)

    async def fetch_models(self, config: LLMConfig) -> FetchResult:
        return FetchResult()

    def context_memories(self, memories: list[MemoryItem]) -> list[MemoryItem]:
        return [m for m in memories if m.type == MemoryType.PREFERENCE]

    async def stream(
        self,
        user_message: str,
        history: list[Message],
        memories: list[MemoryItem],
        config: LLMConfig,
    ) -> AsyncIterator[str]:
        text = canned_response(user_message, memories)
        for index, char in enumerate(text):
            if index and self.delay:
                await asyncio.sleep(self.delay)
            yield char
