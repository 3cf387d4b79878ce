"""Rule-based memory extraction from a single completed turn.

Rules are evaluated in priority order and the first match wins, so a turn
produces at most one draft.  Nothing here persists; the orchestrator decides
what to store.
"""

from __future__ import annotations

import re

from src.assistant.models import MemoryDraft, MemoryType

PREFERENCE_MARKERS = ("我喜欢", "我偏好", "我习惯", "我更喜欢", "i prefer", "i like", "my preference")
ADDRESS_MARKERS = ("地址", "address")
REMEMBER_MARKERS = ("记住", "remember")

ADDRESS_RE = re.compile(r"0x[a-fA-F0-9]{40}")

PREFERENCE_KEY = "用户偏好"
CONTACT_KEY = "常用地址"
INSTRUCTION_KEY = "用户指令"


def _has_marker(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def extract_memory(user_message: str, assistant_response: str = "") -> MemoryDraft | None:
    """Return a memory draft for this turn, or None.

    1. preference phrase            -> preference (0.8), whole message
    2. address word + 0x address    -> contact (0.7), the first address
    3. "remember" phrase            -> preference (0.9), whole message

    *assistant_response* is accepted for call-site symmetry; no rule reads it.
    """
    lowered = user_message.lower()

    if _has_marker(lowered, PREFERENCE_MARKERS):
        return MemoryDraft(
            type=MemoryType.PREFERENCE,
            key=PREFERENCE_KEY,
            value=user_message,
            confidence=0.8,
        )

    if _has_marker(lowered, ADDRESS_MARKERS):
        match = ADDRESS_RE.search(user_message)
        if match:
            return MemoryDraft(
                type=MemoryType.CONTACT,
                key=CONTACT_KEY,
                value=match.group(0),
                confidence=0.7,
            )

    if _has_marker(lowered, REMEMBER_MARKERS):
        return MemoryDraft(
            type=MemoryType.PREFERENCE,
            key=INSTRUCTION_KEY,
            value=user_message,
            confidence=0.9,
        )

    return None
