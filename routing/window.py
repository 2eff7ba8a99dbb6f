import json
from typing import Any, Iterable, List

from pydantic import BaseModel, ConfigDict, field_validator


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str = "user"
    content: str = ""

    @field_validator("role", mode="before")
    @classmethod
    def _default_role(cls, v: Any) -> str:
        if v is None or v == "":
            return "user"
        return v if isinstance(v, str) else str(v)

    @field_validator("content", mode="before")
    @classmethod
    def _stringify_content(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, str):
            return v
        return json.dumps(v)


def normalize_messages(raw: Any) -> List[ChatMessage]:
    """Coerce client-supplied messages, dropping the ones with blank content."""
    if not isinstance(raw, list):
        return []
    out = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        msg = ChatMessage(role=item.get("role"), content=item.get("content"))
        if msg.content.strip():
            out.append(msg)
    return out


def build_window(raw: Any, max_chars: int, system_prompt: str) -> List[ChatMessage]:
    """
    Keep the newest messages whose combined length fits in max_chars.

    Walks newest to oldest and stops at the first message that would overflow
    the budget, so the result is always a contiguous suffix of the input. The
    quality system prompt is prepended and does not count against the budget.
    """
    normalized = normalize_messages(raw)
    total = 0
    kept: List[ChatMessage] = []
    for msg in reversed(normalized):
        total += len(msg.content)
        if total > max_chars:
            break
        kept.append(msg)
    kept.reverse()
    return [ChatMessage(role="system", content=system_prompt)] + kept


def latest_content(window: Iterable[ChatMessage]) -> str:
    msgs = list(window)
    return msgs[-1].content if msgs else ""
