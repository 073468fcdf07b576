"""
Chat message normalization at the API boundary.

Front ends send message content as a string, as a list of text parts
(strings or {"type": "text", "text": ...}), or as a `parts` list with no
content. Everything is reduced to ChatTurn(role, text) once here; turns
with an unknown role or no text are dropped.
"""
from dataclasses import dataclass

from scripture_rag.models import ChatMessage

ALLOWED_ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class ChatTurn:
    role: str
    text: str

    def as_message(self) -> dict:
        return {"role": self.role, "content": self.text}


def message_text(content) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text" and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts).strip()
    return ""


def normalize_messages(messages: list[ChatMessage]) -> list[ChatTurn]:
    turns = []
    for message in messages:
        if message.role not in ALLOWED_ROLES:
            continue
        text = message_text(message.content) or message_text(message.parts)
        if text:
            turns.append(ChatTurn(role=message.role, text=text))
    return turns


def split_last_user_turn(turns: list[ChatTurn]) -> tuple[list[ChatTurn], ChatTurn | None]:
    """
    Split a conversation at its last user turn.

    Returns:
        (history before the last user turn, the last user turn or None)
    """
    for i in range(len(turns) - 1, -1, -1):
        if turns[i].role == "user":
            return turns[:i], turns[i]
    return turns, None
