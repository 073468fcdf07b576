from typing import Any

from pydantic import BaseModel, Field

from scripture_rag.verses import OriginalWord, VerseContext

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ContextRequest",
    "ContextResponse",
    "OriginalWord",
    "TranslationInfo",
    "VerseContext",
]


class ContextRequest(BaseModel):
    query: str = Field(min_length=1)
    translation: str = "WEB"
    custom_api_key: str | None = None  # Optional: caller's own Groq key for reference suggestions


class ContextResponse(BaseModel):
    query: str
    translation: str
    verses: list[VerseContext]


class ChatMessage(BaseModel):
    """A single chat turn as sent by the front end."""
    role: str | None = None  # "system", "user" or "assistant"; anything else is dropped
    content: str | list[Any] | None = None  # plain text or a list of text parts
    parts: list[Any] | None = None  # UI message parts, used when content is absent


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(default_factory=list)
    translation: str | None = None
    custom_api_key: str | None = None


class ChatResponse(BaseModel):
    answer: str
    model: str
    verses: list[VerseContext]  # Retrieved verses the answer was grounded on


class TranslationInfo(BaseModel):
    id: str
    name: str
    short_name: str | None = None
    language: str | None = None
