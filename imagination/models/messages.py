# ABOUTME: Pydantic models for transcript messages exchanged with the game master backend.
# ABOUTME: Defines chat roles and the whitespace-normalized, immutable ChatMessage.

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim the ends"""
    return _WHITESPACE.sub(" ", text).strip()


class Role(str, Enum):
    """Transcript roles, named after the chat-completions wire roles"""
    SYSTEM = "system"  # Narrator/system notes injected by the game loop
    USER = "user"  # Player input (typed or transcribed)
    ASSISTANT = "assistant"  # Game master backend replies


class ChatMessage(BaseModel):
    """One transcript entry. Content is normalized once, when the message is built."""

    role: Role
    content: str

    model_config = ConfigDict(frozen=True)

    @field_validator("content")
    @classmethod
    def collapse_whitespace(cls, v: str) -> str:
        return normalize_whitespace(v)

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=content)

    def to_openai(self) -> dict[str, str]:
        """Chat-completions message dict"""
        return {"role": self.role.value, "content": self.content}
