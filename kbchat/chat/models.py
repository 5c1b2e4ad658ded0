"""Bot and conversation message models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

DEFAULT_BOT_PROMPT = "You are a helpful assistant."


class Role(StrEnum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class Bot:
    """Configured chat persona. Read-only to the chat core."""

    id: str
    name: str = "Chatbot"
    prompt: str | None = None
    model: str | None = None
    temperature: float | None = None
    public: bool = True
    require_email: bool = False

    @property
    def instructions(self) -> str:
        """Base instruction text, falling back to a generic assistant prompt."""
        return self.prompt or DEFAULT_BOT_PROMPT


@dataclass(frozen=True)
class ChatMessage:
    """One role-tagged utterance in a turn's message list."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": str(self.role), "content": self.content}


@dataclass
class Message:
    """A persisted conversation message. Append-only."""

    bot_id: str
    session_id: str
    role: Role
    content: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "bot_id": self.bot_id,
            "session_id": self.session_id,
            "role": str(self.role),
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }
