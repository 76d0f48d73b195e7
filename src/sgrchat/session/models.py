"""Data models for the active conversation."""

import time
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from ..storage.models import Message


def now_ms() -> int:
    """Current instant as a millisecond epoch."""
    return time.time_ns() // 1_000_000


class ChatMode(str, Enum):
    """Assistant behavior, selecting the system prompt."""

    AGENT = "agent"
    ASK = "ask"
    PLAN = "plan"


class FileContext(BaseModel):
    """Snapshot of a file attached to the next user message."""

    path: str = Field(description="Path of the attached file")
    content: str = Field(description="File content at attach time")
    title: str | None = Field(default=None, description="Display name")


class ChatSession(BaseModel):
    """The single active conversation.

    ``creation_key`` is the millisecond instant the session started; it is
    the identity of the persisted record and never changes. A session
    opened from a record stored under any other name carries that path in
    ``migrated_from`` until its first flush.
    """

    mode: ChatMode = ChatMode.ASK
    model: str
    messages: list[Message] = Field(default_factory=list)
    file_contexts: list[FileContext] = Field(default_factory=list)
    creation_key: int = Field(default_factory=now_ms)
    title: str | None = None
    persisted_path: str | None = None
    created_at: datetime | None = Field(
        default=None,
        description="Creation time of the stored record this session was opened from",
    )
    migrated_from: str | None = Field(
        default=None,
        description="Legacy record replaced by the next flush",
    )

    def has_user_message(self) -> bool:
        return any(message.role == "user" for message in self.messages)
