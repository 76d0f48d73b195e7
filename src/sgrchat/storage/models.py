"""Data models for the persistence layer."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

Role = Literal["user", "assistant", "system"]

DEFAULT_TITLE = "New Chat"


def to_iso(value: datetime) -> str:
    """Format an instant the way records store it: UTC, milliseconds, ``Z``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Message(BaseModel):
    """A single conversation message.

    ``content`` of a trailing assistant message grows in place while a
    reply streams in. ``timestamp`` is a millisecond epoch.
    """

    role: Role
    content: str
    timestamp: int | None = None


class ChatFileRecord(BaseModel):
    """Canonical durable form of one conversation."""

    title: str
    created_at: datetime
    updated_at: datetime
    messages: list[Message] = Field(default_factory=list)

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format."""
        return to_iso(value)

    def to_document(self) -> dict:
        """JSON-ready document; absent message timestamps are omitted."""
        return self.model_dump(mode="json", exclude_none=True)


class ChatMetadata(BaseModel):
    """Schema-independent metadata of a stored conversation."""

    title: str = DEFAULT_TITLE
    created_at: datetime
    last_accessed_at: datetime

    @field_validator("created_at", "last_accessed_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Treat naive instants as UTC so listings can be ordered."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_serializer("created_at", "last_accessed_at")
    def serialize_datetime(self, value: datetime) -> str:
        return to_iso(value)


class LoadedChat(BaseModel):
    """A stored conversation normalized from whichever schema it used."""

    model_config = ConfigDict(frozen=True)

    messages: list[Message]
    metadata: ChatMetadata
    schema_name: str = Field(description="Name of the schema the document matched")


class ChatListing(BaseModel):
    """One entry of a history listing."""

    model_config = ConfigDict(frozen=True)

    path: str
    metadata: ChatMetadata
    message_count: int = 0

    @property
    def title(self) -> str:
        return self.metadata.title
