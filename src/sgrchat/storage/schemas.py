"""Versioned record schemas.

A stored conversation may be written in one of three shapes:

canonical
    ``{"title", "created_at", "updated_at", "messages"}``, the shape every
    flush produces.
nested-metadata
    ``{"messages": [...], "metadata": {"title", "createdAt",
    "lastAccessedAt"}}``, written by older versions under title-based
    file names.
textual
    front matter of ``key: "value"`` lines between ``---`` markers,
    followed by message sections each introduced by a ``## User``,
    ``## Assistant`` or ``## System`` line.

Each schema is a pure ``matches``/``parse`` pair plus a ``touch`` that
rewrites the access time in place. ``SCHEMAS`` lists them in detection
order; a document none of them accepts is a corrupt record.
"""

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import frontmatter
import yaml
from pydantic import ValidationError

from ..errors import ChatError, ErrorKind
from .models import DEFAULT_TITLE, ChatMetadata, LoadedChat, Message, to_iso

logger = logging.getLogger(__name__)

ROLE_HEADING = re.compile(r"^#{1,6}[ \t]*(user|assistant|system)[ \t]*:?[ \t]*$", re.IGNORECASE | re.MULTILINE)
# Header lines between the opening and closing markers, left byte-for-byte
# intact by touch apart from the access time line
HEADER_BLOCK = re.compile(r"\A\s*-{3,}[ \t]*\r?\n(?P<header>.*?)^-{3,}[ \t]*\r?$", re.DOTALL | re.MULTILINE)
ACCESS_LINE = re.compile(r"^lastAccessedAt[ \t]*:[^\r\n]*", re.MULTILINE)


@dataclass(frozen=True)
class RecordSchema:
    """A recognizable record shape."""

    name: str
    matches: Callable[[str], bool]
    parse: Callable[[str], LoadedChat]
    touch: Callable[[str, datetime], str]


def _json_object(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _dump(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _messages(raw: list[Any]) -> list[Message]:
    return [Message.model_validate(item) for item in raw]


# canonical

def _canonical_matches(text: str) -> bool:
    data = _json_object(text)
    return (
        data is not None
        and "title" in data
        and "created_at" in data
        and isinstance(data.get("messages"), list)
    )


def _canonical_parse(text: str) -> LoadedChat:
    data = _json_object(text) or {}
    metadata = ChatMetadata(
        title=data.get("title") or DEFAULT_TITLE,
        created_at=data["created_at"],
        last_accessed_at=data.get("updated_at") or data["created_at"],
    )
    return LoadedChat(messages=_messages(data["messages"]), metadata=metadata, schema_name="canonical")


def _canonical_touch(text: str, now: datetime) -> str:
    data = _json_object(text) or {}
    data["updated_at"] = to_iso(now)
    return _dump(data)


# nested metadata

def _nested_matches(text: str) -> bool:
    data = _json_object(text)
    return (
        data is not None
        and isinstance(data.get("metadata"), dict)
        and isinstance(data.get("messages"), list)
    )


def _nested_parse(text: str) -> LoadedChat:
    data = _json_object(text) or {}
    meta = data["metadata"]
    metadata = ChatMetadata(
        title=meta.get("title") or DEFAULT_TITLE,
        created_at=meta["createdAt"],
        last_accessed_at=meta.get("lastAccessedAt") or meta["createdAt"],
    )
    return LoadedChat(messages=_messages(data["messages"]), metadata=metadata, schema_name="nested-metadata")


def _nested_touch(text: str, now: datetime) -> str:
    data = _json_object(text) or {}
    data["metadata"]["lastAccessedAt"] = to_iso(now)
    return _dump(data)


# textual

def _front_matter(text: str) -> frontmatter.Post | None:
    if not frontmatter.checks(text):
        return None
    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, ValueError, TypeError):
        return None
    return post if isinstance(post.metadata, dict) else None


def _textual_matches(text: str) -> bool:
    post = _front_matter(text)
    return post is not None and "createdAt" in post.metadata


def _split_sections(body: str) -> list[Message]:
    parts = ROLE_HEADING.split(body)
    # parts = [preamble, role, text, role, text, ...]
    return [
        Message(role=role.lower(), content=content.strip())
        for role, content in zip(parts[1::2], parts[2::2])
    ]


def _textual_parse(text: str) -> LoadedChat:
    post = _front_matter(text)
    meta = post.metadata
    metadata = ChatMetadata(
        title=str(meta.get("title") or DEFAULT_TITLE),
        created_at=meta["createdAt"],
        last_accessed_at=meta.get("lastAccessedAt") or meta["createdAt"],
    )
    return LoadedChat(messages=_split_sections(post.content), metadata=metadata, schema_name="textual")


def _textual_touch(text: str, now: datetime) -> str:
    block = HEADER_BLOCK.match(text)
    if block is None:
        raise ValueError("front matter block not found")
    line = f'lastAccessedAt: "{to_iso(now)}"'
    header, count = ACCESS_LINE.subn(lambda _: line, block["header"], count=1)
    if count == 0:
        header += line + "\n"
    return text[:block.start("header")] + header + text[block.end("header"):]


CANONICAL = RecordSchema("canonical", _canonical_matches, _canonical_parse, _canonical_touch)
NESTED_METADATA = RecordSchema("nested-metadata", _nested_matches, _nested_parse, _nested_touch)
TEXTUAL = RecordSchema("textual", _textual_matches, _textual_parse, _textual_touch)

SCHEMAS: tuple[RecordSchema, ...] = (CANONICAL, NESTED_METADATA, TEXTUAL)


def detect_schema(text: str) -> RecordSchema | None:
    """Return the first schema accepting ``text``, or None."""
    for schema in SCHEMAS:
        if schema.matches(text):
            return schema
    return None


def _require_schema(text: str, source: str) -> RecordSchema:
    schema = detect_schema(text)
    if schema is None:
        raise ChatError(f"Invalid chat file format: unknown format ({source})", ErrorKind.CORRUPT_RECORD)
    return schema


def parse_document(text: str, source: str = "<document>") -> LoadedChat:
    """Normalize a stored document.

    Args:
        text: Raw document content
        source: Path used in error messages

    Returns:
        LoadedChat with messages and metadata

    Raises:
        ChatError: corrupt_record if no schema matches or the matching
            schema's content is invalid
    """
    schema = _require_schema(text, source)
    try:
        loaded = schema.parse(text)
    except (ValidationError, KeyError, TypeError) as exc:
        raise ChatError(
            f"Invalid chat file format: bad {schema.name} record ({source}): {exc}",
            ErrorKind.CORRUPT_RECORD,
        ) from exc
    logger.debug("Parsed %s as %s record", source, schema.name)
    return loaded


def touch_document(text: str, now: datetime, source: str = "<document>") -> str:
    """Return ``text`` rewritten with its access time set to ``now``.

    The document keeps its schema; creation time and messages are left
    as they are.
    """
    schema = _require_schema(text, source)
    try:
        return schema.touch(text, now)
    except ValueError as exc:
        raise ChatError(
            f"Invalid chat file format: bad {schema.name} record ({source}): {exc}",
            ErrorKind.CORRUPT_RECORD,
        ) from exc
