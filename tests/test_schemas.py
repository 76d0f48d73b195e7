"""Unit tests for record schema detection and parsing."""
import json
import re
from datetime import datetime, timezone

import pytest

from sgrchat.errors import ChatError, ErrorKind
from sgrchat.storage import SCHEMAS, detect_schema, parse_document
from sgrchat.storage.schemas import touch_document

CANONICAL_DOC = json.dumps({
    "title": "Canonical chat",
    "created_at": "2024-01-01T00:00:00.000Z",
    "updated_at": "2024-01-02T00:00:00.000Z",
    "messages": [
        {"role": "user", "content": "hi", "timestamp": 1704067200000},
        {"role": "assistant", "content": "yo"},
    ],
})

NESTED_DOC = json.dumps({
    "messages": [{"role": "user", "content": "legacy question", "timestamp": 1}],
    "metadata": {
        "title": "Legacy chat",
        "createdAt": "2023-06-01T12:00:00.000Z",
        "lastAccessedAt": "2023-06-02T12:00:00.000Z",
    },
})

TEXTUAL_DOC = """---
title: "Textual chat"
createdAt: "2023-01-01T08:00:00.000Z"
lastAccessedAt: "2023-01-05T08:00:00.000Z"
---

## User
How do I reverse a list?

## Assistant
Use `reversed()` or slicing:

    items[::-1]

## System
Be brief.
"""

NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


class TestDetection:
    """Tests for ordered schema detection."""

    def test_schema_order(self):
        assert [schema.name for schema in SCHEMAS] == ["canonical", "nested-metadata", "textual"]

    @pytest.mark.parametrize("text,name", [
        (CANONICAL_DOC, "canonical"),
        (NESTED_DOC, "nested-metadata"),
        (TEXTUAL_DOC, "textual"),
    ])
    def test_detects(self, text, name):
        assert detect_schema(text).name == name

    def test_canonical_wins_over_nested(self):
        """A document satisfying both shapes is read as canonical."""
        data = json.loads(CANONICAL_DOC)
        data["metadata"] = {"title": "ignored", "createdAt": "2020-01-01T00:00:00Z"}
        assert detect_schema(json.dumps(data)).name == "canonical"

    @pytest.mark.parametrize("text", [
        "",
        "not json at all",
        "[1, 2, 3]",
        json.dumps({"title": "no messages", "created_at": "2024-01-01T00:00:00Z"}),
        json.dumps({"messages": [], "metadata": "not a dict"}),
        "---\ntitle: no creation time\n---\n\n## User\nhi\n",
        "# Just a markdown note\n",
    ])
    def test_unrecognized(self, text):
        assert detect_schema(text) is None


class TestParse:
    """Tests for normalizing each schema."""

    def test_canonical(self):
        loaded = parse_document(CANONICAL_DOC)

        assert loaded.schema_name == "canonical"
        assert loaded.metadata.title == "Canonical chat"
        assert loaded.metadata.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert loaded.metadata.last_accessed_at == datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert [(m.role, m.content, m.timestamp) for m in loaded.messages] == [
            ("user", "hi", 1704067200000),
            ("assistant", "yo", None),
        ]

    def test_nested_metadata(self):
        loaded = parse_document(NESTED_DOC)

        assert loaded.schema_name == "nested-metadata"
        assert loaded.metadata.title == "Legacy chat"
        assert loaded.metadata.last_accessed_at == datetime(2023, 6, 2, 12, tzinfo=timezone.utc)
        assert loaded.messages[0].content == "legacy question"

    def test_nested_without_access_time_uses_creation(self):
        data = json.loads(NESTED_DOC)
        del data["metadata"]["lastAccessedAt"]
        loaded = parse_document(json.dumps(data))
        assert loaded.metadata.last_accessed_at == loaded.metadata.created_at

    def test_textual(self):
        loaded = parse_document(TEXTUAL_DOC)

        assert loaded.schema_name == "textual"
        assert loaded.metadata.title == "Textual chat"
        assert loaded.metadata.created_at == datetime(2023, 1, 1, 8, tzinfo=timezone.utc)
        assert [m.role for m in loaded.messages] == ["user", "assistant", "system"]
        assert loaded.messages[0].content == "How do I reverse a list?"
        assert "items[::-1]" in loaded.messages[1].content
        assert loaded.messages[2].content == "Be brief."

    def test_missing_title_defaults(self):
        data = json.loads(CANONICAL_DOC)
        data["title"] = ""
        assert parse_document(json.dumps(data)).metadata.title == "New Chat"

    def test_unknown_shape_is_corrupt(self):
        with pytest.raises(ChatError) as exc_info:
            parse_document('{"hello": "world"}', "Chat History/x.json")
        assert exc_info.value.kind == ErrorKind.CORRUPT_RECORD
        assert "Chat History/x.json" in str(exc_info.value)

    @pytest.mark.parametrize("mutate", [
        lambda data: data["messages"].append({"role": "robot", "content": "?"}),
        lambda data: data.update(created_at="yesterday"),
        lambda data: data["messages"].append({"role": "user"}),
    ])
    def test_invalid_content_is_corrupt(self, mutate):
        data = json.loads(CANONICAL_DOC)
        mutate(data)
        with pytest.raises(ChatError) as exc_info:
            parse_document(json.dumps(data))
        assert exc_info.value.kind == ErrorKind.CORRUPT_RECORD


class TestTouch:
    """Tests for in-place access time updates."""

    def test_canonical_updates_updated_at(self):
        touched = json.loads(touch_document(CANONICAL_DOC, NOW))
        assert touched["updated_at"] == "2024-05-01T09:30:00.000Z"
        assert touched["created_at"] == "2024-01-01T00:00:00.000Z"
        assert len(touched["messages"]) == 2

    def test_nested_keeps_schema(self):
        touched = touch_document(NESTED_DOC, NOW)
        loaded = parse_document(touched)
        assert loaded.schema_name == "nested-metadata"
        assert loaded.metadata.last_accessed_at == NOW
        assert loaded.metadata.created_at == datetime(2023, 6, 1, 12, tzinfo=timezone.utc)

    def test_textual_keeps_schema(self):
        touched = touch_document(TEXTUAL_DOC, NOW)
        loaded = parse_document(touched)
        assert loaded.schema_name == "textual"
        assert loaded.metadata.last_accessed_at == NOW
        assert loaded.metadata.created_at == datetime(2023, 1, 1, 8, tzinfo=timezone.utc)
        assert [m.content for m in loaded.messages] == [m.content for m in parse_document(TEXTUAL_DOC).messages]

    def test_textual_rewrites_only_access_line(self):
        """Every other byte of the document is kept."""
        touched = touch_document(TEXTUAL_DOC, NOW)
        assert touched == TEXTUAL_DOC.replace(
            'lastAccessedAt: "2023-01-05T08:00:00.000Z"',
            'lastAccessedAt: "2024-05-01T09:30:00.000Z"',
        )

    def test_textual_inserts_missing_access_line(self):
        document = '---\ntitle: "T"\ncreatedAt: 2024-01-01T12:00:00Z\n---\n\n## User\nhi\n'

        touched = touch_document(document, NOW)

        assert touched == (
            '---\ntitle: "T"\ncreatedAt: 2024-01-01T12:00:00Z\n'
            'lastAccessedAt: "2024-05-01T09:30:00.000Z"\n---\n\n## User\nhi\n'
        )
        assert re.search(r'lastAccessedAt:\s*"([^"]+)"', touched).group(1) == "2024-05-01T09:30:00.000Z"
        loaded = parse_document(touched)
        assert loaded.metadata.created_at == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        assert loaded.metadata.last_accessed_at == NOW

    def test_corrupt_document_rejected(self):
        with pytest.raises(ChatError) as exc_info:
            touch_document("garbage", NOW)
        assert exc_info.value.kind == ErrorKind.CORRUPT_RECORD
