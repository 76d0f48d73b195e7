"""Chat history repository.

Maps conversations onto timestamp-keyed documents:
``<folder>/<creation key>.json`` where the creation key is a millisecond
epoch. Every flush rewrites the whole document in the canonical schema;
older schemas are still readable and are migrated on their next flush.
"""

import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import PurePosixPath

from ..errors import ChatError, ErrorKind
from ..search import bm25_search
from .base import DocumentStorage
from .models import DEFAULT_TITLE, ChatFileRecord, ChatListing, LoadedChat, Message
from .schemas import parse_document, touch_document

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "Chat History"
RECORD_SUFFIXES = (".json", ".md")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def key_from_path(path: str) -> int | None:
    """Return the creation key encoded in a record path.

    Args:
        path: Record path such as ``"Chat History/1700000000000.json"``

    Returns:
        The integer key, or None if the file name is not purely numeric
    """
    stem = PurePosixPath(path).stem
    if not stem.isascii() or not stem.isdigit():
        return None
    return int(stem)


class ChatRepository:
    """Reads and writes conversations through a DocumentStorage.

    The clock is injectable; it must return timezone-aware instants and,
    for ``updated_at`` to strictly increase across flushes, it must be
    monotonic at millisecond resolution.
    """

    def __init__(
        self,
        storage: DocumentStorage,
        folder: str = DEFAULT_FOLDER,
        clock: Callable[[], datetime] | None = None,
    ):
        self._storage = storage
        self._folder = folder.rstrip("/")
        self._clock = clock or utc_now
        self._skipped: list[str] = []

    @property
    def folder(self) -> str:
        return self._folder

    @property
    def storage(self) -> DocumentStorage:
        return self._storage

    @property
    def skipped_paths(self) -> list[str]:
        """Paths the most recent listing could not parse."""
        return list(self._skipped)

    def path_for_key(self, creation_key: int) -> str:
        return f"{self._folder}/{creation_key}.json"

    @staticmethod
    def key_from_path(path: str) -> int | None:
        return key_from_path(path)

    async def save(
        self,
        messages: Sequence[Message],
        creation_key: int,
        title: str | None = None,
        created_at: datetime | None = None,
    ) -> str:
        """Write a conversation to its timestamp-keyed document.

        An existing record at the same key keeps its ``created_at``; the
        title and messages are replaced and ``updated_at`` is set to now.

        Args:
            messages: Full message list
            creation_key: Millisecond instant identifying the record
            title: Conversation title (default: "New Chat")
            created_at: Creation time for a record not yet stored at this
                key (default: now)

        Returns:
            Path of the written record
        """
        await self._storage.ensure_folder(self._folder)
        path = self.path_for_key(creation_key)
        now = self._clock()

        created_at = created_at or now
        if await self._storage.exists(path):
            try:
                existing = parse_document(await self._storage.read(path), path)
                created_at = existing.metadata.created_at
            except ChatError as exc:
                logger.warning("Existing record %s is unreadable, resetting created_at: %s", path, exc)

        record = ChatFileRecord(
            title=title or DEFAULT_TITLE,
            created_at=created_at,
            updated_at=now,
            messages=[message.model_copy() for message in messages],
        )
        await self._storage.write(path, json.dumps(record.to_document(), indent=2, ensure_ascii=False))
        logger.debug("Flushed %d messages to %s", len(record.messages), path)
        return path

    async def _read(self, path: str) -> str:
        try:
            return await self._storage.read(path)
        except FileNotFoundError:
            raise ChatError(f"File not found: {path}", ErrorKind.RECORD_NOT_FOUND) from None

    async def load(self, path: str) -> LoadedChat:
        """Read and normalize a record without modifying it.

        Raises:
            ChatError: record_not_found or corrupt_record
        """
        return parse_document(await self._read(path), path)

    async def touch(self, path: str) -> LoadedChat:
        """Mark a record as accessed now and return its normalized form.

        The document keeps its schema, creation time and messages.

        Raises:
            ChatError: record_not_found or corrupt_record
        """
        text = await self._read(path)
        parse_document(text, path)
        updated = touch_document(text, self._clock(), path)
        await self._storage.write(path, updated)
        return parse_document(updated, path)

    async def list_chats(self) -> list[ChatListing]:
        """List stored conversations, most recently accessed first.

        Documents that cannot be parsed are skipped and logged; ties keep
        the storage enumeration order.
        """
        await self._storage.ensure_folder(self._folder)
        listings: list[ChatListing] = []
        skipped: list[str] = []
        for path in await self._storage.list_documents(self._folder):
            if not path.endswith(RECORD_SUFFIXES):
                continue
            try:
                loaded = await self.load(path)
            except ChatError as exc:
                skipped.append(path)
                logger.warning("Skipping %s (%s): %s", path, exc.kind.value, exc)
                continue
            listings.append(ChatListing(path=path, metadata=loaded.metadata, message_count=len(loaded.messages)))

        self._skipped = skipped
        if skipped:
            logger.debug("Listing of %s skipped %d unreadable records", self._folder, len(skipped))
        return sorted(listings, key=lambda item: item.metadata.last_accessed_at, reverse=True)

    async def last_chat(self) -> ChatListing | None:
        """Return the most recently accessed conversation, if any."""
        chats = await self.list_chats()
        return chats[0] if chats else None

    async def search(self, query: str) -> list[ChatListing]:
        """List conversations ranked by title relevance to ``query``."""
        return bm25_search(query, await self.list_chats(), field="title")

    async def delete(self, path: str) -> None:
        """Remove a record; a missing record is not an error."""
        await self._storage.delete(path)
