"""Owner of the active conversation.

``SessionStore`` holds at most one ``ChatSession``. It applies message
mutations, drives edit truncation and restore, and coordinates title
generation, persistence and streaming replies around the session.

Only the first user message of a session is written to storage
automatically; everything after that is persisted by ``flush()``. A reply
stream opened by ``send_message`` flushes on its own: periodically while
deltas arrive and once more when it ends or is cancelled.

Callers must not start a second ``send_message`` while a reply is still
streaming; the store does not guard against it.
"""

import logging
import time
from collections.abc import AsyncIterator, Callable
from functools import partial

from ..errors import ChatError, ErrorKind
from ..llm import ChatMessage, LLMProvider, StreamingResponse
from ..prompts import get_system_prompt
from ..storage import ChatRepository, Message, key_from_path
from .models import ChatMode, ChatSession, FileContext, now_ms
from .titles import TitleGenerator

logger = logging.getLogger(__name__)


def render_file_contexts(text: str, file_contexts: list[FileContext]) -> str:
    """Prefix a user message with its attached files."""
    if not file_contexts:
        return text
    blocks = "\n\n".join(f"[File: {fc.path}]\n{fc.content}\n[/File]" for fc in file_contexts)
    return f"{blocks}\n\nUser question: {text}"


class SessionStore:
    """Session state machine over {no session, active}.

    Args:
        repository: Where conversations are persisted
        provider: Messaging client; needed for ``send_message`` and for
            model-written titles
        titles: Title generator (default: one backed by ``provider``)
        temperature: Sampling temperature for replies
        max_tokens: Reply length limit
        flush_interval: Seconds between flushes while a reply streams
        clock_ms: Millisecond clock for message timestamps and creation keys
    """

    def __init__(
        self,
        repository: ChatRepository,
        provider: LLMProvider | None = None,
        titles: TitleGenerator | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = 2000,
        flush_interval: float = 2.0,
        clock_ms: Callable[[], int] = now_ms,
    ):
        self._repository = repository
        self._provider = provider
        self._titles = titles or TitleGenerator(provider)
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._flush_interval = flush_interval
        self._clock_ms = clock_ms
        self._session: ChatSession | None = None
        self._edit_snapshot: list[Message] | None = None

    @property
    def session(self) -> ChatSession | None:
        """The active session, or None."""
        return self._session

    @property
    def repository(self) -> ChatRepository:
        return self._repository

    @property
    def edit_snapshot(self) -> list[Message] | None:
        """Messages removed by the last truncation, if not yet restored."""
        if self._edit_snapshot is None:
            return None
        return [message.model_copy() for message in self._edit_snapshot]

    def require_session(self) -> ChatSession:
        """Return the active session.

        Raises:
            ChatError: no_active_session
        """
        if self._session is None:
            raise ChatError.no_active_session()
        return self._session

    def _default_model(self) -> str:
        if self._provider is None:
            raise ValueError("A model is required when no provider is configured")
        return self._provider.model

    # lifecycle

    def start(self, mode: ChatMode = ChatMode.ASK, model: str | None = None) -> ChatSession:
        """Begin a new conversation, discarding the current one and its edit snapshot."""
        self._session = ChatSession(
            mode=ChatMode(mode),
            model=model or self._default_model(),
            creation_key=self._clock_ms(),
        )
        self._edit_snapshot = None
        logger.debug("Started session %d (%s, %s)", self._session.creation_key, self._session.mode.value, self._session.model)
        return self._session

    def clear(self) -> None:
        """Discard the active session and any edit snapshot."""
        self._session = None
        self._edit_snapshot = None

    async def open(self, path: str, mode: ChatMode = ChatMode.ASK, model: str | None = None) -> ChatSession:
        """Make a stored conversation the active one.

        The record's access time is updated. Records whose file name is
        not a creation key get a fresh key. A record stored under any name
        other than ``<key>.json`` is rewritten canonically on the next
        flush, and the old document is then removed.

        Raises:
            ChatError: record_not_found or corrupt_record
        """
        loaded = await self._repository.touch(path)
        key = key_from_path(path)
        creation_key = key if key is not None else self._clock_ms()
        canonical = self._repository.path_for_key(creation_key)
        self._session = ChatSession(
            mode=ChatMode(mode),
            model=model or self._default_model(),
            messages=list(loaded.messages),
            creation_key=creation_key,
            title=loaded.metadata.title,
            created_at=loaded.metadata.created_at,
            persisted_path=path if key is not None else None,
            migrated_from=path if path != canonical else None,
        )
        self._edit_snapshot = None
        return self._session

    # mutations

    async def append_user(self, content: str, title_text: str | None = None) -> Message:
        """Append a user message.

        The first user message of a session triggers title generation (if
        no title is set) and an immediate write to storage.

        Args:
            content: Message content as sent to the model
            title_text: Text to derive the title from (default: content)

        Returns:
            The appended message
        """
        session = self.require_session()
        is_first = not session.has_user_message()
        message = Message(role="user", content=content, timestamp=self._clock_ms())
        session.messages.append(message)

        if is_first:
            if session.title is None:
                session.title = await self._titles.generate(title_text or content, session.model)
            await self._flush_session(session)
        return message

    def append_assistant_delta(self, text: str) -> Message:
        """Extend the trailing assistant message, or start one."""
        return self._append_delta(self.require_session(), text)

    def _append_delta(self, session: ChatSession, text: str) -> Message:
        if session.messages and session.messages[-1].role == "assistant":
            last = session.messages[-1]
            last.content += text
            return last
        message = Message(role="assistant", content=text, timestamp=self._clock_ms())
        session.messages.append(message)
        return message

    def set_title(self, title: str) -> None:
        """Override the session title."""
        self.require_session().title = title

    def add_file_context(self, path: str, content: str, title: str | None = None) -> None:
        """Attach a file to the session; a path already attached is ignored."""
        session = self.require_session()
        if any(fc.path == path for fc in session.file_contexts):
            return
        session.file_contexts.append(FileContext(path=path, content=content, title=title))

    def remove_file_context(self, path: str) -> None:
        if self._session is None:
            return
        self._session.file_contexts = [fc for fc in self._session.file_contexts if fc.path != path]

    # editing

    def truncate_at(self, index: int) -> list[Message]:
        """Drop the message at ``index`` and everything after it.

        The removed messages are kept as the edit snapshot, replacing any
        previous one, and attached files are detached.

        Returns:
            The removed messages

        Raises:
            IndexError: If index is negative or past the end
        """
        session = self.require_session()
        if index < 0 or index > len(session.messages):
            raise IndexError(f"Message index {index} out of range (0..{len(session.messages)})")

        removed = session.messages[index:]
        session.messages = session.messages[:index]
        session.file_contexts = []
        self._edit_snapshot = [message.model_copy() for message in removed]
        return removed

    def restore(self) -> bool:
        """Append the edit snapshot back and clear it.

        Returns:
            True if messages were restored, False if there was no snapshot
        """
        if self._edit_snapshot is None:
            return False
        session = self.require_session()
        session.messages.extend(self._edit_snapshot)
        self._edit_snapshot = None
        return True

    # persistence

    async def flush(self) -> str:
        """Write the active session to storage.

        Returns:
            Path of the record
        """
        return await self._flush_session(self.require_session())

    async def _flush_session(self, session: ChatSession) -> str:
        path = await self._repository.save(
            session.messages, session.creation_key, session.title, created_at=session.created_at
        )
        session.persisted_path = path
        if session.migrated_from is not None:
            await self._repository.delete(session.migrated_from)
            logger.info("Migrated %s to %s", session.migrated_from, path)
            session.migrated_from = None
        return path

    # streaming

    def request_messages(self) -> list[ChatMessage]:
        """Conversation as sent to the model, led by the mode's system prompt."""
        session = self.require_session()
        messages = [ChatMessage(role="system", content=get_system_prompt(session.mode.value))]
        messages.extend(
            ChatMessage(role=message.role, content=message.content)
            for message in session.messages
            if message.role != "system"
        )
        return messages

    async def send_message(self, text: str) -> StreamingResponse:
        """Send a user message and stream the assistant reply into the session.

        Each yielded delta has already been appended to the session. Closing
        the returned stream early (cancel) stops the reply, releases the
        transport and flushes whatever arrived.

        Raises:
            ChatError: not_configured, no_active_session, or any
                classified failure from opening the stream
        """
        if self._provider is None:
            raise ChatError("LLM client not initialized. Please check your settings.", ErrorKind.NOT_CONFIGURED)
        session = self.require_session()

        await self.append_user(render_file_contexts(text, session.file_contexts), title_text=text)
        upstream = await self._provider.chat_completion_stream(
            self.request_messages(),
            model=session.model,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        return StreamingResponse(
            self._relay(session, upstream),
            on_close=partial(self._finish_reply, session, upstream),
        )

    async def _relay(self, session: ChatSession, upstream: StreamingResponse) -> AsyncIterator[str]:
        last_flush = time.monotonic()
        async for delta in upstream:
            self._append_delta(session, delta)
            yield delta
            if time.monotonic() - last_flush >= self._flush_interval:
                await self._flush_session(session)
                last_flush = time.monotonic()

    async def _finish_reply(self, session: ChatSession, upstream: StreamingResponse) -> None:
        try:
            await upstream.aclose()
        finally:
            await self._flush_session(session)
            logger.debug("Reply for session %d finished", session.creation_key)
