"""Pytest configuration and shared fixtures."""
import asyncio
from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from sgrchat.errors import ChatError
from sgrchat.llm import ChatMessage, LLMProvider, LLMResponse, StreamingResponse
from sgrchat.storage import ChatRepository
from sgrchat.storage.in_memory import InMemoryDocumentStorage

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
START_MS = 1_700_000_000_000


class TickingClock:
    """Clock that advances one second on every reading."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


class MillisecondCounter:
    """Millisecond clock that advances by one on every reading."""

    def __init__(self, start: int = START_MS):
        self.current = start

    def __call__(self) -> int:
        value = self.current
        self.current += 1
        return value


class FakeProvider(LLMProvider):
    """Scripted messaging client.

    ``reply`` is streamed one chunk at a time; ``title`` answers one-shot
    completions. Either can be a ChatError to raise instead. With
    ``stall_after`` set, the stream waits forever once that many chunks
    have been sent.
    """

    def __init__(
        self,
        reply: list[str] | ChatError | None = None,
        title: str | ChatError = "Generated title",
        stall_after: int | None = None,
    ):
        self.reply = reply if reply is not None else ["Hel", "lo"]
        self.stall_after = stall_after
        self.title = title
        self.completion_calls: list[list[ChatMessage]] = []
        self.stream_calls: list[list[ChatMessage]] = []
        self.stream_closes = 0
        self.closed = False

    @property
    def model(self) -> str:
        return "fake-model"

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        self.completion_calls.append(list(messages))
        if isinstance(self.title, ChatError):
            raise self.title
        return LLMResponse(content=self.title, model=model or self.model)

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        self.stream_calls.append(list(messages))
        if isinstance(self.reply, ChatError):
            raise self.reply

        async def _chunks() -> AsyncIterator[str]:
            for sent, chunk in enumerate(self.reply):
                if sent == self.stall_after:
                    await asyncio.Event().wait()
                yield chunk

        async def _release() -> None:
            self.stream_closes += 1

        return StreamingResponse(_chunks(), on_close=_release)

    async def list_models(self) -> list[str]:
        return [self.model]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def storage():
    """Return an empty in-memory document storage."""
    return InMemoryDocumentStorage()


@pytest.fixture
def clock():
    """Return a clock ticking one second per reading."""
    return TickingClock()


@pytest.fixture
def clock_ms():
    """Return a millisecond counter."""
    return MillisecondCounter()


@pytest.fixture
def repository(storage, clock):
    """Return a repository over in-memory storage with a ticking clock."""
    return ChatRepository(storage, clock=clock)


@pytest.fixture
def provider():
    """Return a scripted provider."""
    return FakeProvider()


@pytest.fixture
def make_provider():
    """Return the scripted provider class for tests needing custom replies."""
    return FakeProvider
