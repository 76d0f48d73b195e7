from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StreamingResponse:
    """Wrapper for a streaming reply that owns its transport handle.

    Acts as an async iterator of text chunks. The ``on_close`` callback
    releases whatever sits underneath (HTTP response, upstream stream) and
    runs exactly once: when the iterator is exhausted, when it raises, or
    when the consumer calls ``aclose()`` early. Closing twice is a no-op.
    The stream is not restartable.

    Usage:
        stream = await provider.chat_completion_stream(messages)
        async with stream:
            async for chunk in stream:
                print(chunk, end="")
                if should_stop():
                    break
        # Transport released here whichever way the loop ended
    """

    def __init__(
        self,
        async_iter: AsyncIterator[str],
        on_close: Callable[[], Awaitable[None]] | None = None,
    ):
        """Initialize with an async iterator of text chunks.

        Args:
            async_iter: Async iterator yielding text chunks
            on_close: Coroutine function releasing the underlying resource
        """
        self._iter = async_iter
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "StreamingResponse":
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> str:
        """Get next chunk from the underlying iterator."""
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._iter.__anext__()
        except BaseException:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        """Stop the stream and release the transport (idempotent)."""
        if self._closed:
            return
        self._closed = True
        try:
            inner_close = getattr(self._iter, "aclose", None)
            if inner_close is not None:
                await inner_close()
        finally:
            if self._on_close is not None:
                await self._on_close()

    async def __aenter__(self) -> "StreamingResponse":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()


class ChatMessage(BaseModel):
    """Represents a chat message sent to the model."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user', 'assistant', or 'system'")
    content: str = Field(description="Content of the message")


class LLMResponse(BaseModel):
    """Response from an LLM provider."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage information"
    )
