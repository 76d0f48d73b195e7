"""Incremental decoder for ``text/event-stream`` chat completion bodies.

The body arrives as repeated ``data: <payload>`` lines separated by blank
lines. Chunk boundaries from the transport do not line up with line
boundaries (or even with UTF-8 character boundaries), so the decoder keeps
the unterminated tail of each chunk and prepends it to the next one.

Payloads are JSON records carrying the incremental text at
``choices[0].delta.content``. The ``[DONE]`` payload ends the stream;
anything after it is ignored. Payloads that are not valid JSON are dropped
silently, as are records without content.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


def extract_delta(record: Any) -> str | None:
    """Return ``choices[0].delta.content`` from a parsed payload, if any."""
    if not isinstance(record, dict):
        return None
    choices = record.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


class SSEDecoder:
    """Synchronous incremental event-stream decoder.

    Feed it raw chunks in arrival order; each call returns the text deltas
    completed by that chunk. Once the sentinel is seen ``done`` is True and
    all further input is ignored.
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def feed(self, chunk: bytes | str) -> list[str]:
        """Consume one chunk and return the deltas it completes."""
        if self._done:
            return []

        text = self._utf8.decode(chunk) if isinstance(chunk, bytes) else chunk
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return self._process(lines)

    def finish(self) -> list[str]:
        """Flush the decoder at end of input.

        A trailing line without a newline is still an event line if it
        carries a complete payload.
        """
        if self._done:
            return []
        tail = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        return self._process([tail]) if tail else []

    def _process(self, lines: list[str]) -> list[str]:
        deltas: list[str] = []
        for line in lines:
            line = line.rstrip("\r")
            if not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):]
            if payload == DONE_SENTINEL:
                self._done = True
                self._buffer = ""
                break
            try:
                record = json.loads(payload)
            except json.JSONDecodeError:
                continue
            delta = extract_delta(record)
            if delta:
                deltas.append(delta)
        return deltas


async def decode_event_stream(chunks: AsyncIterable[bytes | str]) -> AsyncIterator[str]:
    """Decode an async byte stream into text deltas.

    Stops at the sentinel without reading further, or when ``chunks`` is
    exhausted. Releasing the transport is the caller's job; wrap the result
    in ``StreamingResponse`` with an ``on_close`` callback.

    Args:
        chunks: Raw body chunks as delivered by the transport

    Yields:
        Non-empty text fragments in order
    """
    decoder = SSEDecoder()
    async for chunk in chunks:
        for delta in decoder.feed(chunk):
            yield delta
        if decoder.done:
            logger.debug("Event stream reached end sentinel")
            return
    for delta in decoder.finish():
        yield delta
