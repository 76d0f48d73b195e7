"""OpenAI-compatible chat endpoint provider.

Uses the official OpenAI Python SDK against any endpoint that speaks the
Chat Completions protocol. Streaming goes through the SDK's raw streaming
response so the event-stream body is decoded by ``sgrchat.llm.streaming``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ...errors import ChatError, ErrorKind
from ..base import LLMProvider
from ..models import ChatMessage, LLMResponse, StreamingResponse
from ..streaming import decode_event_stream

logger = logging.getLogger(__name__)


async def _body_chunks(response: Any) -> AsyncIterator[bytes]:
    """Raw body chunks, with transport failures classified."""
    try:
        async for chunk in response.iter_bytes():
            yield chunk
    except httpx.TransportError as exc:
        raise ChatError(f"Network error: {exc}", ErrorKind.NETWORK) from exc


def translate_error(exc: openai.OpenAIError, model: str | None = None) -> ChatError:
    """Map an SDK exception onto the ChatError taxonomy."""
    if isinstance(exc, openai.APIStatusError):
        return ChatError.from_status(exc.status_code, exc.body, model)
    if isinstance(exc, openai.APIConnectionError):
        return ChatError(f"Network error: {exc}", ErrorKind.NETWORK)
    return ChatError(f"Failed to send message: {exc}", ErrorKind.NETWORK)


class OpenAIProvider(LLMProvider):
    """Provider for OpenAI-compatible endpoints.

    Hidden design decisions:
    - OpenAI API client initialization (retries disabled)
    - Proxy URL taking precedence over the base URL
    - Message format conversion
    - Error classification
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        proxy: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize provider.

        Args:
            api_key: API key sent as a bearer token
            model: Default model to use
            base_url: Endpoint base URL (trailing slash is ignored)
            proxy: Optional proxy URL used instead of base_url
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._model = model
        endpoint = proxy or base_url
        if endpoint:
            endpoint = endpoint.rstrip("/")
        client_kwargs.setdefault("max_retries", 0)
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=endpoint,
            **client_kwargs
        )

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    def _request_params(
        self,
        messages: list[ChatMessage],
        model: str,
        temperature: float,
        max_tokens: int | None,
        **kwargs: Any
    ) -> dict[str, Any]:
        request_params: dict[str, Any] = {
            "model": model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "temperature": temperature,
            **kwargs
        }
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens
        return request_params

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a one-shot completion.

        Args:
            messages: Conversation history
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional request parameters

        Returns:
            LLMResponse with generated content
        """
        model_to_use = model or self._model
        request_params = self._request_params(messages, model_to_use, temperature, max_tokens, **kwargs)

        try:
            completion = await self._client.chat.completions.create(**request_params)
        except openai.OpenAIError as exc:
            raise translate_error(exc, model_to_use) from exc

        usage = None
        if completion.usage:
            usage = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens
            }

        return LLMResponse(
            content=completion.choices[0].message.content or "",
            model=completion.model,
            usage=usage
        )

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Open a streaming completion.

        The request is sent and its status checked before this returns; the
        decoder is never entered for a failed response.

        Returns:
            StreamingResponse over the decoded text deltas
        """
        model_to_use = model or self._model
        request_params = self._request_params(
            messages, model_to_use, temperature, max_tokens, stream=True, **kwargs
        )

        stack = AsyncExitStack()
        try:
            response = await stack.enter_async_context(
                self._client.chat.completions.with_streaming_response.create(**request_params)
            )
        except openai.OpenAIError as exc:
            await stack.aclose()
            raise translate_error(exc, model_to_use) from exc

        if response.http_response.status_code == 204:
            await stack.aclose()
            raise ChatError("Response body is empty", ErrorKind.NETWORK)

        logger.debug("Opened stream for model %s", model_to_use)
        return StreamingResponse(
            decode_event_stream(_body_chunks(response)),
            on_close=stack.aclose,
        )

    async def list_models(self) -> list[str]:
        """List model identifiers offered by the endpoint."""
        try:
            page = await self._client.models.list()
        except openai.OpenAIError as exc:
            raise translate_error(exc) from exc
        return [item.id for item in page.data]

    async def close(self) -> None:
        """Close the OpenAI client."""
        await self._client.close()
