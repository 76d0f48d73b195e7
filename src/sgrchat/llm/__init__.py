from .base import LLMProvider
from .factory import create_llm_provider
from .models import ChatMessage, LLMResponse, StreamingResponse
from .providers import OpenAIProvider
from .streaming import SSEDecoder, decode_event_stream

__all__ = [
    "LLMProvider",
    "create_llm_provider",
    "ChatMessage",
    "LLMResponse",
    "StreamingResponse",
    "OpenAIProvider",
    "SSEDecoder",
    "decode_event_stream",
]
