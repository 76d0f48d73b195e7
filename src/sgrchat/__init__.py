"""
sgrchat: session, persistence and retrieval core of a streaming chat assistant.

Keeps one in-memory conversation, streams model output into it, records
conversations as timestamp-keyed documents and ranks past conversations
by title relevance.
"""

__version__ = "0.1.0"

from .errors import ChatError, ErrorKind
from .llm import LLMProvider, StreamingResponse, create_llm_provider
from .search import bm25_search
from .session import ChatMode, ChatSession, SessionStore, TitleGenerator
from .storage import ChatRepository, DocumentStorage, Message, create_document_storage

__all__ = [
    "ChatError",
    "ChatMode",
    "ChatRepository",
    "ChatSession",
    "DocumentStorage",
    "ErrorKind",
    "LLMProvider",
    "Message",
    "SessionStore",
    "StreamingResponse",
    "TitleGenerator",
    "bm25_search",
    "create_document_storage",
    "create_llm_provider",
]
