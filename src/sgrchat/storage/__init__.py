"""Chat history persistence for sgrchat.

Stores each conversation as one timestamp-keyed document and reads the
older record schemas as well.
"""

from .base import DocumentStorage
from .factory import create_document_storage
from .models import DEFAULT_TITLE, ChatFileRecord, ChatListing, ChatMetadata, LoadedChat, Message
from .repository import DEFAULT_FOLDER, ChatRepository, key_from_path
from .schemas import SCHEMAS, RecordSchema, detect_schema, parse_document

__all__ = [
    "DEFAULT_FOLDER",
    "DEFAULT_TITLE",
    "ChatFileRecord",
    "ChatListing",
    "ChatMetadata",
    "ChatRepository",
    "DocumentStorage",
    "LoadedChat",
    "Message",
    "RecordSchema",
    "SCHEMAS",
    "create_document_storage",
    "detect_schema",
    "key_from_path",
    "parse_document",
]
