"""Active conversation management for sgrchat."""

from .models import ChatMode, ChatSession, FileContext, now_ms
from .store import SessionStore, render_file_contexts
from .titles import FALLBACK_TITLE, TitleGenerator, clean_title, heuristic_title, sanitize_message

__all__ = [
    "ChatMode",
    "ChatSession",
    "FALLBACK_TITLE",
    "FileContext",
    "SessionStore",
    "TitleGenerator",
    "clean_title",
    "heuristic_title",
    "now_ms",
    "render_file_contexts",
    "sanitize_message",
]
