"""Conversation titles derived from the first user message.

Short messages are used as the title directly. Longer ones are summarized
by the model; if that call fails the first sentence is used instead.
Titles never contain characters that are illegal in file names.
"""

import logging
import re

from ..errors import ChatError
from ..llm import ChatMessage, LLMProvider
from ..prompts import get_title_prompt

logger = logging.getLogger(__name__)

FALLBACK_TITLE = "Untitled Chat"
MAX_TITLE_LENGTH = 60
DIRECT_TITLE_MAX_TOKENS = 2

ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')

# Applied in this order
_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_INLINE_CODE = re.compile(r"(?<!`)`([^`\n]+)`(?!`)")
_FENCED_CODE = re.compile(r"```[\s\S]*?```")
_FILE_MENTION = re.compile(r"@\[\[([^\]]+)\]\]")
_FILE_CONTEXT = re.compile(r"\[File: [^\]\n]*\][\s\S]*?\[/File\]")
_SENTENCE_END = re.compile(r"[.!?]")


def sanitize_message(text: str) -> str:
    """Strip markup that makes no sense in a title.

    Keeps link text, inline code text and mentioned file names; drops
    fenced code blocks and attached file-context blocks entirely.
    """
    text = _MARKDOWN_LINK.sub(r"\1", text)
    text = _INLINE_CODE.sub(r"\1", text)
    text = _FENCED_CODE.sub("", text)
    text = _FILE_MENTION.sub(r"\1", text)
    text = _FILE_CONTEXT.sub("", text)
    return text.strip()


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def strip_illegal(text: str) -> str:
    return ILLEGAL_FILENAME_CHARS.sub("", text)


def clean_title(text: str) -> str:
    """Remove illegal characters, limit the length and capitalize."""
    title = strip_illegal(text).strip()
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH - 3] + "..."
    return _capitalize(title)


def heuristic_title(text: str) -> str:
    """Title from the first sentence, or the first characters of ``text``."""
    first_sentence = _SENTENCE_END.split(text, maxsplit=1)[0].strip()
    candidate = first_sentence or text[:MAX_TITLE_LENGTH]
    return clean_title(candidate) or FALLBACK_TITLE


class TitleGenerator:
    """Generates a short title for a conversation.

    Args:
        provider: Messaging client used for summarization; without one
            only the local heuristic is used
    """

    def __init__(self, provider: LLMProvider | None = None):
        self._provider = provider

    async def generate(self, raw_text: str, model: str | None = None) -> str:
        """Return a title for a conversation opened with ``raw_text``.

        Args:
            raw_text: The first user message as typed
            model: Model to ask for a summary

        Returns:
            A non-empty title free of file-name-illegal characters
        """
        text = sanitize_message(raw_text)
        tokens = text.split()

        if len(tokens) <= DIRECT_TITLE_MAX_TOKENS:
            return _capitalize(strip_illegal(text).strip()) or FALLBACK_TITLE

        if self._provider is None:
            return heuristic_title(text)

        try:
            response = await self._provider.chat_completion(
                [ChatMessage(role="user", content=get_title_prompt(text))],
                model=model,
                temperature=0.3,
                max_tokens=20,
            )
        except ChatError as exc:
            logger.warning("Title generation failed (%s), using first sentence: %s", exc.kind.value, exc)
            return heuristic_title(text)

        return clean_title(response.content) or heuristic_title(text)
