"""Error taxonomy for sgrchat.

Every failure the core reports is a ``ChatError`` tagged with an
``ErrorKind``. Callers branch on ``error.kind`` instead of on exception
subclasses, and API failures carry their status code and response body.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Kind tag carried by every ChatError."""

    NETWORK = "network"                      # No response obtained at all
    API = "api"                              # Non-success response
    INVALID_MODEL = "invalid_model"          # Resource-not-found class of API error
    RATE_LIMIT = "rate_limit"                # Rate-limited class of API error
    CORRUPT_RECORD = "corrupt_record"        # Stored document matches no known schema
    RECORD_NOT_FOUND = "record_not_found"    # Stored document does not exist
    NO_ACTIVE_SESSION = "no_active_session"  # Operation needs a conversation
    NOT_CONFIGURED = "not_configured"        # No messaging client available


class ChatError(Exception):
    """A classified failure.

    Attributes:
        kind: What went wrong
        status_code: HTTP status for API-class errors
        body: Decoded response body for API-class errors, if any
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        status_code: int | None = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.body = body

    @classmethod
    def from_status(cls, status_code: int, body: Any = None, model: str | None = None) -> "ChatError":
        """Classify a non-success HTTP status.

        Args:
            status_code: Response status
            body: Response body (parsed JSON or text)
            model: Model the request was made for, used in messages

        Returns:
            ChatError with the matching kind
        """
        if status_code == 401:
            return cls("Invalid API key", ErrorKind.API, status_code, body)
        if status_code == 404:
            return cls(f"Model not found: {model}", ErrorKind.INVALID_MODEL, status_code, body)
        if status_code == 429:
            return cls("Rate limit exceeded", ErrorKind.RATE_LIMIT, status_code, body)
        return cls(f"API error: HTTP {status_code}", ErrorKind.API, status_code, body)

    @classmethod
    def no_active_session(cls) -> "ChatError":
        return cls("No active session", ErrorKind.NO_ACTIVE_SESSION)

    def __repr__(self) -> str:
        return f"ChatError({str(self)!r}, kind={self.kind.value!r}, status_code={self.status_code!r})"
