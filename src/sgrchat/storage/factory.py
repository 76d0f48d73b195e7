"""Factory for creating document storage backends."""

from typing import Any

from .base import DocumentStorage


def create_document_storage(
    backend: str = "local",
    **kwargs: Any
) -> DocumentStorage:
    """Create a document storage backend.

    Args:
        backend: Backend type ("local" or "memory")
        **kwargs: Backend-specific configuration
            For local:
                - root: str | Path (default: '~/.sgrchat')

    Returns:
        DocumentStorage instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "local":
        from .local import LocalDocumentStorage
        return LocalDocumentStorage(**kwargs)

    elif backend == "memory":
        from .in_memory import InMemoryDocumentStorage
        return InMemoryDocumentStorage(**kwargs)

    raise ValueError(
        f"Unsupported storage backend: {backend}. "
        f"Supported backends: local, memory"
    )
