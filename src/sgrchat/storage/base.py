"""Abstract base class for host document storage.

The persistence layer trusts its host storage and only needs named text
documents inside folders. The abstraction hides:
- Where documents live (local disk, memory, a host application's vault)
- How reads and writes are performed
- Write atomicity, which is the backend's concern
"""

from abc import ABC, abstractmethod


class DocumentStorage(ABC):
    """Abstract storage of named text documents.

    Paths are ``/``-separated strings relative to the storage root, for
    example ``"Chat History/1700000000000.json"``.
    """

    @abstractmethod
    async def read(self, path: str) -> str:
        """Return the document text.

        Raises:
            FileNotFoundError: If no document exists at ``path``
        """

    @abstractmethod
    async def write(self, path: str, content: str) -> None:
        """Create or fully overwrite the document at ``path``."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Return True if a document exists at ``path``."""

    @abstractmethod
    async def list_documents(self, folder: str) -> list[str]:
        """Return paths of the documents directly inside ``folder``.

        Order is the backend's enumeration order. A missing folder yields
        an empty list.
        """

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the document at ``path``; absent documents are ignored."""

    @abstractmethod
    async def ensure_folder(self, folder: str) -> None:
        """Create ``folder`` if it does not exist."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
