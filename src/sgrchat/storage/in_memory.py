"""In-memory document storage.

Simple dict-based storage. Data is lost when the application exits;
suitable for tests and throwaway sessions.
"""

from .base import DocumentStorage


class InMemoryDocumentStorage(DocumentStorage):
    """Documents kept in a dict, enumerated in insertion order."""

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}
        self._folders: set[str] = set()

    async def read(self, path: str) -> str:
        try:
            return self._documents[path]
        except KeyError:
            raise FileNotFoundError(path) from None

    async def write(self, path: str, content: str) -> None:
        self._documents[path] = content
        folder, _, _ = path.rpartition("/")
        if folder:
            self._folders.add(folder)

    async def exists(self, path: str) -> bool:
        return path in self._documents

    async def list_documents(self, folder: str) -> list[str]:
        prefix = folder.rstrip("/") + "/"
        return [
            path for path in self._documents
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        ]

    async def delete(self, path: str) -> None:
        self._documents.pop(path, None)

    async def ensure_folder(self, folder: str) -> None:
        self._folders.add(folder)

    def has_folder(self, folder: str) -> bool:
        return folder in self._folders

    @property
    def backend_type(self) -> str:
        return "memory"
