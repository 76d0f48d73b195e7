"""Local filesystem document storage.

Documents are UTF-8 files under a root directory. Blocking file calls run
in a worker thread so the event loop stays responsive while streaming.
"""

import asyncio
from pathlib import Path

from .base import DocumentStorage


class LocalDocumentStorage(DocumentStorage):
    """Documents stored as files below ``root``."""

    def __init__(self, root: str | Path = "~/.sgrchat"):
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        return self._root / Path(path)

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(self._resolve(path).read_text, encoding="utf-8")

    async def write(self, path: str, content: str) -> None:
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

        await asyncio.to_thread(_write)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self._resolve(path).is_file)

    async def list_documents(self, folder: str) -> list[str]:
        directory = self._resolve(folder)

        def _list() -> list[str]:
            if not directory.is_dir():
                return []
            return [
                f"{folder.rstrip('/')}/{entry.name}"
                for entry in sorted(directory.iterdir())
                if entry.is_file()
            ]

        return await asyncio.to_thread(_list)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(self._resolve(path).unlink, missing_ok=True)

    async def ensure_folder(self, folder: str) -> None:
        await asyncio.to_thread(self._resolve(folder).mkdir, parents=True, exist_ok=True)

    @property
    def backend_type(self) -> str:
        return "local"
