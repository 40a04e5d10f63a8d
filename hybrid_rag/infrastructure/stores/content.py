import asyncio
import hashlib
import logging
from pathlib import Path
from typing import Optional

from ...core.errors import StoreError

logger = logging.getLogger(__name__)


class FileContentStore:
    """Original document text, one file per key; in memory when root is None."""

    def __init__(self, root: Optional[Path] = None):
        self._root = Path(root) if root is not None else None
        self._memory: dict[str, str] = {}

    def _path(self, key: str) -> Path:
        name = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self._root / f"{name}.txt"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to read content {key}: {e}") from e

    def _write(self, key: str, text: str) -> None:
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            self._path(key).write_text(text, encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to write content {key}: {e}") from e

    def _unlink(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StoreError(f"Failed to delete content {key}: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        if self._root is None:
            return self._memory.get(key)
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, text: str) -> None:
        if self._root is None:
            self._memory[key] = text
            return
        await asyncio.to_thread(self._write, key, text)

    async def delete(self, key: str) -> None:
        if self._root is None:
            self._memory.pop(key, None)
            return
        await asyncio.to_thread(self._unlink, key)
