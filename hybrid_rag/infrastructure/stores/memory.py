import asyncio
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ...core.errors import StoreError
from ...core.models.document import Chunk, IndexEntry
from ._serialization import chunk_from_dict, chunk_to_dict, entry_from_dict, entry_to_dict

logger = logging.getLogger(__name__)


class _JsonFile:
    """JSON list persisted to disk; a missing path keeps data in memory only."""

    def __init__(self, path: Optional[Path]):
        self._path = Path(path) if path is not None else None

    def _read(self) -> list[dict]:
        if self._path is None or not self._path.exists():
            return []
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to read {self._path}: {e}") from e

    def _write(self, items: list[dict]) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")
            tmp.replace(self._path)
        except OSError as e:
            raise StoreError(f"Failed to write {self._path}: {e}") from e

    async def read(self) -> list[dict]:
        return await asyncio.to_thread(self._read)

    async def write(self, items: list[dict]) -> None:
        await asyncio.to_thread(self._write, items)


class InMemoryChunkStore:
    """Chunk store kept in a dict, optionally mirrored to a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self._file = _JsonFile(path)
        self._chunks: Optional[dict[str, Chunk]] = None
        self._lock = asyncio.Lock()

    async def _load(self) -> dict[str, Chunk]:
        if self._chunks is None:
            self._chunks = {}
            for item in await self._file.read():
                chunk = chunk_from_dict(item)
                self._chunks[chunk.id] = chunk
            if self._chunks:
                logger.info(f"Loaded {len(self._chunks)} chunks")
        return self._chunks

    async def _save(self) -> None:
        await self._file.write([chunk_to_dict(c) for c in (self._chunks or {}).values()])

    async def get_all(self) -> list[Chunk]:
        async with self._lock:
            return list((await self._load()).values())

    async def get_all_by_parent(self, parent_id: str) -> list[Chunk]:
        async with self._lock:
            chunks = [c for c in (await self._load()).values() if c.parent_id == parent_id]
        return sorted(chunks, key=lambda c: c.ordinal)

    async def get_by_hash(self, content_hash: str) -> list[Chunk]:
        async with self._lock:
            return [c for c in (await self._load()).values() if c.content_hash == content_hash]

    async def put(self, chunk: Chunk) -> None:
        await self.put_many([chunk])

    async def put_many(self, chunks: list[Chunk]) -> None:
        async with self._lock:
            store = await self._load()
            for chunk in chunks:
                store[chunk.id] = chunk
            await self._save()

    async def delete_all_by_parent(self, parent_id: str) -> None:
        async with self._lock:
            store = await self._load()
            for chunk_id in [cid for cid, c in store.items() if c.parent_id == parent_id]:
                del store[chunk_id]
            await self._save()

    async def replace_all_by_parent(self, parent_id: str, chunks: list[Chunk]) -> None:
        async with self._lock:
            store = await self._load()
            for chunk_id in [cid for cid, c in store.items() if c.parent_id == parent_id]:
                del store[chunk_id]
            for chunk in chunks:
                store[chunk.id] = chunk
            await self._save()

    async def count(self) -> int:
        async with self._lock:
            return len(await self._load())

    async def clear(self) -> None:
        async with self._lock:
            self._chunks = {}
            await self._save()


class InMemoryRecordStore:
    """Record store kept in a dict, optionally mirrored to a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self._file = _JsonFile(path)
        self._entries: Optional[dict[str, IndexEntry]] = None
        self._lock = asyncio.Lock()

    async def _load(self) -> dict[str, IndexEntry]:
        if self._entries is None:
            self._entries = {}
            for item in await self._file.read():
                entry = entry_from_dict(item)
                self._entries[entry.id] = entry
        return self._entries

    async def _save(self) -> None:
        await self._file.write([entry_to_dict(e) for e in (self._entries or {}).values()])

    async def get(self, entry_id: str) -> Optional[IndexEntry]:
        async with self._lock:
            entry = (await self._load()).get(entry_id)
        return replace(entry) if entry is not None else None

    async def get_all(self) -> list[IndexEntry]:
        async with self._lock:
            return [replace(e) for e in (await self._load()).values()]

    async def put(self, entry: IndexEntry) -> None:
        async with self._lock:
            (await self._load())[entry.id] = replace(entry)
            await self._save()

    async def delete(self, entry_id: str) -> None:
        async with self._lock:
            (await self._load()).pop(entry_id, None)
            await self._save()

    async def clear(self) -> None:
        async with self._lock:
            self._entries = {}
            await self._save()
