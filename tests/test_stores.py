"""Tests for chunk, record and content stores."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from hybrid_rag.core.errors import StoreError
from hybrid_rag.core.models.document import IndexEntry, IndexStatus
from hybrid_rag.infrastructure.stores.chroma_store import ChromaChunkStore
from hybrid_rag.infrastructure.stores.content import FileContentStore
from hybrid_rag.infrastructure.stores.memory import InMemoryChunkStore, InMemoryRecordStore

from .helpers import make_chunk


@pytest.mark.asyncio
async def test_memory_chunk_store_operations() -> None:
    store = InMemoryChunkStore()
    await store.put_many(
        [make_chunk("a", 1, "second", [1.0]), make_chunk("a", 0, "first", [1.0]), make_chunk("b", 0, "first", [0.5])]
    )

    assert [c.ordinal for c in await store.get_all_by_parent("a")] == [0, 1]
    assert {c.parent_id for c in await store.get_by_hash(make_chunk("x", 0, "first").content_hash)} == {"a", "b"}

    await store.delete_all_by_parent("a")
    assert await store.count() == 1

    await store.clear()
    assert await store.get_all() == []


@pytest.mark.asyncio
async def test_replace_all_by_parent_writes_once(tmp_path: Path) -> None:
    store = InMemoryChunkStore(tmp_path / "chunks.json")
    await store.put_many(
        [make_chunk("a", 0, "old", [1.0]), make_chunk("a", 1, "older", [1.0]), make_chunk("b", 0, "keep", [1.0])]
    )

    writes: list[int] = []
    write = store._file.write

    async def counting_write(items):
        writes.append(len(items))
        await write(items)

    store._file.write = counting_write
    await store.replace_all_by_parent("a", [make_chunk("a", 0, "new", [0.5])])

    assert writes == [2]
    assert [c.text for c in await store.get_all_by_parent("a")] == ["new"]
    assert len(await InMemoryChunkStore(tmp_path / "chunks.json").get_all()) == 2


@pytest.mark.asyncio
async def test_json_backed_stores_persist(tmp_path: Path) -> None:
    chunks_path = tmp_path / "notes" / "chunks.json"
    records_path = tmp_path / "notes" / "records.json"
    await InMemoryChunkStore(chunks_path).put(make_chunk("a", 0, "text", [0.1, 0.2], heading_path="A"))
    await InMemoryRecordStore(records_path).put(
        IndexEntry(id="a", title="Note A", kind="note", status=IndexStatus.READY, chunk_count=1)
    )

    chunk = (await InMemoryChunkStore(chunks_path).get_all())[0]
    entry = await InMemoryRecordStore(records_path).get("a")

    assert chunk.embedding == [0.1, 0.2]
    assert chunk.metadata == {"heading_path": "A"}
    assert entry.status is IndexStatus.READY
    assert entry.title == "Note A"


@pytest.mark.asyncio
async def test_corrupt_json_raises_store_error(tmp_path: Path) -> None:
    path = tmp_path / "chunks.json"
    path.write_text("{not json")

    with pytest.raises(StoreError):
        await InMemoryChunkStore(path).count()


@pytest.mark.asyncio
async def test_record_store_returns_copies() -> None:
    store = InMemoryRecordStore()
    await store.put(IndexEntry(id="a", title="A", kind="note"))

    entry = await store.get("a")
    entry.title = "changed"

    assert (await store.get("a")).title == "A"


@pytest.mark.asyncio
async def test_content_store_on_disk(tmp_path: Path) -> None:
    store = FileContentStore(tmp_path / "content")

    await store.put("doc/1", "hello")
    assert await store.get("doc/1") == "hello"

    await store.delete("doc/1")
    assert await store.get("doc/1") is None
    await store.delete("doc/1")


class _FakeChroma:
    """Minimal ChromaDB v2 server behind httpx.MockTransport."""

    def __init__(self) -> None:
        self.collections: dict[str, str] = {}
        self.rows: dict[str, dict] = {}

    def _match(self, row: dict, where: dict | None) -> bool:
        return all(row["metadata"].get(k) == v for k, v in (where or {}).items())

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else {}
        base = "/api/v2/tenants/default_tenant/databases/default_database/collections"

        if path == base and request.method == "GET":
            return httpx.Response(200, json=[{"name": n, "id": i} for n, i in self.collections.items()])
        if path == base and request.method == "POST":
            self.collections[body["name"]] = "col-1"
            return httpx.Response(200, json={"id": "col-1", "name": body["name"]})
        if request.method == "DELETE":
            self.collections.pop(path.rsplit("/", 1)[1], None)
            self.rows.clear()
            return httpx.Response(200, json={})

        action = path.rsplit("/", 1)[1]
        if action == "upsert":
            for i, row_id in enumerate(body["ids"]):
                self.rows[row_id] = {
                    "document": body["documents"][i],
                    "embedding": body["embeddings"][i],
                    "metadata": body["metadatas"][i],
                }
            return httpx.Response(200, json={})
        if action == "get":
            hits = [(k, r) for k, r in self.rows.items() if self._match(r, body.get("where"))]
            return httpx.Response(
                200,
                json={
                    "ids": [k for k, _ in hits],
                    "documents": [r["document"] for _, r in hits],
                    "metadatas": [r["metadata"] for _, r in hits],
                    "embeddings": [r["embedding"] for _, r in hits],
                },
            )
        if action == "delete":
            for k in [k for k, r in self.rows.items() if self._match(r, body.get("where"))]:
                del self.rows[k]
            return httpx.Response(200, json={})
        if action == "count":
            return httpx.Response(200, json=len(self.rows))
        return httpx.Response(404, json={"error": "not found"})


@pytest.mark.asyncio
async def test_chroma_store_round_trip() -> None:
    server = _FakeChroma()
    client = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
    store = ChromaChunkStore(collection_name="rag_notes", client=client)

    await store.put_many(
        [
            make_chunk("a", 1, "second", [0.0, 1.0], heading_path="H"),
            make_chunk("a", 0, "first", [1.0, 0.0]),
            make_chunk("b", 0, "first", [1.0, 0.0]),
        ]
    )

    assert server.collections == {"rag_notes": "col-1"}
    by_parent = await store.get_all_by_parent("a")
    assert [c.ordinal for c in by_parent] == [0, 1]
    assert by_parent[1].metadata == {"heading_path": "H"}
    assert by_parent[1].embedding == [0.0, 1.0]
    assert len(await store.get_by_hash(by_parent[0].content_hash)) == 2

    await store.replace_all_by_parent("b", [make_chunk("b", 0, "renamed", [0.0, 1.0])])
    assert [c.text for c in await store.get_all_by_parent("b")] == ["renamed"]

    await store.delete_all_by_parent("a")
    assert await store.count() == 1

    await store.clear()
    assert server.collections == {}

    await store.aclose()
    assert client.is_closed


@pytest.mark.asyncio
async def test_chroma_store_requires_embeddings() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(_FakeChroma().handler))
    store = ChromaChunkStore(client=client)

    with pytest.raises(StoreError):
        await store.put(make_chunk("a", 0, "text", None))


@pytest.mark.asyncio
async def test_chroma_http_errors_raise_store_error() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
    store = ChromaChunkStore(client=client)

    with pytest.raises(StoreError):
        await store.count()
