import json
import logging
from typing import Any, Optional

import httpx

from ...core.errors import StoreError
from ...core.models.document import Chunk

logger = logging.getLogger(__name__)

_INCLUDE = ["documents", "metadatas", "embeddings"]


class ChromaChunkStore:
    """Chunk store using ChromaDB HTTP API."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8001,
        collection_name: str = "chunks",
        tenant: str = "default_tenant",
        database: str = "default_database",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            collection_name: Collection name, one per corpus.
            tenant: Tenant name.
            database: Database name.
            timeout: Request timeout in seconds.
            client: Shared HTTP client.
        """
        self._base_url = f"http://{host}:{port}/api/v2"
        self._tenant = tenant
        self._database = database
        self._collection_name = collection_name
        self._collection_id: Optional[str] = None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def _collections_url(self) -> str:
        return f"{self._base_url}/tenants/{self._tenant}/databases/{self._database}/collections"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise StoreError(f"ChromaDB request failed: {e}") from e
        return resp

    async def _ensure_collection(self) -> str:
        """Get or create collection, return ID."""
        if self._collection_id:
            return self._collection_id

        resp = await self._request("GET", self._collections_url)
        for col in resp.json():
            if col["name"] == self._collection_name:
                self._collection_id = col["id"]
                return self._collection_id

        resp = await self._request(
            "POST",
            self._collections_url,
            json={"name": self._collection_name, "metadata": {"hnsw:space": "cosine"}},
        )
        self._collection_id = resp.json()["id"]
        logger.info(f"Created collection: {self._collection_name}")
        return self._collection_id

    async def _collection_url(self, action: str) -> str:
        col_id = await self._ensure_collection()
        return f"{self._collections_url}/{col_id}/{action}"

    @staticmethod
    def _to_metadata(chunk: Chunk) -> dict[str, Any]:
        return {
            "parent_id": chunk.parent_id,
            "ordinal": chunk.ordinal,
            "content_hash": chunk.content_hash,
            "updated_at": chunk.updated_at,
            "metadata_json": json.dumps(chunk.metadata, ensure_ascii=False),
        }

    @staticmethod
    def _to_chunks(data: dict[str, Any]) -> list[Chunk]:
        ids = data.get("ids") or []
        documents = data.get("documents") or [None] * len(ids)
        metadatas = data.get("metadatas") or [None] * len(ids)
        embeddings = data.get("embeddings") or [None] * len(ids)

        chunks = []
        for chunk_id, text, meta, embedding in zip(ids, documents, metadatas, embeddings):
            meta = meta or {}
            chunks.append(
                Chunk(
                    id=chunk_id,
                    parent_id=meta.get("parent_id", ""),
                    ordinal=int(meta.get("ordinal", 0)),
                    text=text or "",
                    content_hash=meta.get("content_hash", ""),
                    embedding=list(embedding) if embedding is not None else None,
                    updated_at=int(meta.get("updated_at", 0)),
                    metadata=json.loads(meta.get("metadata_json") or "{}"),
                )
            )
        return chunks

    async def _get(self, where: Optional[dict[str, Any]] = None) -> list[Chunk]:
        payload: dict[str, Any] = {"include": _INCLUDE}
        if where:
            payload["where"] = where
        resp = await self._request("POST", await self._collection_url("get"), json=payload)
        return self._to_chunks(resp.json())

    async def get_all(self) -> list[Chunk]:
        return await self._get()

    async def get_all_by_parent(self, parent_id: str) -> list[Chunk]:
        chunks = await self._get({"parent_id": parent_id})
        return sorted(chunks, key=lambda c: c.ordinal)

    async def get_by_hash(self, content_hash: str) -> list[Chunk]:
        return await self._get({"content_hash": content_hash})

    async def put(self, chunk: Chunk) -> None:
        await self.put_many([chunk])

    async def put_many(self, chunks: list[Chunk]) -> None:
        if not chunks:
            return
        missing = [c.id for c in chunks if c.embedding is None]
        if missing:
            raise StoreError(f"Chunks without embeddings: {', '.join(missing[:5])}")

        await self._request(
            "POST",
            await self._collection_url("upsert"),
            json={
                "ids": [c.id for c in chunks],
                "embeddings": [c.embedding for c in chunks],
                "documents": [c.text for c in chunks],
                "metadatas": [self._to_metadata(c) for c in chunks],
            },
        )

    async def delete_all_by_parent(self, parent_id: str) -> None:
        await self._request(
            "POST",
            await self._collection_url("delete"),
            json={"where": {"parent_id": parent_id}},
        )

    async def replace_all_by_parent(self, parent_id: str, chunks: list[Chunk]) -> None:
        await self.delete_all_by_parent(parent_id)
        await self.put_many(chunks)

    async def count(self) -> int:
        resp = await self._request("GET", await self._collection_url("count"))
        return int(resp.json())

    async def clear(self) -> None:
        await self._ensure_collection()
        await self._request("DELETE", f"{self._collections_url}/{self._collection_name}")
        self._collection_id = None
        logger.info(f"Dropped collection: {self._collection_name}")

    async def aclose(self) -> None:
        await self._client.aclose()
