"""Indexing helpers shared by the corpus services."""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Generator, Optional

from ..models.document import Chunk, IndexEntry, IndexingProgress, content_hash, now_ms
from ..protocols.chunk_store import ChunkStoreProtocol
from ..protocols.embedder import EmbedderProtocol

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[IndexingProgress], None]


@dataclass(frozen=True)
class ChunkDraft:
    """Chunk text before hashing and embedding."""
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


class ChunkIndexer:
    """Embeds chunk drafts and replaces a parent's chunks in the store.

    Callers hold ``lock(parent_id)`` around an indexing run so runs for the
    same parent never interleave.
    """

    def __init__(
        self,
        embedder: EmbedderProtocol,
        chunk_store: ChunkStoreProtocol,
        batch_size: int = 20,
        id_prefix: str = "",
    ):
        """Initialize indexer.

        Args:
            embedder: Embedding service.
            chunk_store: Chunks of one corpus.
            batch_size: Texts per embedding call.
            id_prefix: Prefix for chunk ids ("chat:" for conversations).
        """
        self._embedder = embedder
        self._chunk_store = chunk_store
        self._batch_size = max(1, batch_size)
        self._id_prefix = id_prefix
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock(self, parent_id: str) -> asyncio.Lock:
        return self._locks[parent_id]

    def chunk_id(self, parent_id: str, ordinal: int) -> str:
        return f"{self._id_prefix}{parent_id}#{ordinal}"

    async def _reusable_embeddings(self, hashes: set[str]) -> dict[str, list[float]]:
        cached: dict[str, list[float]] = {}
        for digest in hashes:
            for chunk in await self._chunk_store.get_by_hash(digest):
                if chunk.embedding is not None:
                    cached[digest] = chunk.embedding
                    break
        return cached

    async def index(
        self,
        parent_id: str,
        drafts: list[ChunkDraft],
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> list[Chunk]:
        """Embed drafts and replace the parent's chunks.

        Args:
            parent_id: Parent id.
            drafts: Chunk texts in ordinal order.
            on_progress: Called with (embedded, total) after each batch.

        Returns:
            Stored chunks.

        Raises:
            EmbeddingError: Embedding service failed; stored chunks are untouched.
        """
        hashes = [content_hash(d.text) for d in drafts]
        embeddings = await self._reusable_embeddings(set(hashes))
        reused = len(embeddings)

        missing = [
            (digest, draft.text)
            for digest, draft in dict(zip(hashes, drafts)).items()
            if digest not in embeddings
        ]
        total = len(missing)
        for i in range(0, total, self._batch_size):
            batch = missing[i : i + self._batch_size]
            vectors = await self._embedder.embed_texts([text for _, text in batch])
            for (digest, _), vector in zip(batch, vectors):
                embeddings[digest] = vector
            if on_progress:
                on_progress(i + len(batch), total)

        updated_at = now_ms()
        chunks = [
            Chunk(
                id=self.chunk_id(parent_id, ordinal),
                parent_id=parent_id,
                ordinal=ordinal,
                text=draft.text,
                content_hash=digest,
                embedding=embeddings[digest],
                updated_at=updated_at,
                metadata=dict(draft.metadata),
            )
            for ordinal, (digest, draft) in enumerate(zip(hashes, drafts))
        ]

        await self._chunk_store.replace_all_by_parent(parent_id, chunks)

        logger.info(
            f"Indexed {parent_id}: {len(chunks)} chunks ({reused} reused embeddings)"
        )
        return chunks

    async def remove(self, parent_id: str) -> None:
        await self._chunk_store.delete_all_by_parent(parent_id)


class IndexingJob:
    """Restartable indexing run.

    Iterate it for progress events, or await it for the final entry. Iterating
    re-raises the run's error after its "error" event. Only one consumer
    should iterate a run.
    """

    def __init__(self, run: Callable[[ProgressCallback], Awaitable[IndexEntry]]):
        self._run = run
        self._task: Optional[asyncio.Task] = None
        self._events: Optional[asyncio.Queue] = None

    async def _execute(self, events: asyncio.Queue) -> IndexEntry:
        try:
            return await self._run(events.put_nowait)
        finally:
            events.put_nowait(None)

    def start(self) -> asyncio.Task:
        """Start the run if it has not started yet."""
        if self._task is None:
            self._events = asyncio.Queue()
            self._task = asyncio.ensure_future(self._execute(self._events))
        return self._task

    def restart(self) -> asyncio.Task:
        """Start a new run once the current one has finished."""
        if self._task is not None and not self._task.done():
            return self._task
        self._task = None
        return self.start()

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def __await__(self) -> Generator[Any, None, IndexEntry]:
        return self.start().__await__()

    async def _iterate(self) -> AsyncIterator[IndexingProgress]:
        task = self.start()
        events = self._events
        while True:
            event = await events.get()
            if event is None:
                break
            yield event
        await task

    def __aiter__(self) -> AsyncIterator[IndexingProgress]:
        return self._iterate()
