"""Fakes and builders shared by the tests."""

from __future__ import annotations

from types import SimpleNamespace

from hybrid_rag.core.errors import EmbeddingError
from hybrid_rag.core.models.document import Chunk, IndexEntry, IndexStatus, content_hash
from hybrid_rag.core.services.indexing import ChunkIndexer
from hybrid_rag.core.services.search_service import HybridSearchService
from hybrid_rag.infrastructure.stores.memory import InMemoryChunkStore, InMemoryRecordStore

VOCABULARY = (
    "prime",
    "sieve",
    "number",
    "algorithm",
    "sort",
    "bubble",
    "swap",
    "array",
    "pasta",
    "sauce",
    "cache",
    "python",
)


class KeywordEmbedder:
    """Deterministic embedder: one dimension per vocabulary word plus a bias."""

    def __init__(self) -> None:
        self.text_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    @property
    def dimension(self) -> int:
        return len(VOCABULARY) + 1

    def vector(self, text: str) -> list[float]:
        lowered = text.lower()
        return [float(lowered.count(word)) for word in VOCABULARY] + [0.1]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.text_calls.append(list(texts))
        return [self.vector(t) for t in texts]

    async def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self.vector(text)


class FailingQueryEmbedder(KeywordEmbedder):
    """Indexes normally but fails every query embedding."""

    async def embed_query(self, text: str) -> list[float]:
        raise EmbeddingError("embedding service unavailable")


class FailingEmbedder(KeywordEmbedder):
    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        raise EmbeddingError("embedding service unavailable")

    async def embed_query(self, text: str) -> list[float]:
        raise EmbeddingError("embedding service unavailable")


SIEVE_TEXT = (
    "The Sieve of Eratosthenes finds all prime numbers up to a limit. "
    "This algorithm marks the multiples of each prime."
)
BUBBLE_TEXT = (
    "Bubble sort is a simple sorting algorithm that repeatedly swaps "
    "adjacent elements in an array."
)


def make_chunk(
    parent_id: str,
    ordinal: int,
    text: str,
    embedding: list[float] | None = None,
    **metadata,
) -> Chunk:
    return Chunk(
        id=f"{parent_id}#{ordinal}",
        parent_id=parent_id,
        ordinal=ordinal,
        text=text,
        content_hash=content_hash(text),
        embedding=embedding,
        metadata=metadata,
    )


class Corpus:
    """One isolated corpus wired the way the container wires it."""

    def __init__(self, embedder: KeywordEmbedder, rerank_service=None) -> None:
        self.embedder = embedder
        self.chunks = InMemoryChunkStore()
        self.records = InMemoryRecordStore()
        self.indexer = ChunkIndexer(embedder, self.chunks, batch_size=2)
        self.search = HybridSearchService(
            embedder=embedder,
            chunk_store=self.chunks,
            record_store=self.records,
            rerank_service=rerank_service,
        )

    async def add(self, parent_id: str, text: str, title: str | None = None) -> Chunk:
        vector = KeywordEmbedder().vector(text)
        ordinal = len(await self.chunks.get_all_by_parent(parent_id))
        chunk = make_chunk(parent_id, ordinal, text, vector)
        await self.chunks.put(chunk)
        await self.records.put(
            IndexEntry(id=parent_id, title=title or parent_id, kind="note", status=IndexStatus.READY)
        )
        return chunk


class FakeChatCompletions:
    """Scores by looking the document text up in a table."""

    def __init__(self, replies: dict[str, object]) -> None:
        self.replies = replies
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        user = kwargs["messages"][1]["content"]
        for needle, reply in self.replies.items():
            if needle in user:
                if isinstance(reply, Exception):
                    raise reply
                message = SimpleNamespace(content=reply)
                return SimpleNamespace(choices=[SimpleNamespace(message=message)])
        message = SimpleNamespace(content="0.0")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeChatClient:
    def __init__(self, replies: dict[str, object]) -> None:
        self.chat = SimpleNamespace(completions=FakeChatCompletions(replies))


class FakeEmbeddings:
    def __init__(self, dimension: int) -> None:
        self.dimension = dimension
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        data = [
            SimpleNamespace(index=i, embedding=[float(i)] * self.dimension)
            for i in range(len(kwargs["input"]))
        ]
        return SimpleNamespace(data=list(reversed(data)))


class FakeEmbeddingClient:
    def __init__(self, dimension: int = 4) -> None:
        self.embeddings = FakeEmbeddings(dimension)


class FixedQueryEmbedder(KeywordEmbedder):
    """Returns one fixed query vector; chunks carry their own embeddings."""

    def __init__(self, query_vector: list[float]) -> None:
        super().__init__()
        self.query_vector = query_vector

    async def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return list(self.query_vector)
