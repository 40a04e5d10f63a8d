"""Tests for note ingestion."""

from __future__ import annotations

from pathlib import Path

import pytest

from hybrid_rag.core.models.document import IndexStatus
from hybrid_rag.core.models.search import SearchOptions
from hybrid_rag.core.retrieval.chunker import ChunkOptions
from hybrid_rag.core.services.indexing import ChunkIndexer
from hybrid_rag.core.services.knowledge_base_service import KnowledgeBaseService
from hybrid_rag.core.services.search_service import HybridSearchService
from hybrid_rag.infrastructure.stores.memory import InMemoryChunkStore, InMemoryRecordStore

from .helpers import BUBBLE_TEXT, SIEVE_TEXT, KeywordEmbedder


def _service(notes_path: Path) -> tuple[KnowledgeBaseService, InMemoryChunkStore]:
    embedder = KeywordEmbedder()
    chunks = InMemoryChunkStore()
    records = InMemoryRecordStore()
    service = KnowledgeBaseService(
        indexer=ChunkIndexer(embedder, chunks),
        record_store=records,
        search_service=HybridSearchService(embedder, chunks, records),
        chunk_options=ChunkOptions(max_tokens=200),
        notes_path=str(notes_path),
    )
    return service, chunks


@pytest.fixture()
def notes(tmp_path: Path) -> Path:
    root = tmp_path / "notes"
    (root / "cs").mkdir(parents=True)
    (root / "cs" / "sieve.md").write_text(f"# Primes\n\n{SIEVE_TEXT}")
    (root / "sorting.txt").write_text(BUBBLE_TEXT)
    (root / "scan.pdf").write_bytes(b"%PDF-1.4")
    return root


@pytest.mark.asyncio
async def test_ingest_folder_indexes_supported_files(notes: Path) -> None:
    service, chunks = _service(notes)

    written = await service.ingest_folder()

    assert written == 2
    assert [e.id for e in await service.list_notes()] == ["cs/sieve.md", "sorting.txt"]
    assert all(e.status is IndexStatus.READY for e in await service.list_notes())
    assert await chunks.count() == 2


@pytest.mark.asyncio
async def test_ingest_skips_unchanged_notes(notes: Path) -> None:
    service, _ = _service(notes)
    await service.ingest_folder()

    assert await service.ingest_folder() == 0
    assert await service.ingest_folder(force=True) == 2

    (notes / "sorting.txt").write_text(BUBBLE_TEXT + "\n\nIt swaps a lot.")
    assert await service.ingest_folder() == 1


@pytest.mark.asyncio
async def test_missing_folder_indexes_nothing(tmp_path: Path) -> None:
    service, _ = _service(tmp_path / "absent")

    assert await service.ingest_folder() == 0


@pytest.mark.asyncio
async def test_index_note_and_delete(notes: Path) -> None:
    service, chunks = _service(notes)

    entry = await service.index_note("inbox/todo.md", "Buy pasta and tomato sauce.")
    assert entry.chunk_count == 1
    assert entry.title == "inbox/todo.md"

    await service.delete_note("inbox/todo.md")
    assert await chunks.count() == 0
    assert await service.list_notes() == []


@pytest.mark.asyncio
async def test_search_notes(notes: Path) -> None:
    service, _ = _service(notes)
    await service.ingest_folder()

    results = await service.search("prime number algorithm", SearchOptions(threshold=0.3))

    assert results[0].source_id == "cs/sieve.md"
    assert results[0].metadata["heading_path"] == "Primes"
