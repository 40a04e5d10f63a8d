"""Document service - uploaded long-form documents."""

import logging
import uuid
from typing import Any, Optional

from ..errors import DocumentNotFoundError, IndexingError
from ..models.document import IndexEntry, IndexingProgress, IndexStatus, content_hash, now_ms
from ..models.search import SearchOptions, SearchResult
from ..protocols.chunk_store import ChunkStoreProtocol
from ..protocols.content_store import ContentStoreProtocol
from ..protocols.record_store import RecordStoreProtocol
from ..retrieval.chunker import ChunkOptions, chunk_text
from .indexing import ChunkDraft, ChunkIndexer, IndexingJob, ProgressCallback
from .search_service import HybridSearchService

logger = logging.getLogger(__name__)

INDEXING_STEPS = 5


class DocumentService:
    """Stores, indexes and searches uploaded documents.

    Storing is fast and leaves the document in "uploading" status; indexing
    runs as an IndexingJob that reports progress.
    """

    def __init__(
        self,
        indexer: ChunkIndexer,
        chunk_store: ChunkStoreProtocol,
        record_store: RecordStoreProtocol,
        content_store: ContentStoreProtocol,
        search_service: HybridSearchService,
        chunk_options: Optional[ChunkOptions] = None,
    ):
        """Initialize document service.

        Args:
            indexer: Chunk indexer for the documents corpus.
            chunk_store: Document chunks.
            record_store: Document records.
            content_store: Original document text.
            search_service: Search over the documents corpus.
            chunk_options: Chunk budget.
        """
        self._indexer = indexer
        self._chunks = chunk_store
        self._records = record_store
        self._contents = content_store
        self._search = search_service
        self._chunk_options = chunk_options or ChunkOptions()

    async def _require(self, document_id: str) -> IndexEntry:
        entry = await self._records.get(document_id)
        if entry is None:
            raise DocumentNotFoundError(document_id)
        return entry

    async def store_document(
        self,
        filename: str,
        content: str,
        mime_type: str = "text/plain",
        description: Optional[str] = None,
    ) -> IndexEntry:
        """Store a document without indexing it.

        Args:
            filename: Display title.
            content: Extracted document text.
            mime_type: Source MIME type.
            description: Optional description.

        Returns:
            Record in "uploading" status.
        """
        entry = IndexEntry(
            id=uuid.uuid4().hex,
            title=filename,
            kind="document",
            status=IndexStatus.UPLOADING,
            size=len(content.encode("utf-8")),
            created_at=now_ms(),
            content_hash=content_hash(content),
            mime_type=mime_type,
            description=description,
        )
        await self._contents.put(entry.id, content)
        await self._records.put(entry)
        logger.info(f"Stored document: {filename} ({entry.id})")
        return entry

    def index_document(self, document_id: str) -> IndexingJob:
        """Create an indexing job for a stored document.

        Iterate the job for progress or await it for the final record.
        Restarting the job re-indexes the document.
        """

        async def run(emit: ProgressCallback) -> IndexEntry:
            return await self._index(document_id, emit)

        return IndexingJob(run)

    async def _index(self, document_id: str, emit: ProgressCallback) -> IndexEntry:
        async with self._indexer.lock(document_id):
            entry = await self._require(document_id)
            entry.status = IndexStatus.INDEXING
            entry.error_message = None
            await self._records.put(entry)

            try:
                emit(IndexingProgress(1, INDEXING_STEPS, "parsing", f"Reading {entry.title}"))
                content = await self._contents.get(document_id)
                if content is None:
                    raise IndexingError(f"No stored content for {entry.title}")

                emit(IndexingProgress(2, INDEXING_STEPS, "chunking", "Splitting into chunks"))
                drafts = [
                    ChunkDraft(c.text, {"heading_path": c.heading_path})
                    for c in chunk_text(content, self._chunk_options)
                ]
                if not drafts:
                    raise IndexingError(f"Document {entry.title} produced no chunks")

                def on_batch(done: int, total: int) -> None:
                    emit(
                        IndexingProgress(
                            3 + done / total,
                            INDEXING_STEPS,
                            "embedding",
                            f"Embedded {done}/{total} chunks",
                        )
                    )

                emit(
                    IndexingProgress(3, INDEXING_STEPS, "embedding", f"Embedding {len(drafts)} chunks")
                )
                chunks = await self._indexer.index(document_id, drafts, on_batch)
            except Exception as e:
                entry.status = IndexStatus.ERROR
                entry.error_message = str(e)
                await self._records.put(entry)
                emit(IndexingProgress(INDEXING_STEPS, INDEXING_STEPS, "error", str(e)))
                logger.error(f"Failed to index document {entry.title}: {e}")
                raise

            entry.status = IndexStatus.READY
            entry.chunk_count = len(chunks)
            entry.indexed_at = now_ms()
            await self._records.put(entry)
            emit(
                IndexingProgress(
                    INDEXING_STEPS, INDEXING_STEPS, "complete", f"Indexed {len(chunks)} chunks"
                )
            )
            return entry

    async def upload_document(
        self,
        filename: str,
        content: str,
        mime_type: str = "text/plain",
        description: Optional[str] = None,
    ) -> IndexEntry:
        """Store and index a document, waiting for indexing to finish."""
        entry = await self.store_document(filename, content, mime_type, description)
        return await self.index_document(entry.id)

    async def delete_document(self, document_id: str) -> None:
        """Delete a document and all of its chunks."""
        async with self._indexer.lock(document_id):
            await self._require(document_id)
            await self._indexer.remove(document_id)
            await self._contents.delete(document_id)
            await self._records.delete(document_id)
        logger.info(f"Deleted document: {document_id}")

    async def rename_document(self, document_id: str, new_title: str) -> IndexEntry:
        title = new_title.strip()
        if not title:
            raise ValueError("Document title cannot be empty")
        entry = await self._require(document_id)
        entry.title = title
        await self._records.put(entry)
        return entry

    async def get_document(self, document_id: str) -> Optional[IndexEntry]:
        return await self._records.get(document_id)

    async def list_documents(self) -> list[IndexEntry]:
        """All documents, newest first."""
        return sorted(await self._records.get_all(), key=lambda e: e.created_at, reverse=True)

    async def load_document_content(self, document_id: str) -> str:
        """Original text, or the chunks joined in order when it is gone."""
        await self._require(document_id)
        content = await self._contents.get(document_id)
        if content is not None:
            return content
        chunks = await self._chunks.get_all_by_parent(document_id)
        return "\n\n".join(c.text for c in chunks)

    async def stats(self) -> dict[str, Any]:
        entries = await self.list_documents()
        return {
            "total_documents": len(entries),
            "ready_documents": sum(1 for e in entries if e.status is IndexStatus.READY),
            "total_chunks": await self._chunks.count(),
            "total_size": sum(e.size for e in entries),
            "documents": [
                {
                    "id": e.id,
                    "title": e.title,
                    "status": e.status.value,
                    "chunk_count": e.chunk_count,
                    "size": e.size,
                }
                for e in entries
            ],
        }

    async def search(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> list[SearchResult]:
        return await self._search.search(query, options)

    async def search_document(
        self, document_id: str, query: str, options: Optional[SearchOptions] = None
    ) -> list[SearchResult]:
        """Search within one document."""
        await self._require(document_id)
        return await self._search.search(query, options, parent_id=document_id)
