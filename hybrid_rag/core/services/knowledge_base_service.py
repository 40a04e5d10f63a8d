"""Knowledge base service - personal notes keyed by path."""

import logging
from pathlib import Path
from typing import Optional

from ..errors import RetrievalError
from ..models.document import IndexEntry, IndexStatus, content_hash, now_ms
from ..models.search import SearchOptions, SearchResult
from ..protocols.record_store import RecordStoreProtocol
from ..retrieval.chunker import ChunkOptions, chunk_text
from .indexing import ChunkDraft, ChunkIndexer
from .search_service import HybridSearchService

logger = logging.getLogger(__name__)


class KnowledgeBaseService:
    """Indexes notes and searches them."""

    def __init__(
        self,
        indexer: ChunkIndexer,
        record_store: RecordStoreProtocol,
        search_service: HybridSearchService,
        chunk_options: Optional[ChunkOptions] = None,
        notes_path: str = "./docs",
    ):
        """Initialize knowledge base service.

        Args:
            indexer: Chunk indexer for the notes corpus.
            record_store: Note records.
            search_service: Search over the notes corpus.
            chunk_options: Chunk budget.
            notes_path: Default folder for ingest_folder.
        """
        self._indexer = indexer
        self._records = record_store
        self._search = search_service
        self._chunk_options = chunk_options or ChunkOptions()
        self._notes_path = Path(notes_path)
        self._loader = None

    @property
    def loader(self):
        """Lazy load document loader."""
        if self._loader is None:
            from ...infrastructure.document_loaders import TextLoader

            self._loader = TextLoader()
        return self._loader

    async def _index(self, path: str, content: str, force: bool) -> tuple[IndexEntry, int]:
        digest = content_hash(content)
        async with self._indexer.lock(path):
            existing = await self._records.get(path)
            if (
                not force
                and existing is not None
                and existing.status is IndexStatus.READY
                and existing.content_hash == digest
            ):
                logger.debug(f"Skip unchanged: {path}")
                return existing, 0

            entry = IndexEntry(
                id=path,
                title=path,
                kind="note",
                status=IndexStatus.INDEXING,
                size=len(content.encode("utf-8")),
                created_at=existing.created_at if existing else now_ms(),
                content_hash=digest,
                mime_type="text/markdown",
            )
            await self._records.put(entry)

            try:
                drafts = [
                    ChunkDraft(c.text, {"heading_path": c.heading_path})
                    for c in chunk_text(content, self._chunk_options)
                ]
                chunks = await self._indexer.index(path, drafts)
            except Exception as e:
                entry.status = IndexStatus.ERROR
                entry.error_message = str(e)
                await self._records.put(entry)
                logger.error(f"Failed to index note {path}: {e}")
                raise

            entry.status = IndexStatus.READY
            entry.chunk_count = len(chunks)
            entry.indexed_at = now_ms()
            await self._records.put(entry)
            return entry, len(chunks)

    async def index_note(self, path: str, content: str, force: bool = False) -> IndexEntry:
        """Index one note.

        Args:
            path: Note path, used as its id.
            content: Note text.
            force: Re-index even when the content is unchanged.

        Returns:
            Note record.
        """
        entry, _ = await self._index(path, content, force)
        return entry

    async def ingest_folder(self, folder: Optional[str] = None, force: bool = False) -> int:
        """Index every supported file under a folder.

        Args:
            folder: Folder to scan; defaults to the configured notes path.
            force: Re-index unchanged notes too.

        Returns:
            Number of chunks written.
        """
        root = Path(folder) if folder else self._notes_path
        if not root.exists():
            logger.error(f"Notes path not found: {root}")
            return 0

        written = 0
        notes = 0
        for file_path in self.loader.iter_files(root):
            path = file_path.relative_to(root).as_posix()
            try:
                content = self.loader.load(file_path)
                _, count = await self._index(path, content, force)
            except RetrievalError as e:
                logger.error(f"Skipping {path}: {e}")
                continue
            written += count
            notes += 1 if count else 0

        if written:
            logger.info(f"Indexing complete: {written} chunks from {notes} notes")
        else:
            logger.info("No new notes to index")
        return written

    async def delete_note(self, path: str) -> None:
        async with self._indexer.lock(path):
            await self._indexer.remove(path)
            await self._records.delete(path)
        logger.info(f"Deleted note: {path}")

    async def list_notes(self) -> list[IndexEntry]:
        return sorted(await self._records.get_all(), key=lambda e: e.id)

    async def search(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> list[SearchResult]:
        return await self._search.search(query, options)
