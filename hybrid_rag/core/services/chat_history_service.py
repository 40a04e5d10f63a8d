"""Chat history service - past conversations as a searchable corpus."""

import logging
from typing import Any, Optional

from ..models.chat import Conversation
from ..models.document import IndexEntry, IndexStatus, now_ms
from ..models.search import SearchOptions, SearchResult
from ..protocols.chunk_store import ChunkStoreProtocol
from ..protocols.record_store import RecordStoreProtocol
from ..retrieval.chunker import chunk_conversation, conversation_content_hash
from .indexing import ChunkDraft, ChunkIndexer
from .search_service import HybridSearchService

logger = logging.getLogger(__name__)


class ChatHistoryService:
    """Indexes conversations message by message and searches them."""

    def __init__(
        self,
        indexer: ChunkIndexer,
        chunk_store: ChunkStoreProtocol,
        record_store: RecordStoreProtocol,
        search_service: HybridSearchService,
        max_tokens: int = 500,
    ):
        self._indexer = indexer
        self._chunks = chunk_store
        self._records = record_store
        self._search = search_service
        self._max_tokens = max_tokens

    async def index_conversation(self, conversation: Conversation, force: bool = False) -> int:
        """Index a conversation.

        Args:
            conversation: Conversation to index.
            force: Re-index even when the content is unchanged.

        Returns:
            Number of chunks written; 0 when unchanged.
        """
        digest = conversation_content_hash(conversation.messages)
        async with self._indexer.lock(conversation.id):
            existing = await self._records.get(conversation.id)
            if (
                not force
                and existing is not None
                and existing.status is IndexStatus.READY
                and existing.content_hash == digest
            ):
                logger.debug(f"Skip unchanged conversation: {conversation.id}")
                return 0

            entry = IndexEntry(
                id=conversation.id,
                title=conversation.title,
                kind="conversation",
                status=IndexStatus.INDEXING,
                created_at=existing.created_at if existing else now_ms(),
                content_hash=digest,
            )
            await self._records.put(entry)

            chunks = chunk_conversation(conversation.messages, self._max_tokens)
            drafts = [
                ChunkDraft(
                    c.text,
                    {"message_role": c.message_role, "message_index": c.message_index},
                )
                for c in chunks
            ]
            try:
                stored = await self._indexer.index(conversation.id, drafts)
            except Exception as e:
                entry.status = IndexStatus.ERROR
                entry.error_message = str(e)
                await self._records.put(entry)
                logger.error(f"Failed to index conversation {conversation.id}: {e}")
                raise

            entry.status = IndexStatus.READY
            entry.chunk_count = len(stored)
            entry.size = sum(len(c.text) for c in stored)
            entry.indexed_at = now_ms()
            await self._records.put(entry)
            return len(stored)

    async def delete_conversation(self, conversation_id: str) -> None:
        async with self._indexer.lock(conversation_id):
            await self._indexer.remove(conversation_id)
            await self._records.delete(conversation_id)

    async def stats(self) -> dict[str, Any]:
        total_chunks = await self._chunks.count()
        conversations = len(await self._records.get_all())
        average = round(total_chunks / conversations, 1) if conversations else 0.0
        return {
            "total_chunks": total_chunks,
            "conversations": conversations,
            "average_chunks_per_conversation": average,
        }

    async def clear(self) -> None:
        await self._chunks.clear()
        await self._records.clear()
        logger.info("Chat history index cleared")

    async def search(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> list[SearchResult]:
        return await self._search.search(query, options)
