"""Core business services."""
from .search_service import HybridSearchService
from .rerank_service import RerankService, recommend_backend
from .indexing import ChunkDraft, ChunkIndexer, IndexingJob
from .knowledge_base_service import KnowledgeBaseService
from .document_service import DocumentService
from .chat_history_service import ChatHistoryService

__all__ = [
    "HybridSearchService",
    "RerankService",
    "recommend_backend",
    "ChunkDraft",
    "ChunkIndexer",
    "IndexingJob",
    "KnowledgeBaseService",
    "DocumentService",
    "ChatHistoryService",
]
