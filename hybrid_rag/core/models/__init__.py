"""Domain models."""
from .document import Chunk, IndexEntry, IndexStatus, IndexingProgress, content_hash
from .chat import ChatMessage, Conversation, MessagePart
from .search import (
    RerankDocument,
    RerankerBackend,
    RerankerConfig,
    RerankResult,
    ScoredCandidate,
    SearchOptions,
    SearchResult,
)

__all__ = [
    "Chunk",
    "IndexEntry",
    "IndexStatus",
    "IndexingProgress",
    "content_hash",
    "ChatMessage",
    "Conversation",
    "MessagePart",
    "RerankDocument",
    "RerankerBackend",
    "RerankerConfig",
    "RerankResult",
    "ScoredCandidate",
    "SearchOptions",
    "SearchResult",
]
