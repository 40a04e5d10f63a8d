"""Protocol interfaces for dependency injection."""
from .embedder import EmbedderProtocol
from .chunk_store import ChunkStoreProtocol
from .content_store import ContentStoreProtocol
from .record_store import RecordStoreProtocol
from .reranker import RerankerProtocol

__all__ = [
    "EmbedderProtocol",
    "ChunkStoreProtocol",
    "ContentStoreProtocol",
    "RecordStoreProtocol",
    "RerankerProtocol",
]
