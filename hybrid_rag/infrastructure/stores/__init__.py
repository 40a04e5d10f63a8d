"""Chunk, record and content store implementations."""
from .chroma_store import ChromaChunkStore
from .content import FileContentStore
from .memory import InMemoryChunkStore, InMemoryRecordStore

__all__ = [
    "ChromaChunkStore",
    "FileContentStore",
    "InMemoryChunkStore",
    "InMemoryRecordStore",
]
