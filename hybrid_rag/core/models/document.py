"""Corpus domain models."""
import hashlib
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


def content_hash(text: str) -> str:
    """SHA-256 hex digest used for change detection."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Chunk:
    """Indexed slice of a parent document or conversation."""
    id: str
    parent_id: str
    ordinal: int
    text: str
    content_hash: str
    embedding: Optional[list[float]] = None
    updated_at: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


class IndexStatus(str, Enum):
    """Lifecycle of a parent record."""
    UPLOADING = "uploading"
    INDEXING = "indexing"
    READY = "ready"
    ERROR = "error"


@dataclass
class IndexEntry:
    """Metadata record for one parent (note, document or conversation)."""
    id: str
    title: str
    kind: str
    status: IndexStatus = IndexStatus.UPLOADING
    size: int = 0
    chunk_count: int = 0
    created_at: int = 0
    indexed_at: int = 0
    content_hash: str = ""
    mime_type: str = "text/plain"
    description: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class IndexingProgress:
    """Progress event emitted while indexing a parent."""
    current: float
    total: float
    status: str  # "parsing" | "chunking" | "embedding" | "complete" | "error"
    message: str
