"""Chunk store protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.document import Chunk


@runtime_checkable
class ChunkStoreProtocol(Protocol):
    """Protocol for chunk storage of one corpus."""

    async def get_all(self) -> list[Chunk]:
        """Get every chunk in the corpus."""
        ...

    async def get_all_by_parent(self, parent_id: str) -> list[Chunk]:
        """Get chunks of one parent, ordered by ordinal."""
        ...

    async def get_by_hash(self, content_hash: str) -> list[Chunk]:
        """Get chunks whose text has the given digest."""
        ...

    async def put(self, chunk: Chunk) -> None:
        """Insert or replace a chunk by id."""
        ...

    async def put_many(self, chunks: list[Chunk]) -> None:
        """Insert or replace several chunks."""
        ...

    async def delete_all_by_parent(self, parent_id: str) -> None:
        """Delete every chunk of a parent."""
        ...

    async def replace_all_by_parent(self, parent_id: str, chunks: list[Chunk]) -> None:
        """Delete a parent's chunks and store its new ones in one step."""
        ...

    async def count(self) -> int:
        """Get chunk count."""
        ...

    async def clear(self) -> None:
        """Delete every chunk."""
        ...
