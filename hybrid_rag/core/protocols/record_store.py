"""Record store protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable

from ..models.document import IndexEntry


@runtime_checkable
class RecordStoreProtocol(Protocol):
    """Protocol for parent metadata records of one corpus."""

    async def get(self, entry_id: str) -> Optional[IndexEntry]:
        """Get a record by id."""
        ...

    async def get_all(self) -> list[IndexEntry]:
        """Get all records."""
        ...

    async def put(self, entry: IndexEntry) -> None:
        """Insert or replace a record."""
        ...

    async def delete(self, entry_id: str) -> None:
        """Delete a record if present."""
        ...

    async def clear(self) -> None:
        """Delete all records."""
        ...
