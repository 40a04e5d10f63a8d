"""Content store protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ContentStoreProtocol(Protocol):
    """Protocol for the original text of stored documents."""

    async def get(self, key: str) -> Optional[str]:
        """Get text by key, None if absent."""
        ...

    async def put(self, key: str, text: str) -> None:
        """Store text under key."""
        ...

    async def delete(self, key: str) -> None:
        """Delete text if present."""
        ...
