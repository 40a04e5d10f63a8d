"""Embedder protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for embedding service."""

    @property
    def dimension(self) -> int:
        """Vector length produced by the model."""
        ...

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """Embed document texts for indexing.

        Args:
            texts: Texts to embed.

        Returns:
            One vector per text, in input order.

        Raises:
            EmbeddingError: Service unavailable or response unusable.
        """
        ...

    async def embed_query(self, text: str) -> list[float]:
        """Embed a search query.

        Args:
            text: Query text.

        Returns:
            Query vector.

        Raises:
            EmbeddingError: Service unavailable or response unusable.
        """
        ...
