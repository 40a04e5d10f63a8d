"""Reranker protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.search import RerankDocument, RerankResult


@runtime_checkable
class RerankerProtocol(Protocol):
    """Protocol for reranking backend."""

    async def rerank(
        self,
        query: str,
        documents: list[RerankDocument],
        top_k: int,
        threshold: float,
    ) -> list[RerankResult]:
        """Rerank documents by relevance.

        Args:
            query: User query.
            documents: Candidates in retrieval order.
            top_k: Maximum number of results.
            threshold: Minimum relevance score to keep.

        Returns:
            Results sorted by relevance, ranks starting at 1.

        Raises:
            RerankerError: Backend call failed.
        """
        ...
