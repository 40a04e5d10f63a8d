from ...core.models.search import RerankDocument, RerankResult
from .base import passthrough


class NoopReranker:
    """Pass-through used when no scoring backend is available."""

    async def rerank(
        self,
        query: str,
        documents: list[RerankDocument],
        top_k: int,
        threshold: float,
    ) -> list[RerankResult]:
        return passthrough(documents)
