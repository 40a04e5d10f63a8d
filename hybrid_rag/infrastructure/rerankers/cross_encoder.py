import asyncio
import logging
from functools import cached_property

from sentence_transformers import CrossEncoder

from ...core.models.search import RerankDocument, RerankResult
from .base import rank_by_score

logger = logging.getLogger(__name__)


class CrossEncoderReranker:
    """Reranker using a local CrossEncoder model."""

    def __init__(self, model_name: str = "BAAI/bge-reranker-v2-m3"):
        """Initialize reranker.

        Args:
            model_name: HuggingFace model name.
        """
        self._model_name = model_name

    @cached_property
    def model(self) -> CrossEncoder:
        logger.info(f"Loading reranker: {self._model_name}")
        model = CrossEncoder(self._model_name)
        logger.info("Reranker loaded")
        return model

    async def rerank(
        self,
        query: str,
        documents: list[RerankDocument],
        top_k: int,
        threshold: float,
    ) -> list[RerankResult]:
        """Rerank documents by cross-encoder relevance.

        Args:
            query: User query.
            documents: Candidates.
            top_k: Maximum number of results.
            threshold: Minimum relevance score.

        Returns:
            Reranked results sorted by score (descending).
        """
        if not documents:
            return []

        pairs = [[query, doc.text] for doc in documents]
        scores = await asyncio.to_thread(self.model.predict, pairs)
        results = rank_by_score(documents, [float(s) for s in scores], top_k, threshold)

        if logger.isEnabledFor(logging.DEBUG):
            top_scores = ", ".join(f"{r.relevance_score:.2f}" for r in results[:3])
            logger.debug(f"Reranker top-3 scores: [{top_scores}]")

        return results
