import asyncio
import logging
import math
from typing import Any, Optional

from openai import AsyncOpenAI

from ...core.errors import RerankerConfigError
from ...core.models.search import RerankDocument, RerankResult
from .base import rank_by_score

logger = logging.getLogger(__name__)

SCORING_PROMPT = """You are a relevance scoring system for document retrieval. Given a search query and a document chunk, output ONLY a decimal number from 0.00 to 1.00 representing how relevant the document is to the query.

IMPORTANT: The query may be a question OR a topic/keyword search. Score based on topical relevance, not just whether the document directly "answers" the query.

Use the FULL scale - don't be overly conservative:
- 0.90-1.00: Excellent match - document is clearly about this exact topic/question
- 0.75-0.89: Strong match - document discusses the topic with substantial relevant content
- 0.55-0.74: Good match - document contains relevant information about the topic
- 0.35-0.54: Partial match - document touches on related concepts
- 0.15-0.34: Weak match - only peripheral connection to the query
- 0.00-0.14: No match - unrelated content

Example: Query "Sieve of Eratosthenes" + document about the sieve algorithm -> 0.85-0.95
Example: Query "how does authentication work" + document explaining auth flows -> 0.80-0.90

Output ONLY a decimal number like 0.73 or 0.85. Use two decimal places. No other text."""


def parse_score(text: Optional[str]) -> float:
    """Parse a model reply; anything but a number in [0, 1] scores 0."""
    try:
        value = float((text or "").strip())
    except ValueError:
        return 0.0
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        return 0.0
    return value


class LLMScoreReranker:
    """Reranker that asks a chat-completion model to score each document."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        max_doc_chars: int = 2000,
        client: Any = None,
    ):
        """Initialize scorer.

        Args:
            api_key: OpenAI API key.
            model: Chat model used for scoring.
            base_url: OpenAI-compatible API URL.
            max_doc_chars: Documents are truncated to this length.
            client: Preconfigured AsyncOpenAI-compatible client.
        """
        if client is None:
            if not api_key:
                raise RerankerConfigError("OpenAI API key is required for reranking")
            client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self._client = client
        self._model = model
        self._max_doc_chars = max_doc_chars

    def _truncate(self, text: str) -> str:
        if len(text) > self._max_doc_chars:
            return text[: self._max_doc_chars] + "..."
        return text

    async def score(self, query: str, text: str) -> float:
        """Score one document; raises on transport errors."""
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": SCORING_PROMPT},
                {
                    "role": "user",
                    "content": f"Query: {query}\n\nDocument: {self._truncate(text)}",
                },
            ],
            max_tokens=10,
            temperature=0.0,
        )
        if not response.choices:
            return 0.0
        return parse_score(response.choices[0].message.content)

    async def score_documents(
        self, query: str, documents: list[RerankDocument]
    ) -> list[float]:
        """Score all documents concurrently.

        A failed request falls back to that document's semantic or original
        score; it never fails the batch.
        """

        async def score_one(index: int, doc: RerankDocument) -> float:
            try:
                return await self.score(query, doc.text)
            except Exception as e:
                logger.error(f"[rerank] Failed to score document {index}: {e}")
                return doc.fallback_score

        return list(
            await asyncio.gather(*(score_one(i, d) for i, d in enumerate(documents)))
        )

    async def rerank(
        self,
        query: str,
        documents: list[RerankDocument],
        top_k: int,
        threshold: float,
    ) -> list[RerankResult]:
        """Rerank documents by model-assigned relevance."""
        if not documents:
            return []

        scores = await self.score_documents(query, documents)
        results = rank_by_score(documents, scores, top_k, threshold)

        if logger.isEnabledFor(logging.DEBUG):
            top_scores = ", ".join(f"{r.relevance_score:.2f}" for r in results[:3])
            logger.debug(f"LLM reranker top-3 scores: [{top_scores}]")

        return results
