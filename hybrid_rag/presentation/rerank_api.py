"""
Rerank endpoint.

Scores documents with the chat-model scorer using the server's OpenAI key,
or the caller's key from the ``x-openai-api-key`` header.
"""

import logging
from typing import Any, Callable, Optional

from fastapi import FastAPI, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..config.settings import Settings
from ..core.models.search import RerankDocument
from ..infrastructure.rerankers.base import rank_by_score
from ..infrastructure.rerankers.llm_scorer import LLMScoreReranker

logger = logging.getLogger(__name__)

ScorerFactory = Callable[[str], LLMScoreReranker]


class RerankRequestDocument(BaseModel):
    """Document submitted for scoring."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    text: str
    original_score: Optional[float] = Field(default=None, alias="originalScore")
    metadata: Optional[dict[str, Any]] = None


class RerankRequest(BaseModel):
    """Request model for reranking."""

    model_config = ConfigDict(populate_by_name=True)

    query: Optional[str] = None
    documents: Optional[list[RerankRequestDocument]] = None
    top_k: int = Field(default=10, alias="topK")


def create_app(settings: Settings, scorer_factory: Optional[ScorerFactory] = None) -> FastAPI:
    """Build the rerank endpoint app.

    Args:
        settings: Application settings.
        scorer_factory: Builds a scorer for an API key; tests inject fakes.
    """
    if scorer_factory is None:

        def scorer_factory(api_key: str) -> LLMScoreReranker:
            return LLMScoreReranker(
                api_key=api_key,
                model=settings.rerank_llm_model,
                base_url=settings.openai_base_url,
                max_doc_chars=settings.rerank_max_doc_chars,
            )

    app = FastAPI(title="hybrid-rag rerank", description="LLM reranking endpoint")

    @app.post("/api/rerank")
    async def rerank(
        body: RerankRequest,
        x_openai_api_key: Optional[str] = Header(default=None),
    ):
        """Score, sort and filter documents for a query."""
        api_key = x_openai_api_key or settings.openai_api_key
        if not api_key:
            return JSONResponse(
                {"error": "OpenAI API key required for reranking"}, status_code=401
            )

        if not body.query or not body.documents:
            return JSONResponse(
                {"error": "Query and documents are required"}, status_code=400
            )

        try:
            documents = [
                RerankDocument(
                    id=doc.id,
                    text=doc.text,
                    original_score=doc.original_score,
                    metadata=doc.metadata or {},
                )
                for doc in body.documents
            ]
            scorer = scorer_factory(api_key)
            scores = await scorer.score_documents(body.query, documents)
            results = rank_by_score(
                documents, scores, body.top_k, settings.rerank_api_threshold
            )
        except Exception as e:
            logger.error(f"[Rerank API] Error: {e}")
            return JSONResponse({"error": "Reranking failed"}, status_code=500)

        logger.info(f"[Rerank API] {len(results)}/{len(documents)} documents kept")
        return {
            "results": [
                {
                    "id": r.id,
                    "text": r.text,
                    "relevanceScore": r.relevance_score,
                    "originalScore": r.original_score,
                    "rank": r.rank,
                    "metadata": r.metadata,
                }
                for r in results
            ]
        }

    return app
