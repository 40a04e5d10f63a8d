"""Search service - hybrid retrieval over one corpus."""

import logging
from typing import Optional

from ..models.document import Chunk
from ..models.search import (
    RerankDocument,
    RerankerBackend,
    RerankerConfig,
    ScoredCandidate,
    SearchOptions,
    SearchResult,
)
from ..protocols.chunk_store import ChunkStoreProtocol
from ..protocols.embedder import EmbedderProtocol
from ..protocols.record_store import RecordStoreProtocol
from ..retrieval.fusion import fuse
from ..retrieval.lexical import LexicalMatch, LexicalScorer, detect_query_type
from ..retrieval.semantic import SemanticScorer
from .rerank_service import RerankService

logger = logging.getLogger(__name__)


def _round_score(score: float) -> float:
    return round(min(max(score, 0.0), 1.0), 2)


class HybridSearchService:
    """Lexical + semantic search fused with RRF, optionally reranked."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        chunk_store: ChunkStoreProtocol,
        record_store: RecordStoreProtocol,
        rerank_service: Optional[RerankService] = None,
        rerank_threshold: float = 0.2,
        lexical_scorer: Optional[LexicalScorer] = None,
        semantic_scorer: Optional[SemanticScorer] = None,
        unknown_title: str = "Unknown",
    ):
        """Initialize search service.

        Args:
            embedder: Embedding service.
            chunk_store: Chunks of this corpus.
            record_store: Parent records of this corpus, for display titles.
            rerank_service: Reranking backends; None disables reranking.
            rerank_threshold: Minimum reranker relevance.
            lexical_scorer: BM25 scorer.
            semantic_scorer: Cosine scorer.
            unknown_title: Title used when a parent record is missing.
        """
        self._embedder = embedder
        self._chunk_store = chunk_store
        self._record_store = record_store
        self._rerank_service = rerank_service
        self._rerank_threshold = rerank_threshold
        self._lexical = lexical_scorer or LexicalScorer()
        self._semantic = semantic_scorer or SemanticScorer()
        self._unknown_title = unknown_title

    def _rerank_backend(self, options: SearchOptions) -> Optional[RerankerBackend]:
        """Backend to use for this query; None means skip reranking.

        With ``rerank=None`` the pass-through backend is skipped; an explicit
        ``rerank=True`` runs it so the wider candidate pool is kept.
        """
        if options.rerank is False or self._rerank_service is None:
            return None
        backend = options.reranker_backend or self._rerank_service.default_backend
        if backend is RerankerBackend.NONE and options.rerank is not True:
            return None
        return backend

    async def search(
        self,
        query: str,
        options: Optional[SearchOptions] = None,
        parent_id: Optional[str] = None,
    ) -> list[SearchResult]:
        """Search the corpus.

        Args:
            query: Search query.
            options: Search options.
            parent_id: Restrict the search to one parent.

        Returns:
            Results, best first. Never raises for embedding or reranking
            failures; those degrade to lexical-only or fused order.
        """
        options = options or SearchOptions()
        if not query.strip():
            return []

        if parent_id is not None:
            chunks = await self._chunk_store.get_all_by_parent(parent_id)
        else:
            chunks = await self._chunk_store.get_all()
        if not chunks:
            return []

        query_type = detect_query_type(query).value if options.include_breakdown else None
        lexical = self._lexical.score(query, chunks)

        try:
            query_embedding = await self._embedder.embed_query(query)
        except Exception as e:
            logger.error(f"Embedding failed, using lexical-only results: {e}")
            return await self._lexical_results(lexical, options, query_type)

        semantic = self._semantic.score(query_embedding, chunks)
        fused = fuse(lexical, semantic, k=options.rrf_k, chunks=chunks)

        backend = self._rerank_backend(options)
        use_rerank = backend is not None
        pool = options.retrieve_k if use_rerank else options.top_k

        candidates = [c for c in fused[:pool] if c.semantic_score >= options.threshold]
        if not candidates:
            logger.info(f"Search: no candidates above {options.threshold} for '{query[:50]}'")
            return []

        titles = await self._titles(c.chunk for c in candidates)

        if use_rerank and len(candidates) > 1:
            reranked = await self._rerank(query, candidates, backend, options, titles, query_type)
            if reranked is not None:
                logger.info(
                    f"Search: returned {len(reranked)}/{options.top_k} reranked docs for '{query[:50]}'"
                )
                return reranked

        results = [
            self._to_result(
                c.chunk,
                titles,
                score=c.semantic_score,
                score_source="semantic",
                matched_terms=c.matched_terms,
                options=options,
                query_type=query_type,
            )
            for c in candidates[: options.top_k]
        ]
        logger.info(f"Search: returned {len(results)}/{options.top_k} docs for '{query[:50]}'")
        return results

    async def _rerank(
        self,
        query: str,
        candidates: list[ScoredCandidate],
        backend: RerankerBackend,
        options: SearchOptions,
        titles: dict[str, str],
        query_type: Optional[str],
    ) -> Optional[list[SearchResult]]:
        """Rerank candidates; None when the backend fails."""
        by_id = {c.chunk.id: c for c in candidates}
        documents = [
            RerankDocument(
                id=c.chunk.id,
                text=c.chunk.text,
                original_score=c.fused_score,
                metadata={
                    "parent_id": c.chunk.parent_id,
                    "semantic_score": c.semantic_score,
                    "lexical_score": c.lexical_score,
                },
            )
            for c in candidates
        ]
        config = RerankerConfig(
            backend=backend, top_k=options.top_k, threshold=self._rerank_threshold
        )

        try:
            reranked = await self._rerank_service.rerank(query, documents, config)
        except Exception as e:
            logger.error(f"Reranking failed, falling back to fused order: {e}")
            return None

        results = []
        for r in reranked[: options.top_k]:
            candidate = by_id.get(r.id)
            if candidate is None:
                logger.warning(f"Reranker returned unknown chunk: {r.id}")
                continue
            results.append(
                self._to_result(
                    candidate.chunk,
                    titles,
                    score=r.relevance_score,
                    score_source="rerank",
                    matched_terms=candidate.matched_terms,
                    options=options,
                    query_type=query_type,
                    reranked=True,
                )
            )
        return results

    async def _lexical_results(
        self,
        lexical: list[LexicalMatch],
        options: SearchOptions,
        query_type: Optional[str],
    ) -> list[SearchResult]:
        matches = lexical[: options.top_k]
        titles = await self._titles(m.chunk for m in matches)
        return [
            self._to_result(
                m.chunk,
                titles,
                score=m.lexical_score,
                score_source="lexical",
                matched_terms=m.matched_terms,
                options=options,
                query_type=query_type,
            )
            for m in matches
        ]

    async def _titles(self, chunks) -> dict[str, str]:
        titles: dict[str, str] = {}
        for chunk in chunks:
            if chunk.parent_id in titles:
                continue
            entry = await self._record_store.get(chunk.parent_id)
            titles[chunk.parent_id] = entry.title if entry else self._unknown_title
        return titles

    def _to_result(
        self,
        chunk: Chunk,
        titles: dict[str, str],
        score: float,
        score_source: str,
        matched_terms: list[str],
        options: SearchOptions,
        query_type: Optional[str],
        reranked: bool = False,
    ) -> SearchResult:
        return SearchResult(
            source_id=chunk.parent_id,
            display_title=titles.get(chunk.parent_id, self._unknown_title),
            chunk_text=chunk.text,
            score=_round_score(score),
            ordinal=chunk.ordinal,
            reranked=reranked,
            score_source=score_source,
            chunk_id=chunk.id,
            matched_terms=list(matched_terms) if options.include_breakdown else None,
            query_type=query_type,
            metadata=dict(chunk.metadata),
        )
