"""Shared helpers for reranker backends."""
from ...core.models.search import RerankDocument, RerankResult


def passthrough(documents: list[RerankDocument]) -> list[RerankResult]:
    """Keep input order; score with the semantic score, else the original score."""
    return [
        RerankResult(
            id=doc.id,
            text=doc.text,
            relevance_score=doc.fallback_score,
            rank=rank,
            original_score=doc.original_score,
            metadata=doc.metadata,
        )
        for rank, doc in enumerate(documents, 1)
    ]


def rank_by_score(
    documents: list[RerankDocument],
    scores: list[float],
    top_k: int,
    threshold: float,
) -> list[RerankResult]:
    """Sort documents by score (stable), keep top_k, drop scores below threshold."""
    ordered = sorted(zip(documents, scores), key=lambda item: item[1], reverse=True)
    kept = [(doc, score) for doc, score in ordered[:top_k] if score >= threshold]
    return [
        RerankResult(
            id=doc.id,
            text=doc.text,
            relevance_score=score,
            rank=rank,
            original_score=doc.original_score,
            metadata=doc.metadata,
        )
        for rank, (doc, score) in enumerate(kept, 1)
    ]
