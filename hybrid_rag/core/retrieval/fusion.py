"""Reciprocal Rank Fusion of lexical and semantic rankings.

RRF(d) = sum over rankings of 1 / (k + rank(d)), ranks starting at 1.
Ranks are scale-free, so BM25 and cosine scores never need reconciling.
"""

from typing import Optional

from ..models.document import Chunk
from ..models.search import ScoredCandidate
from .lexical import LexicalMatch
from .semantic import SemanticMatch

DEFAULT_RRF_K = 60


def rrf_score(
    semantic_rank: Optional[int],
    lexical_rank: Optional[int],
    k: int = DEFAULT_RRF_K,
) -> float:
    """RRF score from 1-indexed ranks; a missing rank contributes 0."""
    score = 0.0
    if semantic_rank is not None:
        score += 1.0 / (k + semantic_rank)
    if lexical_rank is not None:
        score += 1.0 / (k + lexical_rank)
    return score


def fuse(
    lexical_ranked: list[LexicalMatch],
    semantic_ranked: list[SemanticMatch],
    k: int = DEFAULT_RRF_K,
    chunks: Optional[list[Chunk]] = None,
) -> list[ScoredCandidate]:
    """Fuse two rankings into one.

    Args:
        lexical_ranked: Lexical matches, best first.
        semantic_ranked: Semantic matches, best first.
        k: Smoothing constant; larger values flatten the top ranks.
        chunks: Candidate universe in encounter order. Defaults to the
            semantic ranking followed by lexical-only chunks.

    Returns:
        Every candidate sorted by fused score; ties keep encounter order.
    """
    if k < 0:
        raise ValueError("k must be >= 0")

    lexical = {m.chunk.id: (rank, m) for rank, m in enumerate(lexical_ranked, 1)}
    semantic = {m.chunk.id: (rank, m) for rank, m in enumerate(semantic_ranked, 1)}

    if chunks is None:
        seen: dict[str, Chunk] = {}
        for m in semantic_ranked:
            seen.setdefault(m.chunk.id, m.chunk)
        for m in lexical_ranked:
            seen.setdefault(m.chunk.id, m.chunk)
        chunks = list(seen.values())

    candidates: list[ScoredCandidate] = []
    for chunk in chunks:
        lexical_rank, lexical_match = lexical.get(chunk.id, (None, None))
        semantic_rank, semantic_match = semantic.get(chunk.id, (None, None))
        candidates.append(
            ScoredCandidate(
                chunk=chunk,
                lexical_rank=lexical_rank,
                semantic_rank=semantic_rank,
                lexical_score=lexical_match.lexical_score if lexical_match else 0.0,
                semantic_score=semantic_match.semantic_score if semantic_match else 0.0,
                fused_score=rrf_score(semantic_rank, lexical_rank, k),
                matched_terms=list(lexical_match.matched_terms) if lexical_match else [],
            )
        )

    candidates.sort(key=lambda c: c.fused_score, reverse=True)
    return candidates
