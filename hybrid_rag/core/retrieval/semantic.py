"""Cosine similarity ranking of chunk embeddings."""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..models.document import Chunk

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1]; 0 when either vector has zero norm."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denominator = np.linalg.norm(va) * np.linalg.norm(vb)
    if denominator == 0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / denominator, -1.0, 1.0))


@dataclass
class SemanticMatch:
    """Chunk with its similarity to the query."""
    chunk: Chunk
    semantic_score: float


class SemanticScorer:
    """Full-scan cosine scorer."""

    def score(self, query_embedding: Sequence[float], chunks: list[Chunk]) -> list[SemanticMatch]:
        """Rank every chunk by similarity to the query.

        Chunks without an embedding, or with a different dimension, score 0.

        Args:
            query_embedding: Query vector.
            chunks: Chunks to rank.

        Returns:
            All chunks, most similar first; ties keep input order.
        """
        if not chunks:
            return []

        dim = len(query_embedding)
        matches: list[SemanticMatch] = []
        skipped = 0
        for chunk in chunks:
            if chunk.embedding is None or len(chunk.embedding) != dim:
                skipped += 1
                matches.append(SemanticMatch(chunk=chunk, semantic_score=0.0))
                continue
            matches.append(
                SemanticMatch(
                    chunk=chunk,
                    semantic_score=cosine_similarity(query_embedding, chunk.embedding),
                )
            )

        if skipped:
            logger.warning(f"Semantic: {skipped} chunks without a usable embedding")

        matches.sort(key=lambda m: m.semantic_score, reverse=True)
        return matches
