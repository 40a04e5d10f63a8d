"""Tests for Reciprocal Rank Fusion."""

from __future__ import annotations

import pytest

from hybrid_rag.core.retrieval.fusion import fuse, rrf_score
from hybrid_rag.core.retrieval.lexical import LexicalMatch
from hybrid_rag.core.retrieval.semantic import SemanticMatch

from .helpers import make_chunk


def test_rrf_score_values() -> None:
    assert rrf_score(None, None) == 0.0
    assert rrf_score(1, None) == pytest.approx(1 / 61)
    assert rrf_score(1, 1, k=0) == pytest.approx(2.0)


def test_rrf_is_monotonic_in_rank() -> None:
    for k in (0, 10, 60):
        assert rrf_score(1, 5, k) > rrf_score(2, 5, k)
        assert rrf_score(3, 1, k) > rrf_score(3, 2, k)
        assert rrf_score(3, 4, k) > rrf_score(3, None, k)


def test_rrf_is_symmetric() -> None:
    assert rrf_score(2, 7) == rrf_score(7, 2)
    assert rrf_score(None, 3) == rrf_score(3, None)


def test_fuse_combines_both_rankings() -> None:
    a, b, c = (make_chunk(p, 0, p) for p in ("a", "b", "c"))
    semantic = [SemanticMatch(a, 0.9), SemanticMatch(b, 0.8), SemanticMatch(c, 0.1)]
    lexical = [LexicalMatch(b, 1.0, 3.0, ["x"]), LexicalMatch(c, 0.5, 1.5, ["y"])]

    fused = fuse(lexical, semantic, k=60)

    assert [f.chunk.parent_id for f in fused] == ["b", "c", "a"]
    top = fused[0]
    assert top.semantic_rank == 2
    assert top.lexical_rank == 1
    assert top.matched_terms == ["x"]
    assert top.fused_score == pytest.approx(1 / 62 + 1 / 61)
    only_semantic = next(f for f in fused if f.chunk.parent_id == "a")
    assert only_semantic.lexical_rank is None
    assert only_semantic.lexical_score == 0.0


def test_fuse_ties_keep_encounter_order() -> None:
    a, b = make_chunk("a", 0, "a"), make_chunk("b", 0, "b")
    semantic = [SemanticMatch(a, 0.5), SemanticMatch(b, 0.4)]
    lexical = [LexicalMatch(b, 1.0, 1.0), LexicalMatch(a, 0.5, 0.5)]

    fused = fuse(lexical, semantic)

    assert fused[0].fused_score == fused[1].fused_score
    assert [f.chunk.parent_id for f in fused] == ["a", "b"]


def test_fuse_rejects_negative_k() -> None:
    with pytest.raises(ValueError):
        fuse([], [], k=-1)
