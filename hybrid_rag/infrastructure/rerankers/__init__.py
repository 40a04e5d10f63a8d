"""Reranker backend implementations."""
from .api import ApiReranker
from .cohere import CohereReranker
from .llm_scorer import LLMScoreReranker, parse_score
from .noop import NoopReranker

__all__ = [
    "ApiReranker",
    "CohereReranker",
    "LLMScoreReranker",
    "NoopReranker",
    "parse_score",
]
