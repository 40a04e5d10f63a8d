"""Search and reranking models."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .document import Chunk


class RerankerBackend(str, Enum):
    """Available reranking backends."""
    COHERE = "cohere"
    OPENAI = "openai"
    API = "api"
    LOCAL = "local"
    NONE = "none"


@dataclass(frozen=True)
class RerankerConfig:
    """Reranker call configuration."""
    backend: RerankerBackend = RerankerBackend.NONE
    top_k: int = 5
    threshold: float = 0.2


@dataclass
class RerankDocument:
    """Candidate submitted to a reranker."""
    id: str
    text: str
    original_score: Optional[float] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def fallback_score(self) -> float:
        """Semantic score when known, else the original retrieval score."""
        semantic = self.metadata.get("semantic_score", self.metadata.get("semanticScore"))
        if isinstance(semantic, (int, float)) and not isinstance(semantic, bool):
            return float(semantic)
        return self.original_score if self.original_score is not None else 0.0


@dataclass
class RerankResult:
    """Reranked candidate."""
    id: str
    text: str
    relevance_score: float
    rank: int
    original_score: Optional[float] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ScoredCandidate:
    """Fused candidate; lives for one query only."""
    chunk: Chunk
    lexical_rank: Optional[int] = None
    semantic_rank: Optional[int] = None
    lexical_score: float = 0.0
    semantic_score: float = 0.0
    fused_score: float = 0.0
    matched_terms: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SearchOptions:
    """Per-call search options.

    Attributes:
        top_k: Number of results to return.
        threshold: Minimum semantic similarity for a candidate.
        rerank: Force reranking on/off; None picks it from the backend policy.
        reranker_backend: Override the recommended backend.
        retrieve_k: Candidate pool size when reranking.
        rrf_k: Reciprocal Rank Fusion smoothing constant.
        include_breakdown: Fill matched_terms and query_type in results.
    """
    top_k: int = 10
    threshold: float = 0.3
    rerank: Optional[bool] = None
    reranker_backend: Optional[RerankerBackend] = None
    retrieve_k: int = 50
    rrf_k: int = 60
    include_breakdown: bool = False

    def __post_init__(self) -> None:
        if self.top_k < 1:
            raise ValueError("top_k must be >= 1")
        if self.retrieve_k < 1:
            raise ValueError("retrieve_k must be >= 1")
        if self.rrf_k < 0:
            raise ValueError("rrf_k must be >= 0")
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError("threshold must be between 0 and 1")


@dataclass
class SearchResult:
    """Search result returned to the tool layer."""
    source_id: str
    display_title: str
    chunk_text: str
    score: float
    ordinal: int
    reranked: bool = False
    score_source: str = "semantic"  # "rerank" | "semantic" | "lexical"
    chunk_id: str = ""
    matched_terms: Optional[list[str]] = None
    query_type: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
