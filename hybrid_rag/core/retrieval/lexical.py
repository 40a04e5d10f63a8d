"""Lexical (BM25) scoring over a chunk set."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from rank_bm25 import BM25Plus

from ..models.document import Chunk

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")

STOPWORDS = frozenset(
    """a an and are as at be but by can do does for from has have i if in into
    is it its me my of on or our so that the their then there these this those
    to was we were will with you your""".split()
)

_QUESTION_WORDS = frozenset(
    """how what why when where which who whom whose explain describe compare
    summarize summarise tell""".split()
)

_EXACT_RE = re.compile(
    r'"[^"]+"'  # quoted phrase
    r"|\b[A-Za-z]+_\w+\b"  # snake_case
    r"|\b[a-z]+[A-Z]\w*\b"  # camelCase
    r"|\b[A-Z]{2,}\b"  # acronym
    r"|\b\w*\d\w*\b"  # numbers, versions, ids
    r"|\b\w+\.\w+\b"  # dotted names
)


class QueryType(str, Enum):
    """Advisory classification of a query."""
    EXACT = "exact"
    CONCEPTUAL = "conceptual"
    MIXED = "mixed"


def tokenize(text: str) -> list[str]:
    """Lowercase alphanumeric tokens without stopwords."""
    return [t for t in _TOKEN_RE.findall(text.lower()) if t not in STOPWORDS]


def stem(token: str) -> str:
    """Strip plural endings ("primes" -> "prime", "queries" -> "query")."""
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 3 and token.endswith("s") and not token.endswith(("ss", "us", "is")):
        return token[:-1]
    return token


def detect_query_type(query: str) -> QueryType:
    """Classify a query as exact-term, conceptual or mixed."""
    stripped = query.strip()
    words = stripped.split()
    exact = bool(_EXACT_RE.search(stripped))
    first = words[0].lower().strip("\"'") if words else ""
    conceptual = stripped.endswith("?") or first in _QUESTION_WORDS or len(words) >= 6

    if exact and conceptual:
        return QueryType.MIXED
    if exact:
        return QueryType.EXACT
    if conceptual:
        return QueryType.CONCEPTUAL
    return QueryType.EXACT if len(words) <= 2 else QueryType.MIXED


@dataclass
class LexicalMatch:
    """Chunk with a positive lexical score."""
    chunk: Chunk
    lexical_score: float
    raw_score: float
    matched_terms: list[str] = field(default_factory=list)


class LexicalScorer:
    """BM25+ scorer.

    BM25+ adds ``idf * delta`` for every query term to every chunk; that
    constant is subtracted so a chunk matching no term scores exactly zero.
    """

    def __init__(self, k1: float = 1.5, b: float = 0.75, delta: float = 1.0):
        """Initialize scorer.

        Args:
            k1: Term frequency saturation.
            b: Length normalisation.
            delta: BM25+ lower bound.
        """
        self._k1 = k1
        self._b = b
        self._delta = delta

    def score(self, query: str, chunks: list[Chunk]) -> list[LexicalMatch]:
        """Score chunks against a query.

        Args:
            query: Search query.
            chunks: Chunks to score.

        Returns:
            Matches with score > 0, best first; ties keep input order.
            lexical_score is normalised to the best raw score.
        """
        # one entry per stemmed term, keeping the first surface form
        first_forms: dict[str, str] = {}
        for token in tokenize(query):
            first_forms.setdefault(stem(token), token)
        if not first_forms or not chunks:
            return []

        query_terms = list(first_forms)
        query_tokens = list(first_forms.values())
        corpus = [[stem(t) for t in tokenize(c.text)] for c in chunks]
        if not any(corpus):
            return []

        bm25 = BM25Plus(corpus, k1=self._k1, b=self._b, delta=self._delta)
        raw_scores = bm25.get_scores(query_terms)
        baseline = self._delta * sum(bm25.idf.get(term) or 0.0 for term in query_terms)

        scored: list[tuple[Chunk, float, list[str]]] = []
        for chunk, terms, raw in zip(chunks, corpus, raw_scores):
            adjusted = float(raw) - baseline
            if adjusted <= 1e-9:
                continue
            present = set(terms)
            matched = [tok for tok, term in zip(query_tokens, query_terms) if term in present]
            scored.append((chunk, adjusted, matched))

        if not scored:
            return []

        scored.sort(key=lambda item: item[1], reverse=True)
        best = scored[0][1]

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Lexical: {len(scored)}/{len(chunks)} chunks matched {query_terms}")

        return [
            LexicalMatch(
                chunk=chunk,
                lexical_score=raw / best,
                raw_score=raw,
                matched_terms=matched,
            )
            for chunk, raw, matched in scored
        ]
