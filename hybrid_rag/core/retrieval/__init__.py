"""Retrieval building blocks: chunking, scoring and fusion."""
from .chunker import (
    ChunkOptions,
    ConversationChunk,
    TextChunk,
    chunk_conversation,
    chunk_text,
    conversation_content_hash,
    estimate_tokens,
)
from .fusion import DEFAULT_RRF_K, fuse, rrf_score
from .lexical import LexicalMatch, LexicalScorer, QueryType, detect_query_type, tokenize
from .semantic import SemanticMatch, SemanticScorer, cosine_similarity

__all__ = [
    "ChunkOptions",
    "ConversationChunk",
    "TextChunk",
    "chunk_conversation",
    "chunk_text",
    "conversation_content_hash",
    "estimate_tokens",
    "DEFAULT_RRF_K",
    "fuse",
    "rrf_score",
    "LexicalMatch",
    "LexicalScorer",
    "QueryType",
    "detect_query_type",
    "tokenize",
    "SemanticMatch",
    "SemanticScorer",
    "cosine_similarity",
]
