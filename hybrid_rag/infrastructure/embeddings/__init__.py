"""Embedding backends."""
from .openai_embedder import OpenAIEmbedder

__all__ = ["OpenAIEmbedder"]
