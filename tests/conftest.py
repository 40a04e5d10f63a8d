"""Shared fixtures."""

from __future__ import annotations

import pytest

from .helpers import Corpus, KeywordEmbedder


@pytest.fixture()
def embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture()
def corpus(embedder: KeywordEmbedder) -> Corpus:
    return Corpus(embedder)
