"""Tests for reranker backends, the backend policy and the rerank service."""

from __future__ import annotations

import json

import httpx
import pytest

from hybrid_rag.config.settings import Settings
from hybrid_rag.core.errors import RerankerConfigError, RerankerError
from hybrid_rag.core.models.search import RerankDocument, RerankerBackend, RerankerConfig
from hybrid_rag.core.services.rerank_service import RerankService, recommend_backend
from hybrid_rag.infrastructure.rerankers.api import ApiReranker
from hybrid_rag.infrastructure.rerankers.cohere import CohereReranker
from hybrid_rag.infrastructure.rerankers.llm_scorer import LLMScoreReranker, parse_score
from hybrid_rag.infrastructure.rerankers.noop import NoopReranker

from .helpers import FakeChatClient


def _docs() -> list[RerankDocument]:
    return [
        RerankDocument(id="a", text="alpha text", original_score=0.03, metadata={"semantic_score": 0.7}),
        RerankDocument(id="b", text="beta text", original_score=0.02),
        RerankDocument(id="c", text="gamma text"),
    ]


def _settings(**overrides) -> Settings:
    values = {"cohere_api_key": None, "rerank_api_url": None, "openai_api_key": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ---------------------------------------------------------------------------
# No-op
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_noop_preserves_order_and_uses_fallback_scores() -> None:
    results = await NoopReranker().rerank("q", _docs(), top_k=1, threshold=0.9)

    assert [r.id for r in results] == ["a", "b", "c"]
    assert [r.relevance_score for r in results] == [0.7, 0.02, 0.0]
    assert [r.rank for r in results] == [1, 2, 3]


# ---------------------------------------------------------------------------
# Chat-model scorer
# ---------------------------------------------------------------------------


def test_parse_score() -> None:
    assert parse_score(" 0.73 ") == 0.73
    assert parse_score("1") == 1.0
    assert parse_score("not a number") == 0.0
    assert parse_score("1.5") == 0.0
    assert parse_score("-0.1") == 0.0
    assert parse_score("nan") == 0.0
    assert parse_score(None) == 0.0


@pytest.mark.asyncio
async def test_malformed_score_sorts_last() -> None:
    client = FakeChatClient({"alpha": "0.90", "beta": "definitely relevant", "gamma": "0.40"})
    reranker = LLMScoreReranker(client=client)

    results = await reranker.rerank("query", _docs(), top_k=3, threshold=0.0)

    assert [(r.id, r.relevance_score) for r in results] == [("a", 0.9), ("c", 0.4), ("b", 0.0)]
    assert [r.rank for r in results] == [1, 2, 3]


@pytest.mark.asyncio
async def test_failed_request_falls_back_to_document_score() -> None:
    client = FakeChatClient({"alpha": RuntimeError("timeout"), "beta": "0.50", "gamma": "0.10"})
    reranker = LLMScoreReranker(client=client)

    results = await reranker.rerank("query", _docs(), top_k=5, threshold=0.2)

    assert [(r.id, r.relevance_score) for r in results] == [("a", 0.7), ("b", 0.5)]


@pytest.mark.asyncio
async def test_scorer_request_shape_and_truncation() -> None:
    client = FakeChatClient({})
    reranker = LLMScoreReranker(client=client, model="gpt-4o-mini", max_doc_chars=10)

    await reranker.rerank("q", [RerankDocument(id="x", text="y" * 50)], top_k=1, threshold=0.0)

    call = client.chat.completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["temperature"] == 0.0
    assert call["max_tokens"] == 10
    assert call["messages"][1]["content"].endswith("y" * 10 + "...")


def test_scorer_requires_key() -> None:
    with pytest.raises(RerankerConfigError):
        LLMScoreReranker(api_key=None)


# ---------------------------------------------------------------------------
# Cohere
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cohere_batches_and_filters_by_threshold() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append({"url": str(request.url), "auth": request.headers["authorization"], "body": json.loads(request.content)})
        return httpx.Response(
            200,
            json={
                "results": [
                    {"index": 2, "relevance_score": 0.91},
                    {"index": 0, "relevance_score": 0.55},
                    {"index": 1, "relevance_score": 0.05},
                ]
            },
        )

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    reranker = CohereReranker(api_key="co-key", client=client)

    results = await reranker.rerank("query", _docs(), top_k=3, threshold=0.2)

    assert [(r.id, r.rank) for r in results] == [("c", 1), ("a", 2)]
    assert results[1].original_score == 0.03
    assert seen[0]["url"] == "https://api.cohere.com/v1/rerank"
    assert seen[0]["auth"] == "Bearer co-key"
    assert seen[0]["body"]["documents"] == ["alpha text", "beta text", "gamma text"]
    assert seen[0]["body"]["top_n"] == 3


@pytest.mark.asyncio
async def test_cohere_error_status_raises() -> None:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(429, json={"message": "rate limited"}))
    )
    reranker = CohereReranker(api_key="co-key", client=client)

    with pytest.raises(RerankerError, match="rate limited"):
        await reranker.rerank("query", _docs(), top_k=3, threshold=0.2)


def test_cohere_requires_key() -> None:
    with pytest.raises(RerankerConfigError):
        CohereReranker(api_key=None)


# ---------------------------------------------------------------------------
# Rerank endpoint client
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_api_reranker_sends_camel_case_and_user_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "results": [
                    {"id": "b", "text": "beta text", "relevanceScore": 0.8, "originalScore": 0.02, "rank": 1, "metadata": {}},
                    {"id": "a", "text": "alpha text", "relevanceScore": 0.16, "originalScore": 0.03, "rank": 2, "metadata": {}},
                ]
            },
        )

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    reranker = ApiReranker("http://rerank.local/", openai_api_key="user-key", client=client)

    results = await reranker.rerank("query", _docs(), top_k=2, threshold=0.2)

    assert [r.id for r in results] == ["b"]
    request = seen[0]
    assert str(request.url) == "http://rerank.local/api/rerank"
    assert request.headers["x-openai-api-key"] == "user-key"
    body = json.loads(request.content)
    assert body["topK"] == 2
    assert body["documents"][0]["originalScore"] == 0.03


@pytest.mark.asyncio
async def test_api_reranker_error_status_raises() -> None:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "Reranking failed"}))
    )
    reranker = ApiReranker("http://rerank.local", client=client)

    with pytest.raises(RerankerError, match="Reranking failed"):
        await reranker.rerank("query", _docs(), top_k=2, threshold=0.2)


def test_api_reranker_requires_url() -> None:
    with pytest.raises(RerankerConfigError):
        ApiReranker(None)


# ---------------------------------------------------------------------------
# Policy and service
# ---------------------------------------------------------------------------


def test_recommend_backend_precedence() -> None:
    assert recommend_backend(_settings()) is RerankerBackend.NONE
    assert recommend_backend(_settings(openai_api_key="sk")) is RerankerBackend.OPENAI
    assert (
        recommend_backend(_settings(openai_api_key="sk", rerank_api_url="http://x"))
        is RerankerBackend.API
    )
    assert (
        recommend_backend(_settings(openai_api_key="sk", rerank_api_url="http://x", cohere_api_key="co"))
        is RerankerBackend.COHERE
    )


@pytest.mark.asyncio
async def test_rerank_service_builds_backend_once() -> None:
    built: list[int] = []

    def factory() -> NoopReranker:
        built.append(1)
        return NoopReranker()

    service = RerankService({RerankerBackend.NONE: factory})
    config = RerankerConfig(backend=RerankerBackend.NONE)

    await service.rerank("q", _docs(), config)
    results = await service.rerank("q", _docs(), config)

    assert len(built) == 1
    assert [r.id for r in results] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_rerank_service_unknown_backend_raises_config_error() -> None:
    service = RerankService({RerankerBackend.NONE: NoopReranker})

    with pytest.raises(RerankerConfigError):
        await service.rerank("q", _docs(), RerankerConfig(backend=RerankerBackend.COHERE))


@pytest.mark.asyncio
async def test_rerank_service_empty_documents() -> None:
    service = RerankService({})

    assert await service.rerank("q", [], RerankerConfig(backend=RerankerBackend.COHERE)) == []
