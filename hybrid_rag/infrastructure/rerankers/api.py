import logging
from typing import Any, Optional

import httpx

from ...core.errors import RerankerConfigError, RerankerError
from ...core.models.search import RerankDocument, RerankResult

logger = logging.getLogger(__name__)


class ApiReranker:
    """Reranker that delegates LLM scoring to the rerank endpoint.

    The endpoint uses its own OpenAI key unless the caller sends one in the
    ``x-openai-api-key`` header.
    """

    def __init__(
        self,
        base_url: Optional[str],
        openai_api_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not base_url:
            raise RerankerConfigError("Rerank API URL is not configured")
        self._url = f"{base_url.rstrip('/')}/api/rerank"
        self._openai_api_key = openai_api_key
        self._timeout = timeout
        self._client = client

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {"x-openai-api-key": self._openai_api_key} if self._openai_api_key else {}
        if self._client is not None:
            return await self._client.post(self._url, json=payload, headers=headers)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(self._url, json=payload, headers=headers)

    async def rerank(
        self,
        query: str,
        documents: list[RerankDocument],
        top_k: int,
        threshold: float,
    ) -> list[RerankResult]:
        """Rerank documents through the endpoint."""
        if not documents:
            return []

        logger.info("Using rerank API for reranking")
        payload = {
            "query": query,
            "documents": [
                {
                    "id": doc.id,
                    "text": doc.text,
                    "originalScore": doc.original_score,
                    "metadata": doc.metadata,
                }
                for doc in documents
            ],
            "topK": top_k,
        }
        try:
            resp = await self._post(payload)
        except httpx.HTTPError as e:
            raise RerankerError(f"Rerank API request failed: {e}") from e

        if resp.status_code != 200:
            try:
                detail = resp.json().get("error") or resp.reason_phrase
            except ValueError:
                detail = resp.reason_phrase
            raise RerankerError(f"Rerank API failed: {detail}")

        results = [
            RerankResult(
                id=item["id"],
                text=item["text"],
                relevance_score=float(item["relevanceScore"]),
                rank=int(item["rank"]),
                original_score=item.get("originalScore"),
                metadata=item.get("metadata") or {},
            )
            for item in resp.json().get("results", [])
        ]
        return [r for r in results if r.relevance_score >= threshold]
