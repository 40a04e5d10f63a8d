import logging
from typing import Any, Optional

import httpx

from ...core.errors import RerankerConfigError, RerankerError
from ...core.models.search import RerankDocument, RerankResult

logger = logging.getLogger(__name__)


class CohereReranker:
    """Reranker using the Cohere Rerank API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "rerank-v3.5",
        base_url: str = "https://api.cohere.com/v1",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize reranker.

        Args:
            api_key: Cohere API key.
            model: Rerank model name.
            base_url: Cohere API URL.
            timeout: Request timeout in seconds.
            client: Shared HTTP client.
        """
        if not api_key:
            raise RerankerConfigError("Cohere API key is required for reranking")
        self._api_key = api_key
        self._model = model
        self._url = f"{base_url.rstrip('/')}/rerank"
        self._timeout = timeout
        self._client = client

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}"}
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
        """Rerank documents in one batched call."""
        if not documents:
            return []

        payload = {
            "model": self._model,
            "query": query,
            "documents": [doc.text for doc in documents],
            "top_n": top_k,
            "return_documents": False,
        }
        try:
            resp = await self._post(payload)
        except httpx.HTTPError as e:
            raise RerankerError(f"Cohere rerank request failed: {e}") from e

        if resp.status_code != 200:
            try:
                detail = resp.json().get("message") or resp.reason_phrase
            except ValueError:
                detail = resp.reason_phrase
            raise RerankerError(f"Cohere rerank failed: {detail}")

        results = []
        for rank, item in enumerate(resp.json().get("results", []), 1):
            doc = documents[item["index"]]
            results.append(
                RerankResult(
                    id=doc.id,
                    text=doc.text,
                    relevance_score=float(item["relevance_score"]),
                    rank=rank,
                    original_score=doc.original_score,
                    metadata=doc.metadata,
                )
            )

        logger.info(f"Cohere rerank: {len(results)}/{len(documents)} docs scored")
        return [r for r in results if r.relevance_score >= threshold]
