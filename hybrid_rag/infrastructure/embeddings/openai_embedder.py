import logging
from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from ...core.errors import EmbeddingError

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Embedder using the OpenAI embeddings API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "text-embedding-3-small",
        dimension: int = 1536,
        batch_size: int = 20,
        base_url: Optional[str] = None,
        client: Any = None,
    ):
        """Initialize embedder.

        Args:
            api_key: OpenAI API key.
            model: Embedding model name.
            dimension: Requested vector length.
            batch_size: Texts per request.
            base_url: OpenAI-compatible API URL.
            client: Preconfigured AsyncOpenAI-compatible client.
        """
        if client is None and api_key:
            client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self._client = client
        self._model = model
        self._dimension = dimension
        self._batch_size = max(1, batch_size)

    @property
    def dimension(self) -> int:
        return self._dimension

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        if self._client is None:
            raise EmbeddingError("OpenAI API key is required for embeddings")
        try:
            response = await self._client.embeddings.create(
                model=self._model,
                input=batch,
                dimensions=self._dimension,
            )
        except openai.OpenAIError as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(batch):
            raise EmbeddingError(
                f"Embedding response has {len(data)} vectors for {len(batch)} texts"
            )
        vectors = [list(item.embedding) for item in data]
        for vector in vectors:
            if len(vector) != self._dimension:
                raise EmbeddingError(
                    f"Embedding has dimension {len(vector)}, expected {self._dimension}"
                )
        return vectors

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        vectors: list[list[float]] = []
        for i in range(0, len(texts), self._batch_size):
            batch = texts[i : i + self._batch_size]
            vectors.extend(await self._embed_batch(batch))
            logger.debug(f"Embedded batch: {i + len(batch)}/{len(texts)}")
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        return (await self._embed_batch([text]))[0]
