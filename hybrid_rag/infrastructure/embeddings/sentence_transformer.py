import asyncio
import logging
from functools import cached_property

from sentence_transformers import SentenceTransformer

from ...core.errors import EmbeddingError

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Local embedder; e5 models expect "query: " and "passage: " prefixes."""

    def __init__(self, model_name: str = "intfloat/multilingual-e5-base"):
        self._model_name = model_name

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    async def _encode(self, texts: list[str]) -> list[list[float]]:
        try:
            vectors = await asyncio.to_thread(
                self.model.encode, texts, convert_to_numpy=True
            )
        except (OSError, RuntimeError, ValueError) as e:
            raise EmbeddingError(f"Local embedding failed: {e}") from e
        return [vector.tolist() for vector in vectors]

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await self._encode([f"passage: {text}" for text in texts])

    async def embed_query(self, text: str) -> list[float]:
        return (await self._encode([f"query: {text}"]))[0]
