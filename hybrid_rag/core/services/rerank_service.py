"""Rerank service - backend registry and selection policy."""

import logging
from typing import Callable, Optional

from ...config.settings import Settings
from ..errors import RerankerConfigError
from ..models.search import RerankDocument, RerankerBackend, RerankerConfig, RerankResult
from ..protocols.reranker import RerankerProtocol

logger = logging.getLogger(__name__)


def recommend_backend(settings: Settings) -> RerankerBackend:
    """Pick the reranking backend from the configured credentials.

    Precedence: Cohere key, then rerank endpoint URL, then OpenAI key.
    """
    if settings.cohere_api_key:
        return RerankerBackend.COHERE
    if settings.rerank_api_url:
        return RerankerBackend.API
    if settings.openai_api_key:
        return RerankerBackend.OPENAI
    return RerankerBackend.NONE


class RerankService:
    """Builds reranker backends on demand and dispatches rerank calls."""

    def __init__(
        self,
        factories: dict[RerankerBackend, Callable[[], RerankerProtocol]],
        default_backend: RerankerBackend = RerankerBackend.NONE,
    ):
        """Initialize rerank service.

        Args:
            factories: Backend constructors. A constructor raises
                RerankerConfigError when its credential is missing.
            default_backend: Backend used when a call does not name one.
        """
        self._factories = factories
        self._default_backend = default_backend
        self._instances: dict[RerankerBackend, RerankerProtocol] = {}

    @property
    def default_backend(self) -> RerankerBackend:
        return self._default_backend

    def get(self, backend: RerankerBackend) -> RerankerProtocol:
        """Get (and cache) the reranker for a backend.

        Raises:
            RerankerConfigError: Backend unknown or missing its credential.
        """
        if backend in self._instances:
            return self._instances[backend]

        factory = self._factories.get(backend)
        if factory is None:
            raise RerankerConfigError(f"Reranker backend '{backend.value}' is not available")

        reranker = factory()
        self._instances[backend] = reranker
        logger.info(f"Reranker ready: {backend.value}")
        return reranker

    async def rerank(
        self,
        query: str,
        documents: list[RerankDocument],
        config: Optional[RerankerConfig] = None,
    ) -> list[RerankResult]:
        """Rerank documents with the configured backend.

        Args:
            query: User query.
            documents: Candidates in retrieval order.
            config: Backend, top_k and threshold.

        Returns:
            Reranked results, ranks starting at 1.

        Raises:
            RerankerConfigError: Backend cannot be built.
            RerankerError: Backend call failed.
        """
        config = config or RerankerConfig(backend=self._default_backend)
        if not documents:
            return []

        reranker = self.get(config.backend)
        return await reranker.rerank(query, documents, config.top_k, config.threshold)
