import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)
    _closables: list[Any] = field(default_factory=list)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()

    def track(self, resource: Any) -> None:
        """Close resource on `aclose()` if it owns connections."""
        if hasattr(resource, "aclose"):
            self._closables.append(resource)

    async def aclose(self) -> None:
        """Close tracked resources and drop singletons built on them."""
        closables, self._closables = self._closables, []
        for resource in closables:
            await resource.aclose()
        self.reset()


container = Container()


def build_stores(settings: Settings, corpus: str) -> tuple[Any, Any]:
    """Create the chunk store and record store of one corpus."""
    from .infrastructure.stores import (
        ChromaChunkStore,
        InMemoryChunkStore,
        InMemoryRecordStore,
    )

    data_dir = Path(settings.data_dir) / corpus
    if settings.store_backend == "memory":
        return InMemoryChunkStore(), InMemoryRecordStore()
    if settings.store_backend == "json":
        return (
            InMemoryChunkStore(data_dir / "chunks.json"),
            InMemoryRecordStore(data_dir / "records.json"),
        )
    if settings.store_backend == "chroma":
        return (
            ChromaChunkStore(
                host=settings.chroma_host,
                port=settings.chroma_port,
                collection_name=f"{settings.chroma_collection_prefix}_{corpus}",
                timeout=settings.http_timeout,
            ),
            InMemoryRecordStore(data_dir / "records.json"),
        )
    raise ValueError(f"Unknown store backend: {settings.store_backend}")


def configure_container(settings: Settings) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .core.models.search import RerankerBackend
    from .core.protocols.embedder import EmbedderProtocol
    from .core.retrieval.chunker import ChunkOptions
    from .core.services.chat_history_service import ChatHistoryService
    from .core.services.document_service import DocumentService
    from .core.services.indexing import ChunkIndexer
    from .core.services.knowledge_base_service import KnowledgeBaseService
    from .core.services.rerank_service import RerankService, recommend_backend
    from .core.services.search_service import HybridSearchService
    from .infrastructure.stores import FileContentStore

    def make_embedder() -> EmbedderProtocol:
        if settings.embedding_backend == "local":
            from .infrastructure.embeddings.sentence_transformer import (
                SentenceTransformerEmbedder,
            )

            return SentenceTransformerEmbedder(settings.local_embedding_model)

        from .infrastructure.embeddings.openai_embedder import OpenAIEmbedder

        return OpenAIEmbedder(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            dimension=settings.embedding_dim,
            batch_size=settings.embedding_batch_size,
            base_url=settings.openai_base_url,
        )

    def make_cohere():
        from .infrastructure.rerankers.cohere import CohereReranker

        return CohereReranker(
            api_key=settings.cohere_api_key,
            model=settings.cohere_model,
            base_url=settings.cohere_base_url,
            timeout=settings.http_timeout,
        )

    def make_openai():
        from .infrastructure.rerankers.llm_scorer import LLMScoreReranker

        return LLMScoreReranker(
            api_key=settings.openai_api_key,
            model=settings.rerank_llm_model,
            base_url=settings.openai_base_url,
            max_doc_chars=settings.rerank_max_doc_chars,
        )

    def make_api():
        from .infrastructure.rerankers.api import ApiReranker

        return ApiReranker(
            base_url=settings.rerank_api_url,
            openai_api_key=settings.openai_api_key,
            timeout=settings.http_timeout,
        )

    def make_local():
        from .infrastructure.rerankers.cross_encoder import CrossEncoderReranker

        return CrossEncoderReranker(settings.local_reranker_model)

    def make_noop():
        from .infrastructure.rerankers.noop import NoopReranker

        return NoopReranker()

    container.register(EmbedderProtocol, make_embedder, singleton=True)

    container.register(
        RerankService,
        lambda: RerankService(
            factories={
                RerankerBackend.COHERE: make_cohere,
                RerankerBackend.OPENAI: make_openai,
                RerankerBackend.API: make_api,
                RerankerBackend.LOCAL: make_local,
                RerankerBackend.NONE: make_noop,
            },
            default_backend=recommend_backend(settings),
        ),
        singleton=True,
    )

    def corpus_parts(corpus: str, id_prefix: str = "", unknown_title: str = "Unknown"):
        chunk_store, record_store = build_stores(settings, corpus)
        container.track(chunk_store)
        embedder = container.resolve(EmbedderProtocol)
        indexer = ChunkIndexer(
            embedder=embedder,
            chunk_store=chunk_store,
            batch_size=settings.embedding_batch_size,
            id_prefix=id_prefix,
        )
        search = HybridSearchService(
            embedder=embedder,
            chunk_store=chunk_store,
            record_store=record_store,
            rerank_service=container.resolve(RerankService),
            rerank_threshold=settings.rerank_threshold,
            unknown_title=unknown_title,
        )
        return indexer, chunk_store, record_store, search

    chunk_options = ChunkOptions(
        max_tokens=settings.chunk_max_tokens,
        overlap_tokens=settings.chunk_overlap_tokens,
        min_tokens=settings.chunk_min_tokens,
    )

    def make_knowledge_base() -> KnowledgeBaseService:
        indexer, _, records, search = corpus_parts("notes")
        return KnowledgeBaseService(
            indexer=indexer,
            record_store=records,
            search_service=search,
            chunk_options=chunk_options,
            notes_path=settings.docs_path,
        )

    def make_documents() -> DocumentService:
        indexer, chunks, records, search = corpus_parts(
            "documents", unknown_title="Unknown Document"
        )
        content_root = None
        if settings.store_backend != "memory":
            content_root = Path(settings.data_dir) / "documents" / "content"
        return DocumentService(
            indexer=indexer,
            chunk_store=chunks,
            record_store=records,
            content_store=FileContentStore(content_root),
            search_service=search,
            chunk_options=chunk_options,
        )

    def make_chat_history() -> ChatHistoryService:
        indexer, chunks, records, search = corpus_parts(
            "chat", id_prefix="chat:", unknown_title="Untitled"
        )
        return ChatHistoryService(
            indexer=indexer,
            chunk_store=chunks,
            record_store=records,
            search_service=search,
            max_tokens=settings.chat_chunk_max_tokens,
        )

    container.register(KnowledgeBaseService, make_knowledge_base, singleton=True)
    container.register(DocumentService, make_documents, singleton=True)
    container.register(ChatHistoryService, make_chat_history, singleton=True)

    logger.info("Container configured")
    return container
