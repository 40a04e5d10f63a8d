"""Exceptions raised by the retrieval pipeline."""


class RetrievalError(Exception):
    """Base class for retrieval pipeline errors."""


class EmbeddingError(RetrievalError):
    """Embedding service failed or returned an unusable response."""


class RerankerError(RetrievalError):
    """Reranking backend call failed."""


class RerankerConfigError(RerankerError):
    """Reranking backend selected without the credentials it needs."""


class StoreError(RetrievalError):
    """Chunk or record store operation failed."""


class DocumentNotFoundError(RetrievalError):
    """Parent record does not exist in the corpus."""

    def __init__(self, document_id: str):
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class IndexingError(RetrievalError):
    """Indexing a document or conversation failed."""
