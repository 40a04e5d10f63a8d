from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    # Embeddings
    embedding_backend: str = "openai"  # "openai" | "local"
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    embedding_model: str = "text-embedding-3-small"
    embedding_dim: int = 1536
    embedding_batch_size: int = 20
    local_embedding_model: str = "intfloat/multilingual-e5-base"

    # Reranking
    cohere_api_key: str | None = None
    cohere_model: str = "rerank-v3.5"
    cohere_base_url: str = "https://api.cohere.com/v1"
    rerank_api_url: str | None = None
    rerank_llm_model: str = "gpt-4o-mini"
    rerank_threshold: float = 0.2
    rerank_api_threshold: float = 0.15
    rerank_max_doc_chars: int = 2000
    local_reranker_model: str = "BAAI/bge-reranker-v2-m3"
    http_timeout: float = 30.0

    # Storage
    store_backend: str = "json"  # "memory" | "json" | "chroma"
    chroma_host: str = "localhost"
    chroma_port: int = 8001
    chroma_collection_prefix: str = "hybrid_rag"
    data_dir: str = "./data"

    docs_path: str = "./docs"

    # Chunking
    chunk_max_tokens: int = 512
    chunk_overlap_tokens: int = 75
    chunk_min_tokens: int = 50
    chat_chunk_max_tokens: int = 500

    # Search
    search_top_k: int = 10
    search_threshold: float = 0.3
    search_retrieve_k: int = 50
    rrf_k: int = 60

    # Rerank endpoint
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
