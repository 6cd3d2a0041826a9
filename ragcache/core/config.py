"""Configuration settings for the cache and embedding service."""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # API Configuration
    app_name: str = "RAG Cache Service"
    app_version: str = "1.0.0"
    api_prefix: str = "/api/v1"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1

    # OpenAI Configuration
    openai_api_key: Optional[str] = None
    openai_embedding_model: str = "text-embedding-3-small"
    openai_embedding_dimensions: int = 1536
    embedding_provider: str = "openai"  # openai or langchain

    # Embedding Pipeline
    embedding_max_tokens: int = 8191  # Model limit
    embedding_batch_size: int = 100  # Provider batch limit
    embedding_rate_limit_delay: float = 0.1  # Seconds between provider batches
    embedding_max_attempts: int = 3
    embedding_retry_delay: float = 1.0  # Linear backoff base in seconds
    embedding_cache_ttl: int = 3600  # 1 hour
    embedding_coalesce_requests: bool = False  # Share in-flight calls for the same text

    # Caching Configuration
    redis_url: Optional[str] = "redis://localhost:6379"
    cache_backend: str = "redis"  # redis or memory
    cache_key_prefix: str = "rag_cache"
    cache_default_ttl: int = 300  # 5 minutes
    cache_max_memory_entries: int = 1000
    cache_cleanup_interval: float = 60.0  # seconds

    # Admin API
    admin_api_token: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        env_prefix = "RAG_"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields in .env file


# Create settings instance
settings = Settings()
