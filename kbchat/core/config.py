"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


class LLMConfig(BaseSettings):
    """LLM provider configuration.

    ``model`` and ``temperature`` are fallbacks for bots that do not set their own.
    """

    provider: str = "openai"
    model: str = "gpt-4o-mini"
    temperature: float = 0.5
    max_tokens: int = 1024
    base_url: str | None = None

    openai_api_key: str | None = None

    model_config = SettingsConfigDict(env_prefix="LLM_")


class RAGConfig(BaseSettings):
    """Ingestion and retrieval configuration."""

    embedding_model: str = "text-embedding-3-small"
    chunk_size: int = 500
    chars_per_token: int = 4
    similarity_threshold: float = 0.70
    top_k: int = 8
    fallback_scan_limit: int = 200
    index_search_enabled: bool = True

    model_config = SettingsConfigDict(env_prefix="RAG_")


class ChatConfig(BaseSettings):
    """Chat turn limits."""

    max_message_length: int = 4000

    model_config = SettingsConfigDict(env_prefix="CHAT_")


class StorageConfig(BaseSettings):
    """Primary store configuration (bots, sources, chunks, leads)."""

    backend: str = "in_memory"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    timeout: float = 30.0
    # in_memory only: register a bot with this id at startup for local development
    demo_bot_id: str | None = None

    model_config = SettingsConfigDict(env_prefix="STORAGE_")


class MemoryConfig(BaseSettings):
    """Conversation message persistence configuration.

    ``storage`` writes messages to the primary store; ``redis`` keeps them in Redis lists.
    """

    backend: str = "storage"
    redis_url: str = "redis://localhost:6379/0"
    ttl_seconds: int = 60 * 60 * 24 * 30

    model_config = SettingsConfigDict(env_prefix="MEMORY_")


class NotificationConfig(BaseSettings):
    """Lead notification (Gmail API) configuration."""

    gmail_client_id: str | None = None
    gmail_client_secret: str | None = None
    gmail_refresh_token: str | None = None
    sender_email: str | None = None
    owner_email: str | None = None

    model_config = SettingsConfigDict(env_prefix="NOTIFY_")


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    app_name: str = "KB Chat"
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str | None = None
    pii_masking_enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list = Field(default_factory=lambda: ["*"])

    llm: LLMConfig = Field(default_factory=LLMConfig)
    rag: RAGConfig = Field(default_factory=RAGConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)

    model_config = SettingsConfigDict(env_file=str(_env_file), env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return AppConfig()
