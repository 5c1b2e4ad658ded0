"""Core infrastructure module - config, DI container, protocols, exceptions."""

from kbchat.core.config import AppConfig, ChatConfig, LLMConfig, MemoryConfig, RAGConfig, StorageConfig
from kbchat.core.exceptions import AppError, ConfigurationError, NotFoundError, ValidationError
from kbchat.core.tasks import BackgroundTaskRunner

__all__ = [
    "AppConfig",
    "ChatConfig",
    "LLMConfig",
    "MemoryConfig",
    "RAGConfig",
    "StorageConfig",
    "AppError",
    "ConfigurationError",
    "NotFoundError",
    "ValidationError",
    "BackgroundTaskRunner",
]
