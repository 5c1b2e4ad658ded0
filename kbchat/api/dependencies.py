"""FastAPI dependencies."""

from functools import lru_cache

from kbchat.core.config import AppConfig, get_config


@lru_cache
def get_cached_config() -> AppConfig:
    """Get cached application config."""
    return get_config()
