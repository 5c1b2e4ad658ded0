"""Primary store registry, selected by ``STORAGE_BACKEND``."""

from kbchat.core.registry import ProviderRegistry

StoreFactory = ProviderRegistry("storage backend", key="backend")
