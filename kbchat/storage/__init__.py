"""Storage backends."""

from kbchat.storage import in_memory_store, supabase_store  # noqa: F401 - registers backends
from kbchat.storage.factory import StoreFactory
from kbchat.storage.in_memory_store import InMemoryStore
from kbchat.storage.redis_store import RedisMessageStore
from kbchat.storage.supabase_store import SupabaseStore

__all__ = [
    "InMemoryStore",
    "RedisMessageStore",
    "StoreFactory",
    "SupabaseStore",
]
