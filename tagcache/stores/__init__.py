"""
Store backends for the tagged cache.

RedisStore is the production backend; MemoryStore keeps everything in the
current process and is used by the tests.
"""

from .base import CacheStore
from .memory_store import MemoryStore
from .redis_store import RedisStore

__all__ = ["CacheStore", "MemoryStore", "RedisStore"]
