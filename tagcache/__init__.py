"""
Tagged cache layer.

Puts two guarantees in front of a key-value cache such as Redis:

- group invalidation: entries carry the versions of their tags, and bumping
  or deleting a tag hides every entry written under the old version;
- stampede protection: advisory locks and a bounded wait let one caller
  recompute a missing value while the others wait or serve stale data.
"""

from .cache import TaggedCache
from .envelope import Envelope
from .locks import LockManager
from .stampede import get_or_compute
from .stores import CacheStore, MemoryStore, RedisStore
from .tags import InvalidationChecker, TagRegistry

__all__ = [
    "CacheStore",
    "Envelope",
    "InvalidationChecker",
    "LockManager",
    "MemoryStore",
    "RedisStore",
    "TagRegistry",
    "TaggedCache",
    "get_or_compute",
]
