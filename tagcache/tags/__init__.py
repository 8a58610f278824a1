"""
Tag versioning: registry of tag timestamps and the staleness check built on it.
"""

from .invalidation import InvalidationChecker
from .registry import TagRegistry

__all__ = ["InvalidationChecker", "TagRegistry"]
