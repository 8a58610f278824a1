"""
Key conventions for the tagged cache.

Lock markers, tags and cache entries share one key space; locks and tags are
told apart from entries only by their prefixes, so cache keys must never
start with a reserved prefix.
"""

from typing import Any, Iterable

from shared.errors import InvalidKeyError

LOCK_PREFIX = "l_"
TAG_PREFIX = "t_"


def lock_key(key: str, prefix: str = LOCK_PREFIX) -> str:
    """Store key of the lock marker for ``key``."""
    return f"{prefix}{key}"


def tag_key(name: str, prefix: str = TAG_PREFIX) -> str:
    """Store key holding the current timestamp of tag ``name``."""
    return f"{prefix}{name}"


def validate_cache_key(key: Any, reserved: Iterable[str] = (LOCK_PREFIX, TAG_PREFIX)) -> str:
    """Return ``key`` if it may be used for a cache entry.

    Raises:
        InvalidKeyError: If the key is empty, not a string, or starts with a
            reserved prefix.
    """
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(key, "cache key must be a non-empty string")
    for prefix in reserved:
        if key.startswith(prefix):
            raise InvalidKeyError(key, f"prefix {prefix!r} is reserved")
    return key


def validate_tag_name(name: Any) -> str:
    """Return ``name`` if it may be used as a tag name."""
    if not isinstance(name, str) or not name:
        raise InvalidKeyError(name, "tag name must be a non-empty string")
    return name


def validate_lock_key(key: Any) -> str:
    """Return ``key`` if a lock may be taken on it."""
    if not isinstance(key, str) or not key:
        raise InvalidKeyError(key, "lock key must be a non-empty string")
    return key
