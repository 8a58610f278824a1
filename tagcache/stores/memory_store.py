"""
In-process store with per-key TTL.

Suitable for tests and single-process deployments. ``add`` is atomic because
nothing awaits between the existence check and the write, so concurrent tasks
on one event loop cannot interleave inside it.
"""

import time
from typing import Callable, Dict, Iterable, Optional, Tuple

from .base import CacheStore


class MemoryStore(CacheStore):
    """Dict-backed :class:`CacheStore` that enforces expiry on access."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._data: Dict[str, Tuple[bytes, Optional[float]]] = {}  # value, expires_at

    def _expires_at(self, ttl: int) -> Optional[float]:
        return self._clock() + ttl if ttl > 0 else None

    def _live(self, key: str) -> Optional[bytes]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def get(self, key: str) -> Optional[bytes]:
        return self._live(key)

    async def get_many(self, keys: Iterable[str]) -> Dict[str, bytes]:
        found = {}
        for key in keys:
            value = self._live(key)
            if value is not None:
                found[key] = value
        return found

    async def add(self, key: str, value: bytes, ttl: int = 0) -> bool:
        if self._live(key) is not None:
            return False
        self._data[key] = (bytes(value), self._expires_at(ttl))
        return True

    async def set(self, key: str, value: bytes, ttl: int = 0) -> bool:
        self._data[key] = (bytes(value), self._expires_at(ttl))
        return True

    async def delete(self, key: str) -> bool:
        present = self._live(key) is not None
        self._data.pop(key, None)
        return present

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return sum(1 for key in list(self._data) if self._live(key) is not None)
