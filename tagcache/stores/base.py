"""
Store capability consumed by the tagged cache.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional


class CacheStore(ABC):
    """Narrow interface to a networked key-value cache.

    Values are opaque bytes. A ``ttl`` of 0 means the entry never expires.
    Implementations raise :class:`shared.errors.StoreUnavailableError` for any
    backend failure; a missing key is never an error.
    """

    async def start(self) -> None:
        """Open connections. No-op by default."""

    async def stop(self) -> None:
        """Close connections. No-op by default."""

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """Return the value under ``key`` or ``None``."""

    @abstractmethod
    async def get_many(self, keys: Iterable[str]) -> Dict[str, bytes]:
        """Return present keys only; absent keys are omitted."""

    @abstractmethod
    async def add(self, key: str, value: bytes, ttl: int = 0) -> bool:
        """Atomically create ``key`` if absent. ``False`` if it already existed."""

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl: int = 0) -> bool:
        """Unconditionally write ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns whether something was removed."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check availability without writing anything."""
