"""
Tagged cache facade.

Composes the envelope codec, tag registry, invalidation checker and lock
manager on top of any :class:`CacheStore`. Reads hide entries whose tags have
moved on; writes freeze the tags' current versions into the stored envelope.
Stampede protection is left to callers (see :mod:`tagcache.stampede`), which
get the lock and wait primitives from here.
"""

import time
from contextlib import nullcontext
from typing import AsyncContextManager, Callable, Dict, Iterable, Optional

from shared.config import CacheSettings
from shared.errors import MalformedEnvelopeError, StoreUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from .envelope import Envelope, decode, encode
from .keys import validate_cache_key
from .locks import LockManager
from .stores.base import CacheStore
from .tags import InvalidationChecker, TagRegistry


class TaggedCache:
    """Cache with tag-based group invalidation and advisory locks."""

    def __init__(
        self,
        store: CacheStore,
        settings: Optional[CacheSettings] = None,
        *,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.settings = settings or CacheSettings()
        self.metrics = metrics
        self.logger = get_logger("tagcache.cache")
        self._reserved = (self.settings.lock_prefix, self.settings.tag_prefix)

        self.tags = TagRegistry(
            store,
            prefix=self.settings.tag_prefix,
            clock=clock,
            metrics=metrics,
        )
        self.checker = InvalidationChecker(self.tags)
        self.locks = LockManager(
            store,
            prefix=self.settings.lock_prefix,
            lock_ttl_seconds=self.settings.lock_ttl_seconds,
            wait_time_ms=self.settings.wait_time_ms,
            wait_interval_ms=self.settings.wait_interval_ms,
            metrics=metrics,
        )

    def _timed(self, operation: str):
        if self.metrics:
            return self.metrics.time_operation("tagcache_operation_duration_seconds", operation=operation)
        return nullcontext()

    def _record(self, operation: str, result: str) -> None:
        if self.metrics:
            self.metrics.record_request(operation, result)

    def _store_failed(self, error: StoreUnavailableError) -> None:
        if self.metrics:
            self.metrics.record_store_error(error.operation)

    async def _fetch(self, key: str, operation: str) -> Optional[Envelope]:
        raw = await self.store.get(validate_cache_key(key, self._reserved))
        if raw is None:
            return None
        try:
            return decode(raw)
        except MalformedEnvelopeError as e:
            e.details.setdefault("key", key)
            self._record(operation, "malformed")
            self.logger.error("Malformed cache envelope", key=key, operation=operation, error=e.message)
            raise

    async def get(self, key: str) -> Optional[bytes]:
        """Payload stored under ``key``, or ``None`` on a miss.

        An entry whose tag snapshot is out of date is a miss too; it is left
        in the store. Store failures raise :class:`StoreUnavailableError` and
        undecodable entries raise :class:`MalformedEnvelopeError`.
        """
        with self._timed("get"):
            try:
                envelope = await self._fetch(key, "get")
                if envelope is None:
                    self._record("get", "miss")
                    self.logger.debug("Cache MISS", key=key)
                    return None
                if envelope.tags and await self.checker.is_invalidated(envelope.tags):
                    self._record("get", "invalidated")
                    self.logger.debug("Cache INVALIDATED", key=key)
                    return None
            except StoreUnavailableError as e:
                self._store_failed(e)
                raise

        self._record("get", "hit")
        self.logger.debug("Cache HIT", key=key)
        return envelope.data

    async def set(self, key: str, data: bytes, ttl: int = 0, tags: Optional[Iterable[str]] = None) -> bool:
        """Store ``data`` under ``key`` with the current versions of ``tags``.

        Missing tags are created. Later changes to the tags hide the entry
        from :meth:`get` without touching the stored bytes.
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"cache payload must be bytes, got {type(data).__name__}")
        if isinstance(tags, (str, bytes)):
            raise TypeError("tags must be an iterable of tag names, not a single string")
        key = validate_cache_key(key, self._reserved)

        with self._timed("set"):
            try:
                snapshot: Dict[str, str] = await self.tags.resolve_timestamps(tags) if tags else {}
                stored = await self.store.set(key, encode(bytes(data), snapshot), ttl)
            except StoreUnavailableError as e:
                self._store_failed(e)
                raise

        self._record("set", "stored" if stored else "rejected")
        self.logger.debug("Cache SET", key=key, ttl=ttl, tags=sorted(snapshot))
        return stored

    async def delete(self, key: str) -> bool:
        """Remove the entry under ``key``."""
        key = validate_cache_key(key, self._reserved)
        try:
            removed = await self.store.delete(key)
        except StoreUnavailableError as e:
            self._store_failed(e)
            raise
        self.logger.debug("Cache DELETE", key=key, removed=removed)
        return removed

    async def get_stored_tags(self, key: str) -> Optional[Dict[str, str]]:
        """Tag snapshot stored with ``key``, without any staleness check.

        These are the versions captured at write time, not the tags' current
        timestamps.
        """
        try:
            envelope = await self._fetch(key, "get_stored_tags")
        except StoreUnavailableError as e:
            self._store_failed(e)
            raise
        return None if envelope is None else envelope.tags

    async def get_stale(self, key: str) -> Optional[bytes]:
        """Payload under ``key`` even if its tags have moved on."""
        try:
            envelope = await self._fetch(key, "get_stale")
        except StoreUnavailableError as e:
            self._store_failed(e)
            raise
        return None if envelope is None else envelope.data

    async def is_available(self) -> bool:
        """Probe the store without writing to it."""
        return await self.store.ping()

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    async def get_tag(self, name: str) -> Optional[str]:
        return await self.tags.get_timestamp(name)

    async def set_tag(self, name: str, timestamp: Optional[str] = None, ttl: int = 0) -> str:
        return await self.tags.set_timestamp(name, timestamp, ttl)

    async def delete_tag(self, name: str) -> bool:
        return await self.tags.delete_tag(name)

    async def new_tag(self, name: str) -> str:
        return await self.tags.new_tag(name)

    # ------------------------------------------------------------------
    # Locks
    # ------------------------------------------------------------------

    async def lock(self, key: str, ttl_seconds: Optional[int] = None) -> bool:
        return await self.locks.lock(key, ttl_seconds)

    async def unlock(self, key: str) -> bool:
        return await self.locks.unlock(key)

    async def is_locked(self, key: str) -> bool:
        return await self.locks.is_locked(key)

    async def wait_for_unlock(self, key: str, wait_time_ms: Optional[int] = None,
                              interval_ms: Optional[int] = None, cancel_event=None) -> bool:
        return await self.locks.wait_for_unlock(key, wait_time_ms, interval_ms, cancel_event)

    def hold(self, key: str, ttl_seconds: Optional[int] = None) -> AsyncContextManager[None]:
        return self.locks.hold(key, ttl_seconds)
