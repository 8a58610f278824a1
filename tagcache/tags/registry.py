"""
Tag registry.

A tag is a store entry ``t_<name>`` whose value is the tag's current version,
a wall-clock timestamp in whole seconds. Cache entries record the versions of
their tags when written; changing a tag's version makes every entry that
recorded the old one stale.

Writes are plain overwrites, never compare-and-swap. Concurrent bumps and
lazy creations of the same tag race and the last write wins, which can
briefly under-invalidate. Two versions written within the same second are
equal, so a bump in the same second as the previous version has no effect.
"""

import time
from typing import Callable, Dict, Iterable, Optional

from shared.errors import StoreUnavailableError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..keys import TAG_PREFIX, tag_key, validate_tag_name
from ..stores.base import CacheStore


class TagRegistry:
    """Reads, creates and overwrites tag timestamps in the store."""

    def __init__(
        self,
        store: CacheStore,
        *,
        prefix: str = TAG_PREFIX,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.store = store
        self.prefix = prefix
        self.metrics = metrics
        self._clock = clock
        self.logger = get_logger("tagcache.tags")

    def _key(self, name: str) -> str:
        return tag_key(validate_tag_name(name), self.prefix)

    def now(self) -> str:
        """Current timestamp in the stored representation."""
        return str(int(self._clock()))

    async def get_timestamp(self, name: str) -> Optional[str]:
        """Current timestamp of ``name``, or ``None`` if the tag does not exist."""
        raw = await self.store.get(self._key(name))
        return None if raw is None else raw.decode("utf-8", errors="replace")

    async def set_timestamp(self, name: str, timestamp: Optional[str] = None, ttl: int = 0) -> str:
        """Overwrite the timestamp of ``name`` and return what was written.

        Without ``timestamp`` the current time is written, which bumps the
        tag's version.
        """
        if timestamp is None:
            timestamp = self.now()
        timestamp = str(timestamp)
        if not await self.store.set(self._key(name), timestamp.encode("utf-8"), ttl):
            raise StoreUnavailableError("set_timestamp", f"write of tag {name!r} was not applied")
        self.logger.debug("Tag timestamp set", tag=name, timestamp=timestamp, ttl=ttl)
        return timestamp

    async def delete_tag(self, name: str) -> bool:
        """Delete ``name``; the next reference recreates it with a new timestamp."""
        removed = await self.store.delete(self._key(name))
        self.logger.debug("Tag deleted", tag=name, removed=removed)
        return removed

    async def new_tag(self, name: str) -> str:
        """Write the current time as the version of ``name``, whatever was there."""
        timestamp = await self.set_timestamp(name, self.now(), 0)
        if self.metrics:
            self.metrics.increment_counter("tagcache_tags_created_total")
        return timestamp

    async def resolve_timestamps(self, names: Iterable[str]) -> Dict[str, str]:
        """Current timestamps for ``names``, creating the tags that are missing.

        Present tags are read with one batched fetch. Duplicate names collapse
        and the result has exactly one entry per distinct name.
        """
        unique = list(dict.fromkeys(validate_tag_name(name) for name in names))
        if not unique:
            return {}

        keys = {name: tag_key(name, self.prefix) for name in unique}
        found = await self.store.get_many(keys.values())

        resolved: Dict[str, str] = {}
        for name in unique:
            raw = found.get(keys[name])
            if raw is not None:
                resolved[name] = raw.decode("utf-8", errors="replace")
            else:
                resolved[name] = await self.new_tag(name)
                self.logger.debug("Tag created lazily", tag=name, timestamp=resolved[name])
        return resolved
