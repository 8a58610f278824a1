"""
Advisory per-key locks for cache stampede protection.

A lock is the mere presence of ``l_<key>`` in the store, created with an
atomic create-if-absent and a short TTL. Ownership is not recorded: any caller
may unlock, and a holder that outlives the TTL silently loses the lock.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from shared.errors import LockHeldError, WaitCancelledError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..keys import LOCK_PREFIX, lock_key, validate_lock_key
from ..stores.base import CacheStore

LOCK_MARKER = b"1"


class LockManager:
    """Lock, unlock and wait for unlock of cache keys."""

    def __init__(
        self,
        store: CacheStore,
        *,
        prefix: str = LOCK_PREFIX,
        lock_ttl_seconds: int = 5,
        wait_time_ms: int = 3000,
        wait_interval_ms: int = 200,
        metrics: Optional[MetricsCollector] = None,
    ):
        if wait_interval_ms <= 0:
            raise ValueError("wait_interval_ms must be positive")
        self.store = store
        self.prefix = prefix
        self.lock_ttl_seconds = lock_ttl_seconds
        self.wait_time_ms = wait_time_ms
        self.wait_interval_ms = wait_interval_ms
        self.metrics = metrics
        self.logger = get_logger("tagcache.locks")

    def _key(self, key: str) -> str:
        return lock_key(validate_lock_key(key), self.prefix)

    async def lock(self, key: str, ttl_seconds: Optional[int] = None) -> bool:
        """Try to lock ``key``.

        Returns ``True`` only if this call created the marker, ``False`` if
        another caller holds it.
        """
        ttl = self.lock_ttl_seconds if ttl_seconds is None else ttl_seconds
        acquired = await self.store.add(self._key(key), LOCK_MARKER, ttl)
        if self.metrics:
            self.metrics.increment_counter(
                "tagcache_lock_attempts_total",
                outcome="acquired" if acquired else "contended"
            )
        self.logger.debug("Lock attempt", key=key, acquired=acquired, ttl=ttl)
        return acquired

    async def unlock(self, key: str) -> bool:
        """Remove the marker. Succeeds whether or not it existed."""
        await self.store.delete(self._key(key))
        self.logger.debug("Lock released", key=key)
        return True

    async def is_locked(self, key: str) -> bool:
        """Whether a marker for ``key`` currently exists."""
        return await self.store.get(self._key(key)) is not None

    async def wait_for_unlock(
        self,
        key: str,
        wait_time_ms: Optional[int] = None,
        interval_ms: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> bool:
        """Poll until ``key`` is unlocked or the wait budget is spent.

        Waited time is counted in whole ``interval_ms`` steps, not measured,
        so the real wait can run slightly over. Returns ``True`` if a poll saw
        the marker gone within the budget and ``False`` on timeout.

        Cancelling the calling task interrupts the wait as usual. Setting
        ``cancel_event`` interrupts it too and raises
        :class:`WaitCancelledError`.
        """
        budget = self.wait_time_ms if wait_time_ms is None else wait_time_ms
        interval = self.wait_interval_ms if interval_ms is None else interval_ms
        if interval <= 0:
            raise ValueError("interval_ms must be positive")

        started = time.perf_counter()
        waited = 0
        try:
            while waited < budget and await self.is_locked(key):
                await self._pause(key, interval, waited, cancel_event)
                waited += interval
        except WaitCancelledError:
            self._record_wait("cancelled", started)
            raise

        if waited < budget:
            self._record_wait("unlocked", started)
            return True

        self._record_wait("timeout", started)
        self.logger.warning("Key still locked after waiting", key=key, waited_ms=waited)
        return False

    async def _pause(
        self,
        key: str,
        interval_ms: int,
        waited_ms: int,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        seconds = interval_ms / 1000
        if cancel_event is None:
            await asyncio.sleep(seconds)
            return
        if not cancel_event.is_set():
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                return
        raise WaitCancelledError(key, waited_ms)

    def _record_wait(self, outcome: str, started: float) -> None:
        if not self.metrics:
            return
        self.metrics.increment_counter("tagcache_lock_waits_total", outcome=outcome)
        self.metrics.observe_histogram("tagcache_lock_wait_seconds", time.perf_counter() - started)

    @asynccontextmanager
    async def hold(self, key: str, ttl_seconds: Optional[int] = None) -> AsyncIterator[None]:
        """Hold the lock on ``key`` for the body of an ``async with``.

        Raises:
            LockHeldError: If another caller holds the lock.
        """
        if not await self.lock(key, ttl_seconds):
            raise LockHeldError(key)
        try:
            yield
        finally:
            await self.unlock(key)
