"""
Read-through helper that follows the stampede protection protocol.

On a miss only the caller that wins the lock recomputes and stores the value.
The others wait for the lock to go away and read the fresh entry, or serve
the stale one when the wait runs out.
"""

from typing import Awaitable, Callable, Iterable, Optional

from shared.logging import get_logger
from .cache import TaggedCache

logger = get_logger("tagcache.stampede")


async def get_or_compute(
    cache: TaggedCache,
    key: str,
    compute: Callable[[], Awaitable[bytes]],
    ttl: int = 0,
    tags: Optional[Iterable[str]] = None,
    lock_ttl: Optional[int] = None,
    serve_stale: bool = True,
) -> bytes:
    """Return the cached value for ``key``, computing it at most once per miss.

    Store failures propagate rather than triggering a recompute. A caller
    that loses the race and finds nothing usable after waiting computes the
    value for itself but does not store it; the lock holder owns the write.
    """
    if isinstance(tags, (str, bytes)):
        raise TypeError("tags must be an iterable of tag names, not a single string")

    value = await cache.get(key)
    if value is not None:
        return value

    if await cache.lock(key, lock_ttl):
        try:
            value = await compute()
            await cache.set(key, value, ttl, tags)
            return value
        finally:
            await cache.unlock(key)

    if await cache.wait_for_unlock(key):
        value = await cache.get(key)
        if value is not None:
            return value
        logger.info("Lock released without a fresh value", key=key)
    elif serve_stale:
        value = await cache.get_stale(key)
        if value is not None:
            logger.warning("Serving stale value while key is locked", key=key)
            return value

    return await compute()
