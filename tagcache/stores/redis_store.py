"""
Redis-backed store for the tagged cache.
"""

import asyncio
from typing import Any, Dict, Iterable, Optional, Union

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.errors import StoreUnavailableError
from shared.logging import get_logger
from .base import CacheStore

_STORE_ERRORS = (RedisError, OSError, asyncio.TimeoutError)


def _as_bytes(value: Union[bytes, str]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value


class RedisStore(CacheStore):
    """:class:`CacheStore` on top of ``redis.asyncio``.

    Create-if-absent maps to ``SET NX EX`` and batched reads to ``MGET``.
    Every call goes through a circuit breaker: after repeated failures calls
    fail fast with :class:`StoreUnavailableError` until the recovery timeout
    has passed.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        client: Optional[redis.Redis] = None,
        socket_timeout: float = 5.0,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
    ):
        self.redis_url = redis_url
        self.socket_timeout = socket_timeout
        self.logger = get_logger("tagcache.store.redis")
        self.redis: Optional[redis.Redis] = client
        self._owns_client = client is None
        self._breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exception=_STORE_ERRORS,
            name="redis_store",
        )

    @classmethod
    def from_settings(cls, settings) -> "RedisStore":
        """Build a store from :class:`shared.config.CacheSettings`."""
        return cls(
            settings.redis_url,
            socket_timeout=settings.socket_timeout,
            failure_threshold=settings.store_failure_threshold,
            recovery_timeout=settings.store_recovery_timeout,
        )

    def _client(self) -> redis.Redis:
        """Get Redis connection."""
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                decode_responses=False,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                health_check_interval=30,
            )
            self._owns_client = True
        return self.redis

    async def _call(self, operation: str, func, *args, **kwargs) -> Any:
        try:
            return await self._breaker.call(func, *args, **kwargs)
        except CircuitBreakerOpenException as e:
            raise StoreUnavailableError(operation, str(e), {"circuit": "open"}) from e
        except _STORE_ERRORS as e:
            self.logger.error("Redis store error", operation=operation, error=str(e))
            raise StoreUnavailableError(operation, str(e) or type(e).__name__) from e

    async def start(self) -> None:
        """Connect and verify the connection with PING."""
        client = self._client()
        await self._call("start", client.ping)
        self.logger.info("Redis store started", redis_url=self.redis_url)

    async def stop(self) -> None:
        """Close the connection if this store created it."""
        if self.redis is not None and self._owns_client:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis store stopped")

    async def get(self, key: str) -> Optional[bytes]:
        value = await self._call("get", self._client().get, key)
        return None if value is None else _as_bytes(value)

    async def get_many(self, keys: Iterable[str]) -> Dict[str, bytes]:
        unique = list(dict.fromkeys(keys))
        if not unique:
            return {}
        values = await self._call("get_many", self._client().mget, unique)
        return {key: _as_bytes(value) for key, value in zip(unique, values) if value is not None}

    async def add(self, key: str, value: bytes, ttl: int = 0) -> bool:
        result = await self._call("add", self._client().set, key, value, nx=True, ex=ttl or None)
        return bool(result)

    async def set(self, key: str, value: bytes, ttl: int = 0) -> bool:
        result = await self._call("set", self._client().set, key, value, ex=ttl or None)
        return bool(result)

    async def delete(self, key: str) -> bool:
        removed = await self._call("delete", self._client().delete, key)
        return bool(removed)

    async def ping(self) -> bool:
        try:
            return bool(await self._call("ping", self._client().ping))
        except StoreUnavailableError:
            return False

    def circuit_state(self) -> Dict[str, Any]:
        """State of the circuit breaker guarding this store."""
        return self._breaker.get_state()
