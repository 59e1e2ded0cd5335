from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (RedisConnectionError, RedisTimeoutError, OSError)


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    base_delay_seconds: float = 0.2

    def delay(self, attempt: int) -> float:
        return self.base_delay_seconds * (2 ** (attempt - 1))


def _default_client(url: str) -> Any:
    import redis.asyncio as redis

    return redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        health_check_interval=30,
    )


class AsyncRedisManager:
    """Lazily connected redis client that rebuilds its connection on transport errors.

    Only the commands the cache and rate limiter need are exposed, each one
    retried under ``RetryPolicy`` when the connection drops.
    """

    def __init__(
        self,
        url: str,
        *,
        retry: RetryPolicy | None = None,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self._url = url
        self._retry = retry or RetryPolicy()
        self._client_factory = client_factory or _default_client
        self._client: Any | None = None
        self._lock = asyncio.Lock()

    async def _connection(self) -> Any:
        async with self._lock:
            if self._client is None:
                self._client = self._client_factory(self._url)
            return self._client

    async def _reset(self) -> None:
        async with self._lock:
            stale, self._client = self._client, None
        if stale is None:
            return
        try:
            await stale.aclose()
        except Exception:
            logger.debug("redis_close_failed", extra={"component": "devkit"}, exc_info=True)

    async def _run(self, command: str, call: Callable[[Any], Awaitable[T]]) -> T:
        attempt = 0
        while True:
            attempt += 1
            client = await self._connection()
            try:
                return await call(client)
            except RETRYABLE_ERRORS:
                if attempt >= self._retry.attempts:
                    logger.warning(
                        "redis_command_failed",
                        extra={"component": "devkit", "command": command, "attempts": attempt},
                    )
                    raise
                await self._reset()
                await asyncio.sleep(self._retry.delay(attempt))

    async def ping(self) -> bool:
        return await self._run("ping", lambda client: client.ping())

    async def get(self, key: str) -> str | None:
        return await self._run("get", lambda client: client.get(key))

    async def setex(self, key: str, ttl_seconds: int, value: str) -> bool:
        return await self._run("setex", lambda client: client.setex(key, ttl_seconds, value))

    async def delete(self, *keys: str) -> int:
        return await self._run("delete", lambda client: client.delete(*keys))

    async def keys(self, pattern: str) -> list[str]:
        return await self._run("keys", lambda client: client.keys(pattern))

    async def expire(self, key: str, time: int) -> bool:
        return await self._run("expire", lambda client: client.expire(key, time))

    async def zadd(self, key: str, mapping: dict[str, float]) -> int:
        return await self._run("zadd", lambda client: client.zadd(key, mapping))

    async def zremrangebyscore(self, key: str, min: float, max: float) -> int:
        return await self._run("zremrangebyscore", lambda client: client.zremrangebyscore(key, min, max))

    async def zcard(self, key: str) -> int:
        return await self._run("zcard", lambda client: client.zcard(key))

    async def zrange(self, key: str, start: int, end: int, withscores: bool = False) -> list:
        return await self._run("zrange", lambda client: client.zrange(key, start, end, withscores=withscores))

    async def close(self) -> None:
        await self._reset()


def create_redis_client(url: str | None, **kwargs: Any) -> AsyncRedisManager | None:
    if not url:
        return None
    return AsyncRedisManager(url, **kwargs)
