from __future__ import annotations

import logging
import math
import time
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Protocol
from uuid import uuid4

from fastapi import Request

from disaster_api.errors import RateLimited

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_seconds: int = 0


class RateLimitStore(ABC):
    """Timestamps of admitted calls, one series per client bucket."""

    @abstractmethod
    async def window(self, bucket: str, cutoff_seconds: float) -> tuple[int, float | None]:
        """Drop entries older than the cutoff; return (count, oldest timestamp)."""

    @abstractmethod
    async def record(self, bucket: str, now_seconds: float, ttl_seconds: int) -> None:
        raise NotImplementedError


class SortedSetClient(Protocol):
    async def zadd(self, key: str, mapping: dict[str, float]) -> int: ...

    async def zremrangebyscore(self, key: str, min: float, max: float) -> int: ...

    async def zcard(self, key: str) -> int: ...

    async def zrange(self, key: str, start: int, end: int, withscores: bool = False) -> list: ...

    async def expire(self, key: str, time: int) -> bool: ...


class InMemoryRateLimitStore(RateLimitStore):
    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    async def window(self, bucket: str, cutoff_seconds: float) -> tuple[int, float | None]:
        hits = self._hits[bucket]
        while hits and hits[0] <= cutoff_seconds:
            hits.popleft()
        return len(hits), (hits[0] if hits else None)

    async def record(self, bucket: str, now_seconds: float, ttl_seconds: int) -> None:
        self._hits[bucket].append(now_seconds)


class RedisRateLimitStore(RateLimitStore):
    def __init__(self, client: SortedSetClient, prefix: str = "ratelimit") -> None:
        self._client = client
        self._prefix = prefix

    async def window(self, bucket: str, cutoff_seconds: float) -> tuple[int, float | None]:
        key = self._key(bucket)
        await self._client.zremrangebyscore(key, float("-inf"), cutoff_seconds)
        count = await self._client.zcard(key)
        if not count:
            return 0, None
        oldest = await self._client.zrange(key, 0, 0, withscores=True)
        return count, (float(oldest[0][1]) if oldest else None)

    async def record(self, bucket: str, now_seconds: float, ttl_seconds: int) -> None:
        key = self._key(bucket)
        await self._client.zadd(key, {f"{now_seconds:.6f}:{uuid4().hex}": now_seconds})
        await self._client.expire(key, ttl_seconds)

    def _key(self, bucket: str) -> str:
        return f"{self._prefix}:{bucket}"


class SlidingWindowRateLimiter:
    """Admits at most `limit` calls per client within any trailing window."""

    def __init__(self, store: RateLimitStore, limit: int = 60, window_seconds: int = 60) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._store = store
        self._limit = limit
        self._window_seconds = window_seconds

    @property
    def limit(self) -> int:
        return self._limit

    async def check(self, bucket: str, now_seconds: float) -> RateLimitDecision:
        count, oldest = await self._store.window(bucket, now_seconds - self._window_seconds)
        if count >= self._limit:
            reopens_at = (oldest if oldest is not None else now_seconds) + self._window_seconds
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                retry_after_seconds=max(1, math.ceil(reopens_at - now_seconds)),
            )
        await self._store.record(bucket, now_seconds, ttl_seconds=self._window_seconds + 1)
        return RateLimitDecision(allowed=True, remaining=self._limit - count - 1)

    async def enforce(self, bucket: str, now_seconds: float | None = None) -> RateLimitDecision:
        now = time.time() if now_seconds is None else now_seconds
        decision = await self.check(bucket, now)
        if not decision.allowed:
            logger.info(
                "rate_limit_exceeded",
                extra={"component": "rate_limit", "bucket": bucket, "retry_after": decision.retry_after_seconds},
            )
            raise RateLimited(decision.retry_after_seconds)
        return decision


def client_bucket(request: Request, scope: str = "external") -> str:
    """Explicit client id beats the acting user, which beats the peer address."""
    client_id = request.headers.get("x-client-id")
    if client_id:
        identity = f"client:{client_id}"
    elif request.headers.get("x-user"):
        identity = f"user:{request.headers['x-user']}"
    elif request.client:
        identity = f"ip:{request.client.host}"
    else:
        identity = "anonymous"
    return f"{scope}:{identity}"
