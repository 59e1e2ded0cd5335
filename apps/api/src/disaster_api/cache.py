from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from geo_engine.geocoding import GEOCODE_NAMESPACE

logger = logging.getLogger(__name__)

SOCIAL_NAMESPACE = "social:"
UPDATES_NAMESPACE = "updates:"
LOCATION_NAMESPACE = "location:"
IMAGE_VERIFY_NAMESPACE = "image_verify:"

CACHE_NAMESPACES = (
    GEOCODE_NAMESPACE,
    SOCIAL_NAMESPACE,
    UPDATES_NAMESPACE,
    LOCATION_NAMESPACE,
    IMAGE_VERIFY_NAMESPACE,
)


class CacheStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> Any | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def invalidate_prefix(self, prefix: str) -> int:
        raise NotImplementedError


class RedisLikeCacheClient(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def setex(self, key: str, seconds: int, value: str) -> bool: ...

    async def keys(self, pattern: str) -> list[str]: ...

    async def delete(self, *keys: str) -> int: ...


class InMemoryCacheStore(CacheStore):
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._items: dict[str, tuple[float, Any]] = {}
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        item = self._items.get(key)
        if not item:
            return None
        expires_at, value = item
        if expires_at <= self._clock():
            self._items.pop(key, None)
            return None
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._items[key] = (self._clock() + ttl_seconds, value)

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)

    async def invalidate_prefix(self, prefix: str) -> int:
        keys = [key for key in self._items if key.startswith(prefix)]
        for key in keys:
            self._items.pop(key, None)
        return len(keys)

    def __len__(self) -> int:
        return len(self._items)


class RedisCacheStore(CacheStore):
    """Expiry is delegated to Redis ``SETEX``; values are stored as JSON."""

    def __init__(self, client: RedisLikeCacheClient) -> None:
        self._client = client

    async def get(self, key: str) -> Any | None:
        raw = await self._client.get(key)
        if not raw:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        payload = json.dumps(value, ensure_ascii=True)
        await self._client.setex(key, ttl_seconds, payload)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def invalidate_prefix(self, prefix: str) -> int:
        keys = await self._client.keys(f"{prefix}*")
        if not keys:
            return 0
        return await self._client.delete(*keys)


@dataclass
class TTLCache:
    """Read-through cache used by every external-service call.

    Backend failures are logged and degrade to a miss, so callers never see a
    cache error and results stay the same with the cache disabled.
    """

    store: CacheStore
    default_ttl_seconds: int = 3600

    async def get(self, key: str) -> Any | None:
        try:
            return await self.store.get(key)
        except Exception:
            logger.warning("cache_get_failed", extra={"component": "cache", "key": key}, exc_info=True)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            return
        try:
            await self.store.set(key, value, ttl)
        except Exception:
            logger.warning("cache_set_failed", extra={"component": "cache", "key": key}, exc_info=True)

    async def delete(self, key: str) -> None:
        try:
            await self.store.delete(key)
        except Exception:
            logger.warning("cache_delete_failed", extra={"component": "cache", "key": key}, exc_info=True)

    async def invalidate_prefix(self, prefix: str) -> int:
        try:
            return await self.store.invalidate_prefix(prefix)
        except Exception:
            logger.warning("cache_invalidate_failed", extra={"component": "cache", "prefix": prefix}, exc_info=True)
            return 0
