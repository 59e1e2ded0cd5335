from __future__ import annotations

import logging
from typing import Any, Protocol

from disaster_api.cache import SOCIAL_NAMESPACE, TTLCache
from disaster_api.errors import ApiError
from disaster_api.repositories.disaster_repository import Disaster
from disaster_api.services.keywords import disaster_keywords

logger = logging.getLogger(__name__)

MAX_SOCIAL_POSTS = 100


class SocialSearchClient(Protocol):
    platform: str

    async def search_recent(self, keywords: list[str], limit: int = 20) -> list[dict[str, Any]]: ...


def social_cache_key(disaster_id: str, keywords: list[str]) -> str:
    # Always holds the full MAX_SOCIAL_POSTS page; callers slice on read.
    return f"{SOCIAL_NAMESPACE}{disaster_id}:{','.join(keywords)}"


class SocialMediaService:
    def __init__(self, client: SocialSearchClient | None, cache: TTLCache, ttl_seconds: int = 300) -> None:
        self._client = client
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    async def posts_for(self, disaster: Disaster, limit: int = 20) -> dict[str, Any]:
        keywords = disaster_keywords(disaster)
        cache_key = social_cache_key(disaster.id, keywords)
        cached = await self._cache.get(cache_key)
        if isinstance(cached, list):
            return self._result(disaster, keywords, cached[:limit], cached=True)

        if self._client is None or not keywords:
            return self._result(disaster, keywords, [], degraded=True)
        try:
            posts = await self._client.search_recent(keywords, MAX_SOCIAL_POSTS)
        except ApiError as exc:
            logger.warning(
                "social_search_failed",
                extra={"component": "social", "disaster_id": disaster.id, "code": exc.code},
            )
            return self._result(disaster, keywords, [], degraded=True)

        await self._cache.set(cache_key, posts, self._ttl_seconds)
        return self._result(disaster, keywords, posts[:limit])

    def _result(
        self,
        disaster: Disaster,
        keywords: list[str],
        posts: list[dict[str, Any]],
        *,
        cached: bool = False,
        degraded: bool = False,
    ) -> dict[str, Any]:
        return {
            "disaster_id": disaster.id,
            "keywords": keywords,
            "posts": posts,
            "count": len(posts),
            "cached": cached,
            "degraded": degraded,
        }
