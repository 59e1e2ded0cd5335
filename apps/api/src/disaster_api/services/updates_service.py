from __future__ import annotations

import logging
from typing import Any, Protocol

from disaster_api.cache import UPDATES_NAMESPACE, TTLCache
from disaster_api.errors import ApiError
from disaster_api.repositories.disaster_repository import Disaster
from disaster_api.services.keywords import disaster_keywords

logger = logging.getLogger(__name__)

MAX_OFFICIAL_UPDATES = 50


class OfficialUpdatesClient(Protocol):
    async def fetch_updates(self, keywords: list[str], limit: int = 10) -> list[dict[str, Any]]: ...


class OfficialUpdatesService:
    def __init__(self, client: OfficialUpdatesClient | None, cache: TTLCache, ttl_seconds: int = 1800) -> None:
        self._client = client
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    async def updates_for(self, disaster: Disaster, limit: int = 10) -> dict[str, Any]:
        keywords = disaster_keywords(disaster)
        cache_key = f"{UPDATES_NAMESPACE}{','.join(keywords)}"
        cached = await self._cache.get(cache_key)
        if isinstance(cached, list):
            return {"disaster_id": disaster.id, "updates": cached[:limit], "cached": True, "degraded": False}

        if self._client is None:
            return {"disaster_id": disaster.id, "updates": [], "cached": False, "degraded": True}
        try:
            updates = await self._client.fetch_updates(keywords, MAX_OFFICIAL_UPDATES)
        except ApiError as exc:
            logger.warning(
                "official_updates_failed",
                extra={"component": "updates", "disaster_id": disaster.id, "code": exc.code},
            )
            return {"disaster_id": disaster.id, "updates": [], "cached": False, "degraded": True}

        if updates:
            await self._cache.set(cache_key, updates, self._ttl_seconds)
        return {"disaster_id": disaster.id, "updates": updates[:limit], "cached": False, "degraded": False}
