from __future__ import annotations

import json
from typing import Any, Awaitable, Callable

from geo_engine.models import Coordinate, RecordKind

RESOURCES_WITHIN_RADIUS_SQL = """
SELECT
    id,
    disaster_id,
    name,
    location_name,
    type,
    quantity,
    lat,
    lng,
    ST_Distance(
        ST_SetSRID(ST_MakePoint(lng, lat), 4326)::geography,
        ST_SetSRID(ST_MakePoint($1, $2), 4326)::geography
    ) AS distance_meters
FROM resources
WHERE lat IS NOT NULL
  AND lng IS NOT NULL
  AND ($4::text IS NULL OR type = $4)
  AND ST_DWithin(
        ST_SetSRID(ST_MakePoint(lng, lat), 4326)::geography,
        ST_SetSRID(ST_MakePoint($1, $2), 4326)::geography,
        $3
  )
ORDER BY distance_meters ASC, id ASC
"""

DISASTERS_WITHIN_RADIUS_SQL = """
SELECT
    id,
    title,
    location_name,
    description,
    tags_json,
    owner_id,
    lat,
    lng,
    created_at,
    ST_Distance(
        ST_SetSRID(ST_MakePoint(lng, lat), 4326)::geography,
        ST_SetSRID(ST_MakePoint($1, $2), 4326)::geography
    ) AS distance_meters
FROM disasters
WHERE lat IS NOT NULL
  AND lng IS NOT NULL
  AND ST_DWithin(
        ST_SetSRID(ST_MakePoint(lng, lat), 4326)::geography,
        ST_SetSRID(ST_MakePoint($1, $2), 4326)::geography,
        $3
  )
ORDER BY distance_meters ASC, id ASC
"""


class PostGISAdapter:
    def __init__(
        self,
        dsn: str,
        pool_factory: Callable[[str], Awaitable[Any]] | None = None,
    ) -> None:
        self._dsn = dsn
        self._pool = None
        self._pool_factory = pool_factory

    async def within_radius(
        self,
        kind: RecordKind,
        origin: Coordinate,
        radius_meters: int,
        resource_type: str | None = None,
    ) -> list[tuple[dict[str, Any], float | None]]:
        if kind == RecordKind.RESOURCE:
            return await self.resources_within_radius(origin, radius_meters, resource_type)
        return await self.disasters_within_radius(origin, radius_meters)

    async def resources_within_radius(
        self,
        origin: Coordinate,
        radius_meters: int,
        resource_type: str | None = None,
    ) -> list[tuple[dict[str, Any], float | None]]:
        if radius_meters <= 0:
            raise ValueError("radius_meters must be > 0")
        pool = await self._get_pool()
        rows = await pool.fetch(RESOURCES_WITHIN_RADIUS_SQL, origin.lng, origin.lat, radius_meters, resource_type)
        return [(self._resource_item(row), self._distance(row)) for row in rows]

    async def disasters_within_radius(
        self,
        origin: Coordinate,
        radius_meters: int,
    ) -> list[tuple[dict[str, Any], float | None]]:
        if radius_meters <= 0:
            raise ValueError("radius_meters must be > 0")
        pool = await self._get_pool()
        rows = await pool.fetch(DISASTERS_WITHIN_RADIUS_SQL, origin.lng, origin.lat, radius_meters)
        return [(self._disaster_item(row), self._distance(row)) for row in rows]

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def _get_pool(self) -> Any:
        if self._pool is not None:
            return self._pool
        self._pool = await self._create_pool()
        return self._pool

    async def _create_pool(self) -> Any:
        if self._pool_factory:
            return await self._pool_factory(self._dsn)
        try:
            import asyncpg
        except ImportError as exc:
            raise RuntimeError("asyncpg is required for postgis adapter") from exc
        return await asyncpg.create_pool(dsn=self._dsn, min_size=1, max_size=5)

    @staticmethod
    def _distance(row: Any) -> float | None:
        value = row["distance_meters"]
        return None if value is None else float(value)

    @staticmethod
    def _resource_item(row: Any) -> dict[str, Any]:
        return {
            "id": str(row["id"]),
            "disaster_id": str(row["disaster_id"]) if row["disaster_id"] is not None else None,
            "name": str(row["name"]),
            "location_name": row["location_name"],
            "type": str(row["type"]),
            "quantity": int(row["quantity"]),
            "lat": float(row["lat"]),
            "lng": float(row["lng"]),
        }

    @staticmethod
    def _disaster_item(row: Any) -> dict[str, Any]:
        try:
            tags = json.loads(row["tags_json"]) if row["tags_json"] else []
        except ValueError:
            tags = []
        return {
            "id": str(row["id"]),
            "title": str(row["title"]),
            "location_name": row["location_name"],
            "description": row["description"],
            "tags": tags if isinstance(tags, list) else [],
            "owner_id": str(row["owner_id"]),
            "lat": float(row["lat"]),
            "lng": float(row["lng"]),
            "created_at": str(row["created_at"]),
        }
