from __future__ import annotations

import pytest

from geo_engine.models import Coordinate, RecordKind
from geo_engine.postgis_adapter import (
    DISASTERS_WITHIN_RADIUS_SQL,
    RESOURCES_WITHIN_RADIUS_SQL,
    PostGISAdapter,
)


class FakePool:
    def __init__(self) -> None:
        self.fetch_calls: list[tuple[str, tuple]] = []
        self.closed = False

    async def fetch(self, sql: str, *args):
        self.fetch_calls.append((sql, args))
        if sql is RESOURCES_WITHIN_RADIUS_SQL:
            return [
                {
                    "id": "res-1",
                    "disaster_id": "dis-1",
                    "name": "Red Cross Shelter",
                    "location_name": "Lower East Side, NYC",
                    "type": "shelter",
                    "quantity": 120,
                    "lat": 40.7150,
                    "lng": -73.9843,
                    "distance_meters": 1843.21,
                }
            ]
        return [
            {
                "id": "dis-1",
                "title": "NYC Flood",
                "location_name": "Manhattan, NYC",
                "description": "Heavy flooding",
                "tags_json": '["flood", "urgent"]',
                "owner_id": "netrunnerX",
                "lat": 40.7831,
                "lng": -73.9712,
                "created_at": "2026-10-18T12:00:00+00:00",
                "distance_meters": 7950.5,
            }
        ]

    async def close(self) -> None:
        self.closed = True


def make_adapter(pool: FakePool) -> PostGISAdapter:
    async def pool_factory(_: str):
        return pool

    return PostGISAdapter("postgresql://example", pool_factory=pool_factory)


@pytest.mark.asyncio
async def test_resources_within_radius_passes_lng_lat_radius_and_type() -> None:
    pool = FakePool()
    adapter = make_adapter(pool)

    items = await adapter.resources_within_radius(Coordinate(lat=40.7128, lng=-74.006), 5_000, "shelter")

    assert len(items) == 1
    record, distance = items[0]
    assert record["id"] == "res-1"
    assert record["quantity"] == 120
    assert distance == 1843.21
    sql, args = pool.fetch_calls[0]
    assert "ST_DWithin" in sql
    assert args == (-74.006, 40.7128, 5_000, "shelter")


@pytest.mark.asyncio
async def test_within_radius_dispatches_disasters_and_parses_tags() -> None:
    pool = FakePool()
    adapter = make_adapter(pool)

    items = await adapter.within_radius(RecordKind.DISASTER, Coordinate(lat=40.7128, lng=-74.006), 10_000)

    record, distance = items[0]
    assert record["tags"] == ["flood", "urgent"]
    assert record["owner_id"] == "netrunnerX"
    assert distance == 7950.5
    assert pool.fetch_calls[0][0] is DISASTERS_WITHIN_RADIUS_SQL


@pytest.mark.asyncio
async def test_adapter_reuses_pool_and_closes_it() -> None:
    pool = FakePool()
    adapter = make_adapter(pool)
    origin = Coordinate(lat=40.7128, lng=-74.006)

    await adapter.resources_within_radius(origin, 1_000)
    await adapter.resources_within_radius(origin, 2_000)
    await adapter.close()

    assert len(pool.fetch_calls) == 2
    assert pool.fetch_calls[0][1][3] is None
    assert pool.closed is True


@pytest.mark.asyncio
async def test_resources_within_radius_rejects_non_positive_radius() -> None:
    adapter = make_adapter(FakePool())
    with pytest.raises(ValueError):
        await adapter.resources_within_radius(Coordinate(lat=40.7, lng=-74.0), 0)
