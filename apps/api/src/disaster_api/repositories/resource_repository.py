from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from devkit.timezone import now_utc_iso
from sqlalchemy import select

from disaster_api.repositories.datastore import Datastore
from disaster_api.repositories.orm import ResourceORM


@dataclass
class Resource:
    id: str
    name: str
    type: str
    disaster_id: str | None = None
    location_name: str | None = None
    quantity: int = 1
    details: dict[str, Any] = field(default_factory=dict)
    lat: float | None = None
    lng: float | None = None
    created_at: str = field(default_factory=now_utc_iso)
    updated_at: str = field(default_factory=now_utc_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ResourceRepository:
    def __init__(self, datastore: Datastore | None = None) -> None:
        self._datastore = datastore
        self._items: dict[str, Resource] = {}

    async def create(self, resource: Resource) -> Resource:
        return await self.save(resource)

    async def get(self, resource_id: str) -> Resource | None:
        if self._datastore is None:
            return self._items.get(resource_id)

        async def _run(session):
            row = await session.get(ResourceORM, resource_id)
            return self._to_entity(row) if row else None

        return await self._datastore.run(_run, "get_resource")

    async def list_by_disaster(self, disaster_id: str) -> list[Resource]:
        if self._datastore is None:
            return sorted(
                (item for item in self._items.values() if item.disaster_id == disaster_id),
                key=lambda item: item.id,
            )

        async def _run(session):
            stmt = select(ResourceORM).where(ResourceORM.disaster_id == disaster_id).order_by(ResourceORM.id)
            rows = (await session.scalars(stmt)).all()
            return [self._to_entity(row) for row in rows]

        return await self._datastore.run(_run, "list_resources_by_disaster")

    async def list_all(self) -> list[Resource]:
        if self._datastore is None:
            return list(self._items.values())

        async def _run(session):
            rows = (await session.scalars(select(ResourceORM))).all()
            return [self._to_entity(row) for row in rows]

        return await self._datastore.run(_run, "list_resources")

    async def save(self, resource: Resource) -> Resource:
        if self._datastore is None:
            self._items[resource.id] = resource
            return resource

        async def _run(session):
            row = await session.get(ResourceORM, resource.id)
            if row is None:
                row = ResourceORM(id=resource.id)
                session.add(row)
            row.disaster_id = resource.disaster_id
            row.name = resource.name
            row.location_name = resource.location_name
            row.type = resource.type
            row.quantity = resource.quantity
            row.details_json = json.dumps(resource.details, ensure_ascii=True)
            row.lat = resource.lat
            row.lng = resource.lng
            row.created_at = resource.created_at
            row.updated_at = resource.updated_at
            return resource

        return await self._datastore.run(_run, "save_resource")

    async def delete(self, resource_id: str) -> bool:
        if self._datastore is None:
            return self._items.pop(resource_id, None) is not None

        async def _run(session):
            row = await session.get(ResourceORM, resource_id)
            if row is None:
                return False
            await session.delete(row)
            return True

        return await self._datastore.run(_run, "delete_resource")

    @staticmethod
    def _to_entity(row: ResourceORM) -> Resource:
        return Resource(
            id=row.id,
            name=row.name,
            type=row.type,
            disaster_id=row.disaster_id,
            location_name=row.location_name,
            quantity=row.quantity,
            details=json.loads(row.details_json or "{}"),
            lat=row.lat,
            lng=row.lng,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
