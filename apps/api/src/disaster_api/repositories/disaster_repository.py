from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from devkit.timezone import now_utc_iso
from sqlalchemy import select

from disaster_api.repositories.datastore import Datastore
from disaster_api.repositories.orm import DisasterORM


@dataclass
class Disaster:
    id: str
    title: str
    owner_id: str
    location_name: str | None = None
    description: str | None = None
    tags: list[str] = field(default_factory=list)
    lat: float | None = None
    lng: float | None = None
    audit_trail: list[dict[str, Any]] = field(default_factory=list)
    created_at: str = field(default_factory=now_utc_iso)
    updated_at: str = field(default_factory=now_utc_iso)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class DisasterRepository:
    def __init__(self, datastore: Datastore | None = None) -> None:
        self._datastore = datastore
        self._items: dict[str, Disaster] = {}

    async def create(self, disaster: Disaster) -> Disaster:
        if self._datastore is None:
            self._items[disaster.id] = disaster
            return disaster

        async def _run(session):
            row = DisasterORM(id=disaster.id)
            self._apply(row, disaster)
            session.add(row)
            return disaster

        return await self._datastore.run(_run, "create_disaster")

    async def get(self, disaster_id: str) -> Disaster | None:
        if self._datastore is None:
            return self._items.get(disaster_id)

        async def _run(session):
            row = await session.get(DisasterORM, disaster_id)
            return self._to_entity(row) if row else None

        return await self._datastore.run(_run, "get_disaster")

    async def list_disasters(self, tag: str | None = None, owner_id: str | None = None) -> list[Disaster]:
        if self._datastore is None:
            items = [
                item
                for item in self._items.values()
                if (not tag or tag in item.tags) and (not owner_id or item.owner_id == owner_id)
            ]
            return sorted(items, key=lambda item: (item.created_at, item.id), reverse=True)

        async def _run(session):
            stmt = select(DisasterORM)
            if owner_id:
                stmt = stmt.where(DisasterORM.owner_id == owner_id)
            if tag:
                stmt = stmt.where(DisasterORM.tags_json.like(f"%{json.dumps(tag)}%"))
            stmt = stmt.order_by(DisasterORM.created_at.desc(), DisasterORM.id.desc())
            rows = (await session.scalars(stmt)).all()
            return [self._to_entity(row) for row in rows]

        return await self._datastore.run(_run, "list_disasters")

    async def save(self, disaster: Disaster) -> Disaster:
        """Last write wins; concurrent updates to one record are not merged."""
        if self._datastore is None:
            self._items[disaster.id] = disaster
            return disaster

        async def _run(session):
            row = await session.get(DisasterORM, disaster.id)
            if row is None:
                row = DisasterORM(id=disaster.id)
                session.add(row)
            self._apply(row, disaster)
            return disaster

        return await self._datastore.run(_run, "save_disaster")

    async def delete(self, disaster_id: str) -> bool:
        if self._datastore is None:
            return self._items.pop(disaster_id, None) is not None

        async def _run(session):
            row = await session.get(DisasterORM, disaster_id)
            if row is None:
                return False
            await session.delete(row)
            return True

        return await self._datastore.run(_run, "delete_disaster")

    @staticmethod
    def _apply(row: DisasterORM, disaster: Disaster) -> None:
        row.title = disaster.title
        row.location_name = disaster.location_name
        row.description = disaster.description
        row.tags_json = json.dumps(disaster.tags, ensure_ascii=True)
        row.owner_id = disaster.owner_id
        row.lat = disaster.lat
        row.lng = disaster.lng
        row.audit_trail_json = json.dumps(disaster.audit_trail, ensure_ascii=True)
        row.created_at = disaster.created_at
        row.updated_at = disaster.updated_at

    @staticmethod
    def _to_entity(row: DisasterORM) -> Disaster:
        return Disaster(
            id=row.id,
            title=row.title,
            owner_id=row.owner_id,
            location_name=row.location_name,
            description=row.description,
            tags=json.loads(row.tags_json or "[]"),
            lat=row.lat,
            lng=row.lng,
            audit_trail=json.loads(row.audit_trail_json or "[]"),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
