from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from devkit.timezone import now_utc_iso
from sqlalchemy import select

from disaster_api.repositories.datastore import Datastore
from disaster_api.repositories.orm import ReportORM


@dataclass
class Report:
    id: str
    user_id: str
    content: str
    disaster_id: str | None = None
    image_url: str | None = None
    verification_status: str = "pending"
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=now_utc_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ReportRepository:
    def __init__(self, datastore: Datastore | None = None) -> None:
        self._datastore = datastore
        self._items: dict[str, Report] = {}

    async def create(self, report: Report) -> Report:
        if self._datastore is None:
            self._items[report.id] = report
            return report

        async def _run(session):
            session.add(
                ReportORM(
                    id=report.id,
                    disaster_id=report.disaster_id,
                    user_id=report.user_id,
                    content=report.content,
                    image_url=report.image_url,
                    verification_status=report.verification_status,
                    metadata_json=json.dumps(report.metadata, ensure_ascii=True),
                    created_at=report.created_at,
                )
            )
            return report

        return await self._datastore.run(_run, "create_report")

    async def get(self, report_id: str) -> Report | None:
        if self._datastore is None:
            return self._items.get(report_id)

        async def _run(session):
            row = await session.get(ReportORM, report_id)
            return self._to_entity(row) if row else None

        return await self._datastore.run(_run, "get_report")

    async def list_by_disaster(self, disaster_id: str) -> list[Report]:
        if self._datastore is None:
            items = [item for item in self._items.values() if item.disaster_id == disaster_id]
            return sorted(items, key=lambda item: (item.created_at, item.id), reverse=True)

        async def _run(session):
            stmt = (
                select(ReportORM)
                .where(ReportORM.disaster_id == disaster_id)
                .order_by(ReportORM.created_at.desc(), ReportORM.id.desc())
            )
            rows = (await session.scalars(stmt)).all()
            return [self._to_entity(row) for row in rows]

        return await self._datastore.run(_run, "list_reports_by_disaster")

    @staticmethod
    def _to_entity(row: ReportORM) -> Report:
        return Report(
            id=row.id,
            user_id=row.user_id,
            content=row.content,
            disaster_id=row.disaster_id,
            image_url=row.image_url,
            verification_status=row.verification_status,
            metadata=json.loads(row.metadata_json or "{}"),
            created_at=row.created_at,
        )
