from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any
from uuid import uuid4

from devkit.timezone import now_utc_iso
from shared.security import Permission

from disaster_api.cache import SOCIAL_NAMESPACE, TTLCache
from disaster_api.errors import NotFound
from disaster_api.notifier import ChangeAction, ChangeNotifier, EntityKind
from disaster_api.repositories.disaster_repository import Disaster, DisasterRepository
from disaster_api.repositories.report_repository import Report, ReportRepository
from disaster_api.schemas.disaster import DisasterCreate, DisasterUpdate, ReportCreate
from disaster_api.security import CurrentUser, require_permission
from disaster_api.services.enrichment_service import EnrichmentOrchestrator

logger = logging.getLogger(__name__)


class DisasterService:
    def __init__(
        self,
        disasters: DisasterRepository,
        reports: ReportRepository,
        orchestrator: EnrichmentOrchestrator,
        notifier: ChangeNotifier,
        *,
        cache: TTLCache | None = None,
        clock: Callable[[], str] = now_utc_iso,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        self._disasters = disasters
        self._reports = reports
        self._orchestrator = orchestrator
        self._notifier = notifier
        self._cache = cache
        self._clock = clock
        self._new_id = id_factory

    async def create(self, request: DisasterCreate, user: CurrentUser) -> tuple[Disaster, dict[str, Any] | None]:
        return await self._orchestrator.intake_disaster(request, user)

    async def list_disasters(self, tag: str | None = None, owner_id: str | None = None) -> list[Disaster]:
        return await self._disasters.list_disasters(tag=tag.strip().lower() if tag else None, owner_id=owner_id)

    async def get(self, disaster_id: str) -> Disaster:
        disaster = await self._disasters.get(disaster_id)
        if disaster is None:
            raise NotFound("Disaster")
        return disaster

    async def update(self, disaster_id: str, request: DisasterUpdate, user: CurrentUser) -> Disaster:
        require_permission(user, Permission.WRITE_DISASTER)
        current = await self.get(disaster_id)
        requested = request.model_dump(exclude_unset=True)
        for required in ("title", "tags"):
            if requested.get(required, "") is None:
                del requested[required]
        if "location_name" in requested:
            value = requested["location_name"]
            requested["location_name"] = value.strip() if value and value.strip() else None

        changes: dict[str, dict[str, Any]] = {}
        for field_name, value in requested.items():
            previous = getattr(current, field_name)
            if previous != value:
                changes[field_name] = {"from": previous, "to": value}
        if not changes:
            return current

        fields = {name: change["to"] for name, change in changes.items()}
        if "location_name" in changes:
            # A relocated record never keeps the old point.
            enrichment = await self._orchestrator.enrich_location(fields["location_name"])
            coordinates = enrichment.coordinates
            fields["lat"] = coordinates.lat if coordinates else None
            fields["lng"] = coordinates.lng if coordinates else None
            changes["coordinates"] = {
                "from": {"lat": current.lat, "lng": current.lng} if current.has_coordinates else None,
                "to": coordinates.to_dict() if coordinates else None,
            }

        now = self._clock()
        audit_entry = {"action": "update", "user_id": user.user_id, "timestamp": now, "changes": changes}
        updated = replace(current, **fields, audit_trail=[*current.audit_trail, audit_entry], updated_at=now)
        saved = await self._disasters.save(updated)
        if "title" in changes or "tags" in changes:
            await self._forget_social_posts(saved.id)
        self._notifier.notify(ChangeAction.UPDATED, EntityKind.DISASTER, saved.to_dict(), room=saved.id)
        return saved

    async def delete(self, disaster_id: str, user: CurrentUser) -> None:
        require_permission(user, Permission.DELETE_DISASTER)
        await self.get(disaster_id)
        await self._disasters.delete(disaster_id)
        await self._forget_social_posts(disaster_id)
        logger.info(
            "disaster_deleted",
            extra={"component": "disasters", "disaster_id": disaster_id, "user_id": user.user_id},
        )
        self._notifier.notify(
            ChangeAction.DELETED,
            EntityKind.DISASTER,
            {"id": disaster_id, "deleted_at": self._clock(), "deleted_by": user.user_id},
            room=disaster_id,
        )

    async def _forget_social_posts(self, disaster_id: str) -> None:
        # Social searches are keyed by title and tags.
        if self._cache is not None:
            await self._cache.invalidate_prefix(f"{SOCIAL_NAMESPACE}{disaster_id}:")

    async def create_report(self, disaster_id: str, request: ReportCreate, user: CurrentUser) -> Report:
        require_permission(user, Permission.SUBMIT_REPORT)
        await self.get(disaster_id)
        report = Report(
            id=self._new_id(),
            user_id=user.user_id,
            content=request.content,
            disaster_id=disaster_id,
            image_url=request.image_url,
            created_at=self._clock(),
        )
        saved = await self._reports.create(report)
        self._notifier.notify(ChangeAction.CREATED, EntityKind.REPORT, saved.to_dict(), room=disaster_id)
        return saved

    async def list_reports(self, disaster_id: str) -> list[Report]:
        await self.get(disaster_id)
        return await self._reports.list_by_disaster(disaster_id)
