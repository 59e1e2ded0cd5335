from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace

from devkit.timezone import now_utc_iso

from disaster_api.errors import NotFound
from disaster_api.notifier import ChangeAction, ChangeNotifier, EntityKind
from disaster_api.repositories.disaster_repository import DisasterRepository
from disaster_api.repositories.resource_repository import Resource, ResourceRepository
from disaster_api.schemas.resource import ResourceCreate, ResourceUpdate
from disaster_api.services.enrichment_service import EnrichmentOrchestrator


class ResourceService:
    def __init__(
        self,
        resources: ResourceRepository,
        disasters: DisasterRepository,
        orchestrator: EnrichmentOrchestrator,
        notifier: ChangeNotifier,
        *,
        clock: Callable[[], str] = now_utc_iso,
    ) -> None:
        self._resources = resources
        self._disasters = disasters
        self._orchestrator = orchestrator
        self._notifier = notifier
        self._clock = clock

    async def create(self, request: ResourceCreate) -> Resource:
        return await self._orchestrator.intake_resource(request)

    async def get(self, resource_id: str) -> Resource:
        resource = await self._resources.get(resource_id)
        if resource is None:
            raise NotFound("Resource")
        return resource

    async def list_for_disaster(self, disaster_id: str) -> list[Resource]:
        if await self._disasters.get(disaster_id) is None:
            raise NotFound("Disaster")
        return await self._resources.list_by_disaster(disaster_id)

    async def update(self, resource_id: str, request: ResourceUpdate) -> Resource:
        current = await self.get(resource_id)
        fields = request.model_dump(exclude_unset=True, exclude_none=True)
        if "type" in fields:
            fields["type"] = fields["type"].value
        location_name = fields.get("location_name")
        if location_name is not None and location_name != current.location_name:
            enrichment = await self._orchestrator.enrich_location(location_name)
            coordinates = enrichment.coordinates
            fields["lat"] = coordinates.lat if coordinates else None
            fields["lng"] = coordinates.lng if coordinates else None
        if not fields:
            return current
        updated = replace(current, **fields, updated_at=self._clock())
        saved = await self._resources.save(updated)
        self._notifier.notify(ChangeAction.UPDATED, EntityKind.RESOURCE, saved.to_dict(), room=saved.disaster_id)
        return saved

    async def delete(self, resource_id: str) -> None:
        current = await self.get(resource_id)
        await self._resources.delete(resource_id)
        self._notifier.notify(
            ChangeAction.DELETED,
            EntityKind.RESOURCE,
            {"id": resource_id, "disaster_id": current.disaster_id, "deleted_at": self._clock()},
            room=current.disaster_id,
        )
