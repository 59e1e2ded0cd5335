"""Intake enrichment pipeline.

For every new record the orchestrator runs, in order: LLM location
extraction (only when no location name was supplied), geocoding, an optional
"nearby resources" proximity summary, persistence with an audit entry and a
change notification. Steps before persistence are best-effort: their failures
are logged and the record is stored with whatever enrichment succeeded.
Persistence failures propagate.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import uuid4

from devkit.timezone import now_utc_iso
from geo_engine.geocoding import GeocodeResult, GeocodingResolver
from geo_engine.models import Coordinate
from geo_engine.proximity import InvalidRadiusError, ProximityEngine, ProximityQuery

from disaster_api.errors import NotFound, ValidationFailed
from disaster_api.notifier import ChangeAction, ChangeNotifier, EntityKind
from disaster_api.repositories.disaster_repository import Disaster, DisasterRepository
from disaster_api.repositories.resource_repository import Resource, ResourceRepository
from disaster_api.schemas.disaster import DisasterCreate
from disaster_api.schemas.resource import ResourceCreate
from disaster_api.security import CurrentUser

logger = logging.getLogger(__name__)

NEARBY_SUMMARY_LIMIT = 5


class LocationExtractor(Protocol):
    async def extract_location(self, text: str) -> str | None: ...


@dataclass(frozen=True)
class LocationEnrichment:
    location_name: str | None
    geocode: GeocodeResult | None = None
    extracted: bool = False

    @property
    def coordinates(self) -> Coordinate | None:
        return self.geocode.coordinates if self.geocode else None


class EnrichmentOrchestrator:
    def __init__(
        self,
        resolver: GeocodingResolver,
        proximity: ProximityEngine,
        notifier: ChangeNotifier,
        disasters: DisasterRepository,
        resources: ResourceRepository,
        extractor: LocationExtractor | None = None,
        *,
        default_radius_meters: int = 10_000,
        clock: Callable[[], str] = now_utc_iso,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        self._resolver = resolver
        self._proximity = proximity
        self._notifier = notifier
        self._disasters = disasters
        self._resources = resources
        self._extractor = extractor
        self._default_radius = default_radius_meters
        self._clock = clock
        self._new_id = id_factory

    async def enrich_location(self, location_name: str | None, raw_text: str | None = None) -> LocationEnrichment:
        name = location_name.strip() if location_name and location_name.strip() else None
        extracted = False
        if name is None and raw_text and self._extractor is not None:
            try:
                answer = await self._extractor.extract_location(raw_text)
                name = answer.strip() if answer and answer.strip() else None
                extracted = name is not None
            except Exception:
                logger.warning("location_extraction_failed", extra={"component": "enrichment"}, exc_info=True)
                name = None
        if name is None:
            return LocationEnrichment(location_name=None)

        geocode: GeocodeResult | None = None
        try:
            geocode = await self._resolver.geocode(name)
        except Exception:
            logger.warning(
                "location_geocode_failed",
                extra={"component": "enrichment", "location_name": name},
                exc_info=True,
            )
        if geocode is None:
            logger.info("location_unresolved", extra={"component": "enrichment", "location_name": name})
        return LocationEnrichment(location_name=name, geocode=geocode, extracted=extracted)

    async def nearby_resources_summary(self, origin: Coordinate, radius_meters: int) -> dict[str, Any] | None:
        try:
            matches = await self._proximity.find_nearby(origin, radius_meters)
        except Exception:
            logger.warning("nearby_summary_failed", extra={"component": "enrichment"}, exc_info=True)
            return None
        by_type = Counter(str(match.record.get("type")) for match in matches)
        return {
            "radius_meters": radius_meters,
            "count": len(matches),
            "by_type": dict(sorted(by_type.items())),
            "nearest": [match.to_dict() for match in matches[:NEARBY_SUMMARY_LIMIT]],
        }

    async def intake_disaster(
        self,
        request: DisasterCreate,
        user: CurrentUser,
    ) -> tuple[Disaster, dict[str, Any] | None]:
        radius = request.radius if request.radius is not None else self._default_radius
        if request.include_nearby:
            self._validate_radius(radius)

        enrichment = await self.enrich_location(request.location_name, request.description)
        coordinates = enrichment.coordinates
        nearby = None
        if request.include_nearby and coordinates is not None:
            nearby = await self.nearby_resources_summary(coordinates, radius)

        now = self._clock()
        disaster = Disaster(
            id=self._new_id(),
            title=request.title,
            owner_id=user.user_id,
            location_name=enrichment.location_name,
            description=request.description,
            tags=list(request.tags),
            lat=coordinates.lat if coordinates else None,
            lng=coordinates.lng if coordinates else None,
            audit_trail=[{"action": "create", "user_id": user.user_id, "timestamp": now}],
            created_at=now,
            updated_at=now,
        )
        saved = await self._disasters.create(disaster)
        logger.info(
            "disaster_created",
            extra={
                "component": "enrichment",
                "disaster_id": saved.id,
                "geocoded": coordinates is not None,
                "location_extracted": enrichment.extracted,
            },
        )
        self._notifier.notify(ChangeAction.CREATED, EntityKind.DISASTER, saved.to_dict(), room=saved.id)
        return saved, nearby

    async def intake_resource(self, request: ResourceCreate) -> Resource:
        if request.disaster_id is not None and await self._disasters.get(request.disaster_id) is None:
            raise NotFound("Disaster")

        if request.lat is not None and request.lng is not None:
            lat, lng = request.lat, request.lng
            location_name = request.location_name
        else:
            enrichment = await self.enrich_location(request.location_name)
            coordinates = enrichment.coordinates
            lat = coordinates.lat if coordinates else None
            lng = coordinates.lng if coordinates else None
            location_name = enrichment.location_name

        now = self._clock()
        resource = Resource(
            id=self._new_id(),
            name=request.name,
            type=request.type.value,
            disaster_id=request.disaster_id,
            location_name=location_name,
            quantity=request.quantity,
            details=dict(request.details),
            lat=lat,
            lng=lng,
            created_at=now,
            updated_at=now,
        )
        saved = await self._resources.create(resource)
        self._notifier.notify(ChangeAction.CREATED, EntityKind.RESOURCE, saved.to_dict(), room=saved.disaster_id)
        return saved

    def _validate_radius(self, radius: int) -> None:
        try:
            self._proximity.validate(ProximityQuery(origin=Coordinate(lat=0.0, lng=0.0), radius_meters=radius))
        except InvalidRadiusError as exc:
            raise ValidationFailed("radius", str(exc)) from exc
