from __future__ import annotations

import logging
from typing import Any

from geo_engine.models import Coordinate, InvalidCoordinateError, RecordKind, ResourceType
from geo_engine.proximity import InvalidRadiusError, ProximityEngine

from disaster_api.errors import ApiError, DatastoreError, NotFound, ValidationFailed
from disaster_api.repositories.disaster_repository import DisasterRepository

logger = logging.getLogger(__name__)


class ProximityService:
    def __init__(
        self,
        engine: ProximityEngine,
        disasters: DisasterRepository,
        default_radius_meters: int = 10_000,
    ) -> None:
        self._engine = engine
        self._disasters = disasters
        self._default_radius = default_radius_meters

    async def nearby_resources(
        self,
        lat: float,
        lng: float,
        radius_meters: int | None = None,
        resource_type: ResourceType | None = None,
    ) -> list[dict[str, Any]]:
        return await self._find(self._origin(lat, lng), radius_meters, resource_type, RecordKind.RESOURCE)

    async def resources_near_disaster(self, disaster_id: str, radius_meters: int | None = None) -> list[dict[str, Any]]:
        disaster = await self._disasters.get(disaster_id)
        if disaster is None:
            raise NotFound("Disaster")
        if not disaster.has_coordinates:
            raise ValidationFailed("disaster_id", "disaster location is not available")
        origin = Coordinate(lat=disaster.lat, lng=disaster.lng)
        return await self._find(origin, radius_meters, None, RecordKind.RESOURCE)

    async def nearby_disasters(self, lat: float, lng: float, radius_meters: int | None = None) -> list[dict[str, Any]]:
        return await self._find(self._origin(lat, lng), radius_meters, None, RecordKind.DISASTER)

    async def _find(
        self,
        origin: Coordinate,
        radius_meters: int | None,
        resource_type: ResourceType | None,
        kind: RecordKind,
    ) -> list[dict[str, Any]]:
        radius = self._default_radius if radius_meters is None else radius_meters
        try:
            matches = await self._engine.find_nearby(origin, radius, resource_type, kind=kind)
        except InvalidRadiusError as exc:
            raise ValidationFailed("radius", str(exc)) from exc
        except ApiError:
            raise
        except Exception as exc:
            logger.error(
                "proximity_query_failed",
                extra={"component": "proximity", "kind": kind.value, "error": type(exc).__name__},
            )
            raise DatastoreError("Proximity query failed") from exc
        return [match.to_dict() for match in matches]

    @staticmethod
    def _origin(lat: float, lng: float) -> Coordinate:
        try:
            return Coordinate(lat=lat, lng=lng)
        except InvalidCoordinateError as exc:
            raise ValidationFailed("coordinates", str(exc)) from exc
