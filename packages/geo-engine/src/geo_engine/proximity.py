from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from geo_engine.geofence import distance_if_inside_radius
from geo_engine.models import Coordinate, RecordKind, ResourceType

logger = logging.getLogger(__name__)

MIN_RADIUS_METERS = 100
MAX_RADIUS_METERS = 50_000
DEFAULT_RADIUS_METERS = 10_000

Candidate = tuple[dict[str, Any], float | None]


class InvalidRadiusError(ValueError):
    """Raised when a proximity radius is outside the accepted bounds."""


@dataclass(frozen=True)
class ProximityQuery:
    origin: Coordinate
    radius_meters: int
    resource_type: ResourceType | None = None

    def validate(self, min_radius: int = MIN_RADIUS_METERS, max_radius: int = MAX_RADIUS_METERS) -> None:
        if isinstance(self.radius_meters, bool) or not isinstance(self.radius_meters, int):
            raise InvalidRadiusError("radius must be an integer number of meters")
        if self.radius_meters < min_radius or self.radius_meters > max_radius:
            raise InvalidRadiusError(f"radius must be between {min_radius} and {max_radius} meters")


@dataclass(frozen=True)
class ProximityMatch:
    record: dict[str, Any]
    distance_meters: float

    @property
    def record_id(self) -> str:
        return str(self.record["id"])

    def to_dict(self) -> dict[str, Any]:
        return {**self.record, "distance_meters": round(self.distance_meters, 2)}


class ProximityBackend(Protocol):
    async def within_radius(
        self,
        kind: RecordKind,
        origin: Coordinate,
        radius_meters: int,
        resource_type: str | None = None,
    ) -> list[Candidate]: ...


class ProximityEngine:
    def __init__(
        self,
        backend: ProximityBackend,
        *,
        min_radius_meters: int = MIN_RADIUS_METERS,
        max_radius_meters: int = MAX_RADIUS_METERS,
    ) -> None:
        if min_radius_meters <= 0 or min_radius_meters > max_radius_meters:
            raise ValueError("radius bounds must satisfy 0 < min <= max")
        self._backend = backend
        self._min_radius = min_radius_meters
        self._max_radius = max_radius_meters

    def validate(self, query: ProximityQuery) -> None:
        query.validate(self._min_radius, self._max_radius)

    async def find_nearby(
        self,
        origin: Coordinate,
        radius_meters: int,
        resource_type: ResourceType | None = None,
        *,
        kind: RecordKind = RecordKind.RESOURCE,
    ) -> list[ProximityMatch]:
        if resource_type is not None:
            resource_type = ResourceType(resource_type)
        query = ProximityQuery(origin=origin, radius_meters=radius_meters, resource_type=resource_type)
        self.validate(query)
        type_filter = query.resource_type.value if query.resource_type is not None else None
        candidates = await self._backend.within_radius(kind, query.origin, query.radius_meters, type_filter)

        matches: list[ProximityMatch] = []
        for record, distance in candidates:
            if distance is None or Coordinate.from_record(record) is None:
                continue
            if distance > query.radius_meters:
                continue
            matches.append(ProximityMatch(record=record, distance_meters=float(distance)))
        matches.sort(key=lambda match: (match.distance_meters, match.record_id))
        logger.debug(
            "proximity_query_completed",
            extra={
                "component": "geo_engine",
                "kind": kind.value,
                "radius_meters": query.radius_meters,
                "matches": len(matches),
            },
        )
        return matches


class HaversineProximityBackend:
    """Computes great-circle distances in process over records loaded on demand.

    Used when no PostGIS datastore is configured.
    """

    def __init__(self, load_candidates: Callable[[RecordKind], Awaitable[list[dict[str, Any]]]]) -> None:
        self._load_candidates = load_candidates

    async def within_radius(
        self,
        kind: RecordKind,
        origin: Coordinate,
        radius_meters: int,
        resource_type: str | None = None,
    ) -> list[Candidate]:
        records = await self._load_candidates(kind)
        results: list[Candidate] = []
        for record in records:
            if resource_type is not None and record.get("type") != resource_type:
                continue
            point = Coordinate.from_record(record)
            if point is None:
                continue
            distance = distance_if_inside_radius(origin, point, radius_meters)
            if distance is not None:
                results.append((record, distance))
        return results
