from __future__ import annotations

import math
from dataclasses import dataclass

from geo_engine.models import Coordinate

EARTH_RADIUS_METERS = 6_371_000
_SLACK_DEGREES = 1e-9


def haversine_distance_meters(start: Coordinate, end: Coordinate) -> float:
    """Great-circle distance on a spherical earth."""
    phi1, phi2 = math.radians(start.lat), math.radians(end.lat)
    half_dphi = math.radians(end.lat - start.lat) / 2
    half_dlambda = math.radians(end.lng - start.lng) / 2
    h = math.sin(half_dphi) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(half_dlambda) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(min(1.0, h)))


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @property
    def crosses_antimeridian(self) -> bool:
        return self.min_lng > self.max_lng

    def contains(self, point: Coordinate) -> bool:
        if not self.min_lat <= point.lat <= self.max_lat:
            return False
        if self.crosses_antimeridian:
            return point.lng >= self.min_lng or point.lng <= self.max_lng
        return self.min_lng <= point.lng <= self.max_lng


def bounding_box(center: Coordinate, radius_meters: float) -> BoundingBox:
    """Smallest lat/lng box holding every point within ``radius_meters`` of ``center``.

    Near the poles the box widens to every longitude; across the antimeridian
    ``min_lng`` ends up greater than ``max_lng``.
    """
    angular = radius_meters / EARTH_RADIUS_METERS
    delta_lat = math.degrees(angular) + _SLACK_DEGREES
    min_lat = max(-90.0, center.lat - delta_lat)
    max_lat = min(90.0, center.lat + delta_lat)

    cos_lat = math.cos(math.radians(center.lat))
    if min_lat <= -90.0 or max_lat >= 90.0 or cos_lat <= 0 or math.sin(angular) >= cos_lat:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)

    delta_lng = math.degrees(math.asin(math.sin(angular) / cos_lat)) + _SLACK_DEGREES
    min_lng = center.lng - delta_lng
    max_lng = center.lng + delta_lng
    if min_lng < -180.0:
        min_lng += 360.0
    if max_lng > 180.0:
        max_lng -= 360.0
    return BoundingBox(min_lat, max_lat, min_lng, max_lng)
