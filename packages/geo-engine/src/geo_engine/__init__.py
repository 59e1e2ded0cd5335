"""Geo engine core package."""

from geo_engine.distance import BoundingBox, bounding_box, haversine_distance_meters
from geo_engine.geocoding import (
    GeocodeResult,
    GeocodingProvider,
    GeocodingProviderError,
    GeocodingResolver,
    ReverseGeocodeResult,
    ReverseGeocodingProvider,
    geocode_cache_key,
)
from geo_engine.geofence import distance_if_inside_radius
from geo_engine.models import Coordinate, InvalidCoordinateError, RecordKind, ResourceType
from geo_engine.postgis_adapter import PostGISAdapter
from geo_engine.proximity import (
    DEFAULT_RADIUS_METERS,
    MAX_RADIUS_METERS,
    MIN_RADIUS_METERS,
    HaversineProximityBackend,
    InvalidRadiusError,
    ProximityEngine,
    ProximityMatch,
    ProximityQuery,
)

__all__ = [
    "BoundingBox",
    "Coordinate",
    "DEFAULT_RADIUS_METERS",
    "GeocodeResult",
    "GeocodingProvider",
    "GeocodingProviderError",
    "GeocodingResolver",
    "HaversineProximityBackend",
    "InvalidCoordinateError",
    "InvalidRadiusError",
    "MAX_RADIUS_METERS",
    "MIN_RADIUS_METERS",
    "PostGISAdapter",
    "ProximityEngine",
    "ProximityMatch",
    "ProximityQuery",
    "RecordKind",
    "ResourceType",
    "ReverseGeocodeResult",
    "ReverseGeocodingProvider",
    "bounding_box",
    "distance_if_inside_radius",
    "geocode_cache_key",
    "haversine_distance_meters",
]
