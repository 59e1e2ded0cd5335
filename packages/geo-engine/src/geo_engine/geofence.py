from geo_engine.distance import bounding_box, haversine_distance_meters
from geo_engine.models import Coordinate


def distance_if_inside_radius(center: Coordinate, point: Coordinate, radius_meters: float) -> float | None:
    """Great-circle distance from ``center`` to ``point``, or None when outside the radius."""
    if radius_meters < 0:
        raise ValueError("radius_meters must be >= 0")
    if not bounding_box(center, radius_meters).contains(point):
        return None
    distance = haversine_distance_meters(center, point)
    return distance if distance <= radius_meters else None
