import pytest

from geo_engine.distance import bounding_box, haversine_distance_meters
from geo_engine.models import Coordinate, InvalidCoordinateError


def test_haversine_distance_is_zero_for_same_point() -> None:
    point = Coordinate(lat=40.7128, lng=-74.0060)
    distance = haversine_distance_meters(point, point)
    assert distance == 0.0


def test_haversine_distance_is_positive_for_different_points() -> None:
    lower_manhattan = Coordinate(lat=40.7128, lng=-74.0060)
    central_park = Coordinate(lat=40.7831, lng=-73.9712)
    distance = haversine_distance_meters(lower_manhattan, central_park)
    assert distance > 0
    assert distance < 10_000


def test_coordinate_rejects_out_of_range_values() -> None:
    with pytest.raises(InvalidCoordinateError):
        Coordinate(lat=91.0, lng=0.0)
    with pytest.raises(InvalidCoordinateError):
        Coordinate(lat=0.0, lng=-180.5)


def test_coordinate_from_record_treats_missing_as_absent() -> None:
    assert Coordinate.from_record({"lat": None, "lng": -74.0}) is None
    assert Coordinate.from_record({}) is None
    assert Coordinate.from_record({"lat": 0, "lng": 0}) == Coordinate(lat=0.0, lng=0.0)


def test_haversine_matches_known_city_distance() -> None:
    london = Coordinate(lat=51.5074, lng=-0.1278)
    paris = Coordinate(lat=48.8566, lng=2.3522)

    assert 340_000 < haversine_distance_meters(london, paris) < 347_000


def test_bounding_box_holds_points_inside_radius() -> None:
    center = Coordinate(lat=40.7128, lng=-74.0060)
    box = bounding_box(center, 10_000)

    assert box.contains(Coordinate(lat=40.7831, lng=-73.9712))
    assert not box.contains(Coordinate(lat=41.0, lng=-74.0060))
    assert not box.crosses_antimeridian


def test_bounding_box_wraps_across_antimeridian() -> None:
    box = bounding_box(Coordinate(lat=0.0, lng=179.99), 10_000)

    assert box.crosses_antimeridian
    assert box.contains(Coordinate(lat=0.0, lng=-179.95))
    assert not box.contains(Coordinate(lat=0.0, lng=-170.0))


def test_bounding_box_near_pole_spans_all_longitudes() -> None:
    box = bounding_box(Coordinate(lat=89.95, lng=0.0), 10_000)

    assert (box.min_lng, box.max_lng, box.max_lat) == (-180.0, 180.0, 90.0)
    assert box.contains(Coordinate(lat=89.97, lng=180.0))
