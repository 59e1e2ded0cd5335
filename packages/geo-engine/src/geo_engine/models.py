from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class InvalidCoordinateError(ValueError):
    """Raised when a latitude/longitude pair is out of range."""


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidCoordinateError("lat must be between -90 and 90")
        if not -180.0 <= self.lng <= 180.0:
            raise InvalidCoordinateError("lng must be between -180 and 180")

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Coordinate | None:
        lat = record.get("lat")
        lng = record.get("lng")
        if lat is None or lng is None:
            return None
        return cls(lat=float(lat), lng=float(lng))


class ResourceType(StrEnum):
    SHELTER = "shelter"
    FOOD = "food"
    WATER = "water"
    MEDICAL = "medical"
    CLOTHING = "clothing"
    OTHER = "other"


class RecordKind(StrEnum):
    DISASTER = "disaster"
    RESOURCE = "resource"
