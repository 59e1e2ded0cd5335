from __future__ import annotations

from typing import Any

from geo_engine.models import ResourceType
from pydantic import BaseModel, Field, model_validator


class ResourceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: ResourceType
    disaster_id: str | None = None
    location_name: str | None = Field(default=None, max_length=500)
    lat: float | None = Field(default=None, ge=-90, le=90)
    lng: float | None = Field(default=None, ge=-180, le=180)
    quantity: int = Field(default=1, ge=0)
    details: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _coordinates_come_in_pairs(self) -> ResourceCreate:
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be provided together")
        return self


class ResourceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: ResourceType | None = None
    location_name: str | None = Field(default=None, max_length=500)
    quantity: int | None = Field(default=None, ge=0)
    details: dict[str, Any] | None = None
