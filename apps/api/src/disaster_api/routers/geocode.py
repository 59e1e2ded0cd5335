from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from disaster_api.dependencies import (
    enforce_external_rate_limit,
    get_geocoding_service,
    get_proximity_service,
)
from disaster_api.response import success_response
from disaster_api.schemas.geocode import ExtractLocationRequest
from disaster_api.services.geocoding_service import GeocodingService
from disaster_api.services.proximity_service import ProximityService

router = APIRouter(prefix="/geocode", tags=["geocode"])


@router.get("/location", dependencies=[Depends(enforce_external_rate_limit)])
async def geocode_location(
    q: str = Query(..., min_length=1, max_length=500),
    service: GeocodingService = Depends(get_geocoding_service),
) -> dict:
    result = await service.locate(q)
    return success_response(result.model_dump(), meta={})


@router.post("/extract-location", dependencies=[Depends(enforce_external_rate_limit)])
async def extract_location(
    payload: ExtractLocationRequest,
    service: GeocodingService = Depends(get_geocoding_service),
) -> dict:
    result = await service.extract(payload.text)
    return success_response(result.model_dump(), meta={})


@router.get("/reverse", dependencies=[Depends(enforce_external_rate_limit)])
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    service: GeocodingService = Depends(get_geocoding_service),
) -> dict:
    result = await service.reverse(lat, lng)
    return success_response(result.model_dump(), meta={})


@router.get("/nearby-disasters")
async def nearby_disasters(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: int | None = Query(default=None),
    service: ProximityService = Depends(get_proximity_service),
) -> dict:
    items = await service.nearby_disasters(lat, lng, radius)
    return success_response(items, meta={"count": len(items)})
