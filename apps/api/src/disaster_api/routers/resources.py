from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from geo_engine.models import ResourceType
from shared.security import Permission

from disaster_api.dependencies import get_proximity_service, get_resource_service
from disaster_api.response import success_response
from disaster_api.schemas.resource import ResourceCreate, ResourceUpdate
from disaster_api.security import CurrentUser, permitted
from disaster_api.services.proximity_service import ProximityService
from disaster_api.services.resource_service import ResourceService

router = APIRouter(prefix="/resources", tags=["resources"])


@router.post("", status_code=201)
async def create_resource(
    payload: ResourceCreate,
    _: CurrentUser = Depends(permitted(Permission.WRITE_RESOURCE)),
    service: ResourceService = Depends(get_resource_service),
) -> dict:
    resource = await service.create(payload)
    return success_response(resource.to_dict(), meta={})


@router.get("/nearby")
async def nearby_resources(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: int | None = Query(default=None),
    type: ResourceType | None = Query(default=None),
    service: ProximityService = Depends(get_proximity_service),
) -> dict:
    items = await service.nearby_resources(lat, lng, radius, type)
    return success_response(items, meta={"count": len(items)})


@router.get("/near-disaster/{disaster_id}")
async def resources_near_disaster(
    disaster_id: str,
    radius: int | None = Query(default=None),
    service: ProximityService = Depends(get_proximity_service),
) -> dict:
    items = await service.resources_near_disaster(disaster_id, radius)
    return success_response(items, meta={"count": len(items)})


@router.get("/disaster/{disaster_id}")
async def resources_for_disaster(
    disaster_id: str,
    service: ResourceService = Depends(get_resource_service),
) -> dict:
    items = await service.list_for_disaster(disaster_id)
    return success_response([item.to_dict() for item in items], meta={"count": len(items)})


@router.get("/{resource_id}")
async def get_resource(
    resource_id: str,
    service: ResourceService = Depends(get_resource_service),
) -> dict:
    resource = await service.get(resource_id)
    return success_response(resource.to_dict(), meta={})


@router.put("/{resource_id}")
async def update_resource(
    resource_id: str,
    payload: ResourceUpdate,
    _: CurrentUser = Depends(permitted(Permission.WRITE_RESOURCE)),
    service: ResourceService = Depends(get_resource_service),
) -> dict:
    resource = await service.update(resource_id, payload)
    return success_response(resource.to_dict(), meta={})


@router.delete("/{resource_id}", status_code=204)
async def delete_resource(
    resource_id: str,
    _: CurrentUser = Depends(permitted(Permission.WRITE_RESOURCE)),
    service: ResourceService = Depends(get_resource_service),
) -> Response:
    await service.delete(resource_id)
    return Response(status_code=204)
