from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from shared.security import Permission

from disaster_api.dependencies import (
    enforce_external_rate_limit,
    get_disaster_service,
    get_social_service,
    get_updates_service,
)
from disaster_api.response import success_response
from disaster_api.schemas.disaster import DisasterCreate, DisasterUpdate, ReportCreate
from disaster_api.security import CurrentUser, get_current_user, permitted
from disaster_api.services.disaster_service import DisasterService
from disaster_api.services.social_service import MAX_SOCIAL_POSTS, SocialMediaService
from disaster_api.services.updates_service import MAX_OFFICIAL_UPDATES, OfficialUpdatesService

router = APIRouter(prefix="/disasters", tags=["disasters"])


@router.post("", status_code=201)
async def create_disaster(
    payload: DisasterCreate,
    user: CurrentUser = Depends(permitted(Permission.WRITE_DISASTER)),
    service: DisasterService = Depends(get_disaster_service),
) -> dict:
    disaster, nearby = await service.create(payload, user)
    meta = {"nearby_resources": nearby} if nearby is not None else {}
    return success_response(disaster.to_dict(), meta=meta)


@router.get("")
async def list_disasters(
    tag: str | None = None,
    owner_id: str | None = None,
    service: DisasterService = Depends(get_disaster_service),
) -> dict:
    items = await service.list_disasters(tag=tag, owner_id=owner_id)
    return success_response([item.to_dict() for item in items], meta={"count": len(items)})


@router.get("/{disaster_id}")
async def get_disaster(
    disaster_id: str,
    service: DisasterService = Depends(get_disaster_service),
) -> dict:
    disaster = await service.get(disaster_id)
    return success_response(disaster.to_dict(), meta={})


@router.put("/{disaster_id}")
async def update_disaster(
    disaster_id: str,
    payload: DisasterUpdate,
    user: CurrentUser = Depends(get_current_user),
    service: DisasterService = Depends(get_disaster_service),
) -> dict:
    disaster = await service.update(disaster_id, payload, user)
    return success_response(disaster.to_dict(), meta={})


@router.delete("/{disaster_id}", status_code=204)
async def delete_disaster(
    disaster_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: DisasterService = Depends(get_disaster_service),
) -> Response:
    await service.delete(disaster_id, user)
    return Response(status_code=204)


@router.post("/{disaster_id}/reports", status_code=201)
async def create_report(
    disaster_id: str,
    payload: ReportCreate,
    user: CurrentUser = Depends(get_current_user),
    service: DisasterService = Depends(get_disaster_service),
) -> dict:
    report = await service.create_report(disaster_id, payload, user)
    return success_response(report.to_dict(), meta={})


@router.get("/{disaster_id}/reports")
async def list_reports(
    disaster_id: str,
    service: DisasterService = Depends(get_disaster_service),
) -> dict:
    items = await service.list_reports(disaster_id)
    return success_response([item.to_dict() for item in items], meta={"count": len(items)})


@router.get("/{disaster_id}/social-media", dependencies=[Depends(enforce_external_rate_limit)])
async def social_media(
    disaster_id: str,
    limit: int = Query(default=20, ge=1, le=MAX_SOCIAL_POSTS),
    service: DisasterService = Depends(get_disaster_service),
    social: SocialMediaService = Depends(get_social_service),
) -> dict:
    disaster = await service.get(disaster_id)
    result = await social.posts_for(disaster, limit)
    return success_response(result, meta={"count": result["count"]})


@router.get("/{disaster_id}/official-updates", dependencies=[Depends(enforce_external_rate_limit)])
async def official_updates(
    disaster_id: str,
    limit: int = Query(default=10, ge=1, le=MAX_OFFICIAL_UPDATES),
    service: DisasterService = Depends(get_disaster_service),
    updates: OfficialUpdatesService = Depends(get_updates_service),
) -> dict:
    disaster = await service.get(disaster_id)
    result = await updates.updates_for(disaster, limit)
    return success_response(result, meta={"count": len(result["updates"])})
