from __future__ import annotations

from fastapi import APIRouter, Depends
from shared.security import Permission

from disaster_api.dependencies import enforce_external_rate_limit, get_verification_service
from disaster_api.response import success_response
from disaster_api.schemas.verification import ImageVerifyRequest
from disaster_api.security import CurrentUser, permitted
from disaster_api.services.verification_service import VerificationService

router = APIRouter(prefix="/verify", tags=["verify"])


@router.post("/image", dependencies=[Depends(enforce_external_rate_limit)])
async def verify_image(
    payload: ImageVerifyRequest,
    user: CurrentUser = Depends(permitted(Permission.VERIFY_IMAGE)),
    service: VerificationService = Depends(get_verification_service),
) -> dict:
    result = await service.verify_image(payload, user)
    return success_response(result.model_dump(), meta={})


@router.get("/report/{report_id}")
async def report_verification(
    report_id: str,
    service: VerificationService = Depends(get_verification_service),
) -> dict:
    result = await service.report_status(report_id)
    return success_response(result.model_dump(), meta={})
