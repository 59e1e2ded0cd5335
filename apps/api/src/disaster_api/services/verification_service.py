from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol
from uuid import uuid4

from devkit.timezone import now_utc_iso

from disaster_api.errors import ApiError, NotFound, ProviderUnavailable
from disaster_api.notifier import ChangeAction, ChangeNotifier, EntityKind
from disaster_api.repositories.disaster_repository import DisasterRepository
from disaster_api.repositories.report_repository import Report, ReportRepository
from disaster_api.schemas.verification import (
    ImageVerificationResult,
    ImageVerifyRequest,
    ReportVerificationStatus,
)
from disaster_api.security import CurrentUser

logger = logging.getLogger(__name__)


class ImageVerifier(Protocol):
    async def verify_image(self, image_url: str, context: str | None = None) -> dict[str, Any]: ...


class VerificationService:
    def __init__(
        self,
        verifier: ImageVerifier | None,
        disasters: DisasterRepository,
        reports: ReportRepository,
        notifier: ChangeNotifier,
        *,
        clock: Callable[[], str] = now_utc_iso,
        id_factory: Callable[[], str] = lambda: str(uuid4()),
    ) -> None:
        self._verifier = verifier
        self._disasters = disasters
        self._reports = reports
        self._notifier = notifier
        self._clock = clock
        self._new_id = id_factory

    async def verify_image(self, request: ImageVerifyRequest, user: CurrentUser) -> ImageVerificationResult:
        if self._verifier is None:
            raise ProviderUnavailable("Image verification")
        if request.disaster_id is not None and await self._disasters.get(request.disaster_id) is None:
            raise NotFound("Disaster")

        try:
            verification = await self._verifier.verify_image(request.image_url, request.context)
        except ApiError as exc:
            logger.warning(
                "image_verification_failed",
                extra={"component": "verification", "code": exc.code, "image_url": request.image_url},
            )
            raise

        report = Report(
            id=self._new_id(),
            user_id=user.user_id,
            content=request.context or "Image verification request",
            disaster_id=request.disaster_id,
            image_url=request.image_url,
            verification_status="verified" if verification["is_authentic"] else "suspicious",
            metadata={"verification": verification, "context": request.context},
            created_at=self._clock(),
        )
        saved = await self._reports.create(report)
        self._notifier.notify(ChangeAction.CREATED, EntityKind.REPORT, saved.to_dict(), room=saved.disaster_id)
        return ImageVerificationResult(
            verified=bool(verification["is_authentic"]),
            confidence=float(verification["confidence"]),
            analysis=str(verification["analysis"]),
            concerns=list(verification["concerns"]),
            report_id=saved.id,
        )

    async def report_status(self, report_id: str) -> ReportVerificationStatus:
        report = await self._reports.get(report_id)
        if report is None:
            raise NotFound("Report")
        return ReportVerificationStatus(
            report_id=report.id,
            disaster_id=report.disaster_id,
            status=report.verification_status,
            verified=report.verification_status == "verified",
            image_url=report.image_url,
            metadata=report.metadata,
            created_at=report.created_at,
        )
