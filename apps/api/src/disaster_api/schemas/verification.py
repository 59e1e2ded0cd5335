from pydantic import BaseModel, Field


class ImageVerifyRequest(BaseModel):
    image_url: str = Field(min_length=1, max_length=2048, pattern=r"^https?://")
    disaster_id: str | None = None
    context: str | None = Field(default=None, max_length=2000)


class ImageVerificationResult(BaseModel):
    verified: bool
    confidence: float
    analysis: str
    concerns: list[str]
    report_id: str


class ReportVerificationStatus(BaseModel):
    report_id: str
    disaster_id: str | None
    status: str
    verified: bool
    image_url: str | None
    metadata: dict
    created_at: str
