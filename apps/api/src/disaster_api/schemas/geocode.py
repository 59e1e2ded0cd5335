from pydantic import BaseModel, Field


class CoordinatesOut(BaseModel):
    lat: float
    lng: float


class GeocodeLocationResult(BaseModel):
    query: str
    location: str
    coordinates: CoordinatesOut
    source: str
    resolved_at: str


class ExtractLocationRequest(BaseModel):
    text: str = Field(min_length=1, max_length=5000)


class ExtractLocationResult(BaseModel):
    extracted_location: str
    coordinates: CoordinatesOut | None
    source: str | None = None
    message: str | None = None


class ReverseGeocodeResultOut(BaseModel):
    coordinates: CoordinatesOut
    location_name: str
    source: str
