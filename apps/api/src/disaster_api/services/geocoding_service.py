from __future__ import annotations

import logging

from geo_engine.geocoding import GeocodingResolver
from geo_engine.models import Coordinate, InvalidCoordinateError

from disaster_api.errors import ApiError, ProviderUnavailable, ValidationFailed
from disaster_api.schemas.geocode import (
    CoordinatesOut,
    ExtractLocationResult,
    GeocodeLocationResult,
    ReverseGeocodeResultOut,
)
from disaster_api.services.enrichment_service import LocationExtractor

logger = logging.getLogger(__name__)


class GeocodingService:
    def __init__(self, resolver: GeocodingResolver, extractor: LocationExtractor | None = None) -> None:
        self._resolver = resolver
        self._extractor = extractor

    async def locate(self, query: str) -> GeocodeLocationResult:
        if not query.strip():
            raise ValidationFailed("q", "location query is required")
        result = await self._resolver.geocode(query)
        if result is None:
            raise ApiError("NOT_FOUND", f"Could not geocode '{query.strip()}'", 404)
        return GeocodeLocationResult(
            query=query,
            location=query.strip(),
            coordinates=CoordinatesOut(**result.coordinates.to_dict()),
            source=result.source,
            resolved_at=result.resolved_at.isoformat(),
        )

    async def extract(self, text: str) -> ExtractLocationResult:
        if not text.strip():
            raise ValidationFailed("text", "text is required")
        if self._extractor is None:
            raise ProviderUnavailable("Location extraction")
        try:
            location_name = await self._extractor.extract_location(text)
        except Exception:
            logger.warning("location_extraction_failed", extra={"component": "geocoding"}, exc_info=True)
            location_name = None
        location_name = location_name.strip() if location_name else None
        if not location_name:
            raise ApiError("NOT_FOUND", "Could not extract a location from the provided text", 404)

        result = await self._resolver.geocode(location_name)
        if result is None:
            return ExtractLocationResult(
                extracted_location=location_name,
                coordinates=None,
                message="Location was extracted but could not be geocoded",
            )
        return ExtractLocationResult(
            extracted_location=location_name,
            coordinates=CoordinatesOut(**result.coordinates.to_dict()),
            source=result.source,
        )

    async def reverse(self, lat: float, lng: float) -> ReverseGeocodeResultOut:
        try:
            coordinate = Coordinate(lat=lat, lng=lng)
        except InvalidCoordinateError as exc:
            raise ValidationFailed("coordinates", str(exc)) from exc
        result = await self._resolver.reverse_geocode(coordinate)
        if result is None:
            raise ApiError("NOT_FOUND", "Could not reverse geocode the provided coordinates", 404)
        return ReverseGeocodeResultOut(
            coordinates=CoordinatesOut(**coordinate.to_dict()),
            location_name=result.location_name,
            source=result.source,
        )
