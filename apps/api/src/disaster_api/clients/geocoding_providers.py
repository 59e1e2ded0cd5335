"""HTTP geocoding providers plugged into :class:`geo_engine.GeocodingResolver`.

Every provider maps transport and payload problems to
:class:`GeocodingProviderError` and returns ``None`` for "no match"; the
resolver treats both as a failure and rotates to the next provider.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from geo_engine.geocoding import GeocodingProviderError
from geo_engine.models import Coordinate, InvalidCoordinateError

from disaster_api.clients.http import ClientFactory, default_client_factory, request_json
from disaster_api.config import ApiSettings
from disaster_api.errors import ApiError

MAPBOX_BASE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"
GOOGLE_BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"


class HttpGeocodingProvider:
    provider_id = "http"

    def __init__(self, timeout_seconds: float = 5.0, client_factory: ClientFactory | None = None) -> None:
        self._client_factory = client_factory or default_client_factory(timeout_seconds)

    async def _get_json(self, url: str, params: dict[str, Any], headers: dict[str, str] | None = None) -> Any:
        try:
            return await request_json(self._client_factory, "GET", url, params=params, headers=headers)
        except ApiError as exc:
            raise GeocodingProviderError(f"{self.provider_id}: {exc.message}") from exc

    def _coordinate(self, lat: Any, lng: Any) -> Coordinate:
        try:
            return Coordinate(lat=float(lat), lng=float(lng))
        except (TypeError, ValueError, InvalidCoordinateError) as exc:
            raise GeocodingProviderError(f"{self.provider_id}: malformed coordinates") from exc


class MapboxGeocodingProvider(HttpGeocodingProvider):
    provider_id = "mapbox"

    def __init__(self, access_token: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self._access_token = access_token

    async def resolve(self, location_name: str) -> Coordinate | None:
        payload = await self._get_json(
            f"{MAPBOX_BASE_URL}/{quote(location_name, safe='')}.json",
            params={"access_token": self._access_token, "limit": 1},
        )
        features = payload.get("features") or []
        if not features:
            return None
        lng, lat = features[0]["center"][:2]
        return self._coordinate(lat, lng)

    async def reverse(self, coordinate: Coordinate) -> str | None:
        payload = await self._get_json(
            f"{MAPBOX_BASE_URL}/{coordinate.lng},{coordinate.lat}.json",
            params={
                "access_token": self._access_token,
                "types": "place,locality,neighborhood,address",
                "limit": 1,
            },
        )
        features = payload.get("features") or []
        if not features:
            return None
        return features[0].get("place_name")


class GoogleGeocodingProvider(HttpGeocodingProvider):
    provider_id = "google"

    def __init__(self, api_key: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key

    async def resolve(self, location_name: str) -> Coordinate | None:
        payload = await self._get_json(GOOGLE_BASE_URL, params={"address": location_name, "key": self._api_key})
        results = self._results(payload)
        if not results:
            return None
        location = results[0]["geometry"]["location"]
        return self._coordinate(location["lat"], location["lng"])

    async def reverse(self, coordinate: Coordinate) -> str | None:
        payload = await self._get_json(
            GOOGLE_BASE_URL,
            params={"latlng": f"{coordinate.lat},{coordinate.lng}", "key": self._api_key},
        )
        results = self._results(payload)
        if not results:
            return None
        return results[0].get("formatted_address")

    def _results(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        status = payload.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise GeocodingProviderError(f"google: status {status} {payload.get('error_message', '')}".strip())
        return payload.get("results") or []


class NominatimGeocodingProvider(HttpGeocodingProvider):
    provider_id = "nominatim"

    def __init__(self, user_agent: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self._headers = {"User-Agent": user_agent}

    async def resolve(self, location_name: str) -> Coordinate | None:
        payload = await self._get_json(
            f"{NOMINATIM_BASE_URL}/search",
            params={"q": location_name, "format": "json", "limit": 1},
            headers=self._headers,
        )
        if not payload:
            return None
        return self._coordinate(payload[0]["lat"], payload[0]["lon"])

    async def reverse(self, coordinate: Coordinate) -> str | None:
        payload = await self._get_json(
            f"{NOMINATIM_BASE_URL}/reverse",
            params={"lat": coordinate.lat, "lon": coordinate.lng, "format": "json"},
            headers=self._headers,
        )
        if not payload or "error" in payload:
            return None
        return payload.get("display_name")


def build_geocoding_providers(
    settings: ApiSettings,
    client_factory: ClientFactory | None = None,
) -> list[HttpGeocodingProvider]:
    """Providers in rotation order; a missing credential leaves its provider out."""
    common = {"timeout_seconds": settings.PROVIDER_TIMEOUT_SECONDS, "client_factory": client_factory}
    providers: list[HttpGeocodingProvider] = []
    if settings.MAPBOX_ACCESS_TOKEN:
        providers.append(MapboxGeocodingProvider(settings.MAPBOX_ACCESS_TOKEN, **common))
    if settings.GOOGLE_MAPS_API_KEY:
        providers.append(GoogleGeocodingProvider(settings.GOOGLE_MAPS_API_KEY, **common))
    if settings.NOMINATIM_ENABLED:
        providers.append(NominatimGeocodingProvider(settings.NOMINATIM_USER_AGENT, **common))
    return providers
