from __future__ import annotations

import httpx
import pytest
from geo_engine.geocoding import GeocodingProviderError, GeocodingResolver
from geo_engine.models import Coordinate

from disaster_api.clients.geocoding_providers import (
    GoogleGeocodingProvider,
    MapboxGeocodingProvider,
    NominatimGeocodingProvider,
    build_geocoding_providers,
)
from fakes import make_settings


def factory_for(handler):
    transport = httpx.MockTransport(handler)
    return lambda: httpx.AsyncClient(transport=transport, timeout=5.0)


@pytest.mark.asyncio
async def test_mapbox_reads_center_as_lng_lat() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "api.mapbox.com"
        assert request.url.path.endswith("/Manhattan, NYC.json")
        assert request.url.params["access_token"] == "pk.test"
        return httpx.Response(200, json={"features": [{"center": [-73.9712, 40.7831], "place_name": "Manhattan"}]})

    provider = MapboxGeocodingProvider("pk.test", client_factory=factory_for(handler))

    assert await provider.resolve("Manhattan, NYC") == Coordinate(lat=40.7831, lng=-73.9712)


@pytest.mark.asyncio
async def test_mapbox_reverse_and_empty_match() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if "-73.9712,40.7831" in request.url.path:
            return httpx.Response(200, json={"features": [{"place_name": "Manhattan, New York"}]})
        return httpx.Response(200, json={"features": []})

    provider = MapboxGeocodingProvider("pk.test", client_factory=factory_for(handler))

    assert await provider.reverse(Coordinate(lat=40.7831, lng=-73.9712)) == "Manhattan, New York"
    assert await provider.resolve("Atlantis") is None


@pytest.mark.asyncio
async def test_mapbox_http_error_becomes_provider_error() -> None:
    provider = MapboxGeocodingProvider(
        "pk.bad",
        client_factory=factory_for(lambda _: httpx.Response(401, json={"message": "Not Authorized"})),
    )

    with pytest.raises(GeocodingProviderError, match="mapbox"):
        await provider.resolve("Brooklyn")


@pytest.mark.asyncio
async def test_google_status_handling() -> None:
    responses = {
        "Brooklyn": {"status": "OK", "results": [{"geometry": {"location": {"lat": 40.6782, "lng": -73.9442}}}]},
        "Atlantis": {"status": "ZERO_RESULTS", "results": []},
        "Denied": {"status": "REQUEST_DENIED", "error_message": "API key invalid"},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["key"] == "g-key"
        return httpx.Response(200, json=responses[request.url.params["address"]])

    provider = GoogleGeocodingProvider("g-key", client_factory=factory_for(handler))

    assert await provider.resolve("Brooklyn") == Coordinate(lat=40.6782, lng=-73.9442)
    assert await provider.resolve("Atlantis") is None
    with pytest.raises(GeocodingProviderError, match="REQUEST_DENIED"):
        await provider.resolve("Denied")


@pytest.mark.asyncio
async def test_nominatim_sends_user_agent_and_parses_strings() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["user-agent"] == "DisasterResponsePlatform/1.0"
        if request.url.path == "/reverse":
            return httpx.Response(200, json={"display_name": "Brooklyn, Kings County"})
        return httpx.Response(200, json=[{"lat": "40.6782", "lon": "-73.9442"}])

    provider = NominatimGeocodingProvider("DisasterResponsePlatform/1.0", client_factory=factory_for(handler))

    assert await provider.resolve("Brooklyn") == Coordinate(lat=40.6782, lng=-73.9442)
    assert await provider.reverse(Coordinate(lat=40.6782, lng=-73.9442)) == "Brooklyn, Kings County"


@pytest.mark.asyncio
async def test_malformed_coordinates_are_provider_errors() -> None:
    provider = NominatimGeocodingProvider(
        "agent",
        client_factory=factory_for(lambda _: httpx.Response(200, json=[{"lat": "north", "lon": "0"}])),
    )

    with pytest.raises(GeocodingProviderError):
        await provider.resolve("Nowhere")


def test_missing_credentials_remove_providers_from_rotation() -> None:
    none = build_geocoding_providers(make_settings())
    all_three = build_geocoding_providers(
        make_settings(MAPBOX_ACCESS_TOKEN="pk", GOOGLE_MAPS_API_KEY="g", NOMINATIM_ENABLED=True)
    )
    google_only = build_geocoding_providers(make_settings(GOOGLE_MAPS_API_KEY="g"))

    assert none == []
    assert [provider.provider_id for provider in all_three] == ["mapbox", "google", "nominatim"]
    assert [provider.provider_id for provider in google_only] == ["google"]


@pytest.mark.asyncio
async def test_resolver_fails_over_from_rejected_mapbox_to_google() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.mapbox.com":
            return httpx.Response(401, json={"message": "Not Authorized"})
        return httpx.Response(
            200,
            json={"status": "OK", "results": [{"geometry": {"location": {"lat": 40.7831, "lng": -73.9712}}}]},
        )

    providers = build_geocoding_providers(
        make_settings(MAPBOX_ACCESS_TOKEN="pk", GOOGLE_MAPS_API_KEY="g"),
        client_factory=factory_for(handler),
    )
    resolver = GeocodingResolver(providers)

    result = await resolver.geocode("Manhattan, NYC")

    assert result is not None
    assert result.source == "google"
    assert resolver.rotation_index == 1
