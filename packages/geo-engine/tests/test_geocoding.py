from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import pytest

from geo_engine.geocoding import (
    GeocodeResult,
    GeocodingProviderError,
    GeocodingResolver,
    geocode_cache_key,
)
from geo_engine.models import Coordinate

FIXED_NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class FakeCache:
    def __init__(self) -> None:
        self.items: dict[str, Any] = {}
        self.set_calls: list[tuple[str, int | None]] = []

    async def get(self, key: str) -> Any | None:
        return self.items.get(key)

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        self.items[key] = value
        self.set_calls.append((key, ttl_seconds))

    async def delete(self, key: str) -> None:
        self.items.pop(key, None)


class StubProvider:
    def __init__(self, provider_id: str, result: Coordinate | None = None, error: Exception | None = None) -> None:
        self.provider_id = provider_id
        self._result = result
        self._error = error
        self.calls: list[str] = []

    async def resolve(self, location_name: str) -> Coordinate | None:
        self.calls.append(location_name)
        if self._error is not None:
            raise self._error
        return self._result


class ReverseStubProvider(StubProvider):
    def __init__(self, provider_id: str, place: str | None) -> None:
        super().__init__(provider_id)
        self._place = place

    async def reverse(self, coordinate: Coordinate) -> str | None:
        self.calls.append(f"{coordinate.lat},{coordinate.lng}")
        return self._place


class SlowProvider(StubProvider):
    async def resolve(self, location_name: str) -> Coordinate | None:
        self.calls.append(location_name)
        await asyncio.sleep(1)
        return Coordinate(lat=0.0, lng=0.0)


def build_resolver(providers, cache=None, **kwargs) -> GeocodingResolver:
    return GeocodingResolver(providers, cache, clock=lambda: FIXED_NOW, **kwargs)


@pytest.mark.asyncio
async def test_geocode_resolves_and_serves_repeat_from_cache() -> None:
    provider = StubProvider("A", Coordinate(lat=40.7831, lng=-73.9712))
    resolver = build_resolver([provider], FakeCache())

    first = await resolver.geocode("Manhattan, NYC")
    second = await resolver.geocode("Manhattan, NYC")

    assert first == GeocodeResult(
        coordinates=Coordinate(lat=40.7831, lng=-73.9712),
        source="A",
        resolved_at=FIXED_NOW,
    )
    assert second == first
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_geocode_cache_key_is_trimmed_and_case_folded() -> None:
    provider = StubProvider("A", Coordinate(lat=40.7831, lng=-73.9712))
    cache = FakeCache()
    resolver = build_resolver([provider], cache)

    await resolver.geocode("  Manhattan, NYC ")
    await resolver.geocode("manhattan, nyc")

    assert geocode_cache_key("Manhattan, NYC") == "geocode:manhattan, nyc"
    assert list(cache.items) == ["geocode:manhattan, nyc"]
    assert cache.set_calls == [("geocode:manhattan, nyc", None)]
    assert len(provider.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["", "   ", None])
async def test_geocode_blank_name_skips_providers(name) -> None:
    provider = StubProvider("A", Coordinate(lat=1.0, lng=1.0))
    resolver = build_resolver([provider], FakeCache())

    assert await resolver.geocode(name) is None
    assert provider.calls == []


@pytest.mark.asyncio
async def test_geocode_fails_over_and_advances_rotation() -> None:
    failing = StubProvider("A", error=GeocodingProviderError("401 unauthorized"))
    working = StubProvider("B", Coordinate(lat=51.5072, lng=-0.1276))
    resolver = build_resolver([failing, working], FakeCache())

    result = await resolver.geocode("London")

    assert result is not None
    assert result.source == "B"
    assert resolver.rotation_index == 1

    await resolver.geocode("Paris")
    assert failing.calls == ["London"]
    assert working.calls == ["London", "Paris"]


@pytest.mark.asyncio
async def test_geocode_zero_matches_counts_as_failure() -> None:
    empty = StubProvider("A", result=None)
    working = StubProvider("B", Coordinate(lat=48.8566, lng=2.3522))
    resolver = build_resolver([empty, working])

    result = await resolver.geocode("Paris")

    assert result is not None and result.source == "B"
    assert resolver.rotation_advances == 1


@pytest.mark.asyncio
async def test_geocode_returns_none_when_every_provider_fails() -> None:
    providers = [
        StubProvider("A", error=GeocodingProviderError("timeout")),
        StubProvider("B", result=None),
        StubProvider("C", error=RuntimeError("boom")),
    ]
    cache = FakeCache()
    resolver = build_resolver(providers, cache)

    assert await resolver.geocode("Atlantis") is None
    assert resolver.rotation_advances == 3
    assert cache.items == {}
    assert all(provider.calls == ["Atlantis"] for provider in providers)


@pytest.mark.asyncio
async def test_geocode_treats_timeout_as_failure() -> None:
    slow = SlowProvider("slow")
    working = StubProvider("fast", Coordinate(lat=35.6762, lng=139.6503))
    resolver = build_resolver([slow, working], timeout_seconds=0.01)

    result = await resolver.geocode("Tokyo")

    assert result is not None and result.source == "fast"
    assert resolver.rotation_index == 1


@pytest.mark.asyncio
async def test_geocode_without_cache_gives_same_result_with_more_calls() -> None:
    provider = StubProvider("A", Coordinate(lat=40.7831, lng=-73.9712))
    resolver = build_resolver([provider], cache=None)

    first = await resolver.geocode("Manhattan, NYC")
    second = await resolver.geocode("Manhattan, NYC")

    assert first == second
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_geocode_discards_cached_entry_from_unknown_provider() -> None:
    cache = FakeCache()
    cache.items["geocode:manhattan, nyc"] = {
        "lat": 1.0,
        "lng": 1.0,
        "source": "retired-provider",
        "resolved_at": FIXED_NOW.isoformat(),
    }
    provider = StubProvider("A", Coordinate(lat=40.7831, lng=-73.9712))
    resolver = build_resolver([provider], cache)

    result = await resolver.geocode("Manhattan, NYC")

    assert result is not None and result.source == "A"
    assert cache.items["geocode:manhattan, nyc"]["source"] == "A"


@pytest.mark.asyncio
async def test_geocode_without_providers_returns_none() -> None:
    resolver = build_resolver([], FakeCache())
    assert await resolver.geocode("Anywhere") is None


@pytest.mark.asyncio
async def test_reverse_geocode_skips_forward_only_providers() -> None:
    forward_only = StubProvider("A", Coordinate(lat=1.0, lng=1.0))
    reverse = ReverseStubProvider("B", "Lower Manhattan, New York")
    cache = FakeCache()
    resolver = build_resolver([forward_only, reverse], cache)

    result = await resolver.reverse_geocode(Coordinate(lat=40.7128, lng=-74.006))
    again = await resolver.reverse_geocode(Coordinate(lat=40.7128, lng=-74.006))

    assert result is not None
    assert result.location_name == "Lower Manhattan, New York"
    assert result.source == "B"
    assert again == result
    assert len(reverse.calls) == 1
    assert forward_only.calls == []


def test_resolver_rejects_duplicate_provider_ids() -> None:
    with pytest.raises(ValueError):
        GeocodingResolver([StubProvider("A"), StubProvider("A")])


@pytest.mark.asyncio
async def test_every_provider_attempt_is_reported() -> None:
    attempts: list[tuple[str, str]] = []
    providers = [
        StubProvider("A", error=GeocodingProviderError("quota")),
        StubProvider("B", result=None),
        StubProvider("C", Coordinate(lat=35.6762, lng=139.6503)),
    ]
    resolver = build_resolver(providers, on_attempt=lambda provider, outcome: attempts.append((provider, outcome)))

    await resolver.geocode("Tokyo")

    assert attempts == [("A", "error"), ("B", "no_match"), ("C", "resolved")]
