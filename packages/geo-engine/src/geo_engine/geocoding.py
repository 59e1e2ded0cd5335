"""Place-name geocoding with provider failover and read-through caching.

A :class:`GeocodingResolver` owns an ordered list of providers and a rotation
cursor shared by every call made through it. Lookups start at the cursor; each
provider failure (exception, timeout or empty match) advances the cursor so the
next lookup starts with the following provider. Successful results are cached
under ``geocode:<normalized name>`` and served from the cache until they expire.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

from geo_engine.models import Coordinate

logger = logging.getLogger(__name__)

GEOCODE_NAMESPACE = "geocode:"
REVERSE_GEOCODE_NAMESPACE = "geocode:reverse:"


class GeocodingProviderError(Exception):
    """Raised by a provider that could not resolve a request (auth, HTTP, payload)."""


@runtime_checkable
class GeocodingProvider(Protocol):
    provider_id: str

    async def resolve(self, location_name: str) -> Coordinate | None: ...


@runtime_checkable
class ReverseGeocodingProvider(Protocol):
    provider_id: str

    async def reverse(self, coordinate: Coordinate) -> str | None: ...


class GeocodeCache(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...


@dataclass(frozen=True)
class GeocodeResult:
    coordinates: Coordinate
    source: str
    resolved_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.coordinates.lat,
            "lng": self.coordinates.lng,
            "source": self.source,
            "resolved_at": self.resolved_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> GeocodeResult:
        return cls(
            coordinates=Coordinate(lat=float(raw["lat"]), lng=float(raw["lng"])),
            source=str(raw["source"]),
            resolved_at=datetime.fromisoformat(str(raw["resolved_at"])),
        )


@dataclass(frozen=True)
class ReverseGeocodeResult:
    coordinates: Coordinate
    location_name: str
    source: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.coordinates.lat,
            "lng": self.coordinates.lng,
            "location_name": self.location_name,
            "source": self.source,
        }


def normalize_location_name(location_name: str) -> str:
    return location_name.strip().casefold()


def geocode_cache_key(location_name: str) -> str:
    return f"{GEOCODE_NAMESPACE}{normalize_location_name(location_name)}"


def reverse_geocode_cache_key(coordinate: Coordinate) -> str:
    return f"{REVERSE_GEOCODE_NAMESPACE}{coordinate.lat:.5f},{coordinate.lng:.5f}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GeocodingResolver:
    def __init__(
        self,
        providers: Sequence[GeocodingProvider],
        cache: GeocodeCache | None = None,
        *,
        timeout_seconds: float = 5.0,
        cache_ttl_seconds: int | None = None,
        clock: Callable[[], datetime] = _utc_now,
        on_attempt: Callable[[str, str], None] | None = None,
    ) -> None:
        provider_ids = [provider.provider_id for provider in providers]
        if len(set(provider_ids)) != len(provider_ids):
            raise ValueError("geocoding provider ids must be unique")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._providers = list(providers)
        self._cache = cache
        self._timeout_seconds = timeout_seconds
        self._cache_ttl_seconds = cache_ttl_seconds
        self._clock = clock
        self._on_attempt = on_attempt
        self._cursor = 0
        self._advances = 0

    @property
    def provider_ids(self) -> tuple[str, ...]:
        return tuple(provider.provider_id for provider in self._providers)

    @property
    def rotation_index(self) -> int:
        return self._cursor

    @property
    def rotation_advances(self) -> int:
        return self._advances

    async def geocode(self, location_name: str | None) -> GeocodeResult | None:
        if not location_name or not location_name.strip():
            return None
        query = location_name.strip()
        cache_key = geocode_cache_key(query)
        cached = await self._read_cached_result(cache_key)
        if cached is not None:
            return cached

        for provider in self._rotation():
            try:
                coordinate = await asyncio.wait_for(provider.resolve(query), timeout=self._timeout_seconds)
            except Exception as exc:
                self._record_failure(provider, query, exc)
                continue
            if coordinate is None:
                self._record_failure(provider, query, None)
                continue
            self._report(provider, "resolved")
            result = GeocodeResult(coordinates=coordinate, source=provider.provider_id, resolved_at=self._clock())
            if self._cache is not None:
                await self._cache.set(cache_key, result.to_dict(), self._cache_ttl_seconds)
            logger.info(
                "geocode_resolved",
                extra={"component": "geo_engine", "provider": provider.provider_id, "query": query},
            )
            return result

        logger.warning(
            "geocode_exhausted",
            extra={"component": "geo_engine", "query": query, "providers": len(self._providers)},
        )
        return None

    async def reverse_geocode(self, coordinate: Coordinate) -> ReverseGeocodeResult | None:
        cache_key = reverse_geocode_cache_key(coordinate)
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if isinstance(cached, dict) and cached.get("source") in self.provider_ids:
                return ReverseGeocodeResult(
                    coordinates=coordinate,
                    location_name=str(cached["location_name"]),
                    source=str(cached["source"]),
                )

        for provider in self._rotation():
            if not isinstance(provider, ReverseGeocodingProvider):
                continue
            query = f"{coordinate.lat},{coordinate.lng}"
            try:
                location_name = await asyncio.wait_for(provider.reverse(coordinate), timeout=self._timeout_seconds)
            except Exception as exc:
                self._record_failure(provider, query, exc)
                continue
            if not location_name:
                self._record_failure(provider, query, None)
                continue
            self._report(provider, "resolved")
            result = ReverseGeocodeResult(coordinates=coordinate, location_name=location_name, source=provider.provider_id)
            if self._cache is not None:
                await self._cache.set(cache_key, result.to_dict(), self._cache_ttl_seconds)
            return result
        return None

    def _rotation(self) -> list[GeocodingProvider]:
        # Order is fixed at call start; concurrent failures still move the shared cursor.
        count = len(self._providers)
        start = self._cursor
        return [self._providers[(start + offset) % count] for offset in range(count)]

    def _record_failure(self, provider: GeocodingProvider, query: str, exc: Exception | None) -> None:
        self._report(provider, "no_match" if exc is None else "error")
        self._cursor = (self._cursor + 1) % len(self._providers)
        self._advances += 1
        logger.warning(
            "geocode_provider_failed",
            extra={
                "component": "geo_engine",
                "provider": provider.provider_id,
                "query": query,
                "reason": "no_match" if exc is None else f"{type(exc).__name__}: {exc}",
                "next_index": self._cursor,
            },
        )

    def _report(self, provider: GeocodingProvider, outcome: str) -> None:
        if self._on_attempt is not None:
            self._on_attempt(provider.provider_id, outcome)

    async def _read_cached_result(self, cache_key: str) -> GeocodeResult | None:
        if self._cache is None:
            return None
        cached = await self._cache.get(cache_key)
        if cached is None:
            return None
        try:
            result = GeocodeResult.from_dict(cached)
        except (KeyError, TypeError, ValueError):
            result = None
        if result is None or result.source not in self.provider_ids:
            logger.info("geocode_cache_entry_discarded", extra={"component": "geo_engine", "key": cache_key})
            await self._cache.delete(cache_key)
            return None
        return result
