from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from devkit.db import asyncpg_dsn
from devkit.redis import AsyncRedisManager, create_redis_client
from fastapi import Depends, Request, Response
from geo_engine.geocoding import GeocodingProvider, GeocodingResolver
from geo_engine.models import RecordKind
from geo_engine.postgis_adapter import PostGISAdapter
from geo_engine.proximity import HaversineProximityBackend, ProximityBackend, ProximityEngine

from disaster_api.cache import CacheStore, InMemoryCacheStore, RedisCacheStore, TTLCache
from disaster_api.clients.gemini_client import GeminiClient
from disaster_api.clients.geocoding_providers import build_geocoding_providers
from disaster_api.clients.http import ClientFactory
from disaster_api.clients.official_updates_client import ReliefWebClient
from disaster_api.clients.social_media_client import TwitterSearchClient
from disaster_api.config import ApiSettings
from disaster_api.notifier import ChangeNotifier
from disaster_api.observability import get_trace_id
from disaster_api.rate_limit import (
    InMemoryRateLimitStore,
    RedisRateLimitStore,
    SlidingWindowRateLimiter,
    client_bucket,
)
from disaster_api.repositories.datastore import Datastore
from disaster_api.repositories.disaster_repository import DisasterRepository
from disaster_api.repositories.report_repository import ReportRepository
from disaster_api.repositories.resource_repository import ResourceRepository
from disaster_api.services.disaster_service import DisasterService
from disaster_api.services.enrichment_service import EnrichmentOrchestrator
from disaster_api.services.geocoding_service import GeocodingService
from disaster_api.services.proximity_service import ProximityService
from disaster_api.services.resource_service import ResourceService
from disaster_api.services.social_service import SocialMediaService
from disaster_api.services.updates_service import OfficialUpdatesService
from disaster_api.services.verification_service import VerificationService

logger = logging.getLogger(__name__)

_UNSET: Any = object()


@dataclass
class Container:
    """Process-wide service graph, built once per app and stored on ``app.state``."""

    settings: ApiSettings
    cache: TTLCache
    rate_limiter: SlidingWindowRateLimiter
    notifier: ChangeNotifier
    resolver: GeocodingResolver
    proximity_engine: ProximityEngine
    disasters: DisasterRepository
    resources: ResourceRepository
    reports: ReportRepository
    orchestrator: EnrichmentOrchestrator
    geocoding_service: GeocodingService
    proximity_service: ProximityService
    disaster_service: DisasterService
    resource_service: ResourceService
    verification_service: VerificationService
    social_service: SocialMediaService
    updates_service: OfficialUpdatesService
    datastore: Datastore | None = None
    postgis: PostGISAdapter | None = None
    redis: AsyncRedisManager | None = None

    async def aclose(self) -> None:
        if self.postgis is not None:
            await self.postgis.close()
        if self.datastore is not None:
            await self.datastore.close()
        if self.redis is not None:
            await self.redis.close()


def _candidate_loader(disasters: DisasterRepository, resources: ResourceRepository):
    async def load(kind: RecordKind) -> list[dict[str, Any]]:
        if kind == RecordKind.RESOURCE:
            return [item.to_dict() for item in await resources.list_all()]
        return [item.to_dict() for item in await disasters.list_disasters()]

    return load


def build_container(
    settings: ApiSettings,
    *,
    http_client_factory: ClientFactory | None = None,
    geocoding_providers: Sequence[GeocodingProvider] | None = None,
    llm_client: Any = _UNSET,
    social_client: Any = _UNSET,
    updates_client: Any = _UNSET,
    cache_store: CacheStore | None = None,
    on_change_event: Callable[[str, int, int], None] | None = None,
    on_provider_attempt: Callable[[str, str], None] | None = None,
) -> Container:
    redis_manager = create_redis_client(settings.REDIS_URL)
    if cache_store is None:
        cache_store = RedisCacheStore(redis_manager) if redis_manager else InMemoryCacheStore()
    rate_limit_store = RedisRateLimitStore(redis_manager) if redis_manager else InMemoryRateLimitStore()
    cache = TTLCache(store=cache_store, default_ttl_seconds=settings.CACHE_TTL_SECONDS)
    rate_limiter = SlidingWindowRateLimiter(
        rate_limit_store,
        limit=settings.EXTERNAL_RATE_LIMIT_PER_MINUTE,
        window_seconds=60,
    )
    notifier = ChangeNotifier(trace_id_provider=get_trace_id, on_publish=on_change_event)

    datastore = Datastore(settings.DATABASE_URL) if settings.DATABASE_URL else None
    disasters = DisasterRepository(datastore)
    resources = ResourceRepository(datastore)
    reports = ReportRepository(datastore)

    postgis = None
    backend: ProximityBackend
    if settings.DATABASE_URL and settings.DATABASE_URL.startswith("postgresql"):
        postgis = PostGISAdapter(dsn=asyncpg_dsn(settings.DATABASE_URL))
        backend = postgis
    else:
        backend = HaversineProximityBackend(_candidate_loader(disasters, resources))
    proximity_engine = ProximityEngine(
        backend,
        min_radius_meters=settings.PROXIMITY_MIN_RADIUS_METERS,
        max_radius_meters=settings.PROXIMITY_MAX_RADIUS_METERS,
    )

    if geocoding_providers is None:
        geocoding_providers = build_geocoding_providers(settings, client_factory=http_client_factory)
    resolver = GeocodingResolver(
        geocoding_providers,
        cache,
        timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS,
        cache_ttl_seconds=settings.CACHE_TTL_SECONDS,
        on_attempt=on_provider_attempt,
    )

    common = {"timeout_seconds": settings.PROVIDER_TIMEOUT_SECONDS, "client_factory": http_client_factory}
    if llm_client is _UNSET:
        llm_client = (
            GeminiClient(settings.GOOGLE_AI_KEY, settings.GEMINI_MODEL, cache=cache, **common)
            if settings.GOOGLE_AI_KEY
            else None
        )
    if social_client is _UNSET:
        social_client = (
            TwitterSearchClient(settings.TWITTER_BEARER_TOKEN, **common) if settings.TWITTER_BEARER_TOKEN else None
        )
    if updates_client is _UNSET:
        updates_client = ReliefWebClient(settings.RELIEFWEB_APP_NAME, **common)

    orchestrator = EnrichmentOrchestrator(
        resolver,
        proximity_engine,
        notifier,
        disasters,
        resources,
        extractor=llm_client,
        default_radius_meters=settings.PROXIMITY_DEFAULT_RADIUS_METERS,
    )
    logger.info(
        "container_built",
        extra={
            "component": "api",
            "geocoding_providers": ",".join(resolver.provider_ids) or "none",
            "datastore": "sql" if datastore else "memory",
            "proximity": "postgis" if postgis else "haversine",
            "cache": type(cache_store).__name__,
        },
    )
    return Container(
        settings=settings,
        cache=cache,
        rate_limiter=rate_limiter,
        notifier=notifier,
        resolver=resolver,
        proximity_engine=proximity_engine,
        disasters=disasters,
        resources=resources,
        reports=reports,
        orchestrator=orchestrator,
        geocoding_service=GeocodingService(resolver, llm_client),
        proximity_service=ProximityService(
            proximity_engine,
            disasters,
            default_radius_meters=settings.PROXIMITY_DEFAULT_RADIUS_METERS,
        ),
        disaster_service=DisasterService(disasters, reports, orchestrator, notifier, cache=cache),
        resource_service=ResourceService(resources, disasters, orchestrator, notifier),
        verification_service=VerificationService(llm_client, disasters, reports, notifier),
        social_service=SocialMediaService(social_client, cache, ttl_seconds=settings.SOCIAL_CACHE_TTL_SECONDS),
        updates_service=OfficialUpdatesService(updates_client, cache, ttl_seconds=settings.UPDATES_CACHE_TTL_SECONDS),
        datastore=datastore,
        postgis=postgis,
        redis=redis_manager,
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_settings(container: Container = Depends(get_container)) -> ApiSettings:
    return container.settings


def get_geocoding_service(container: Container = Depends(get_container)) -> GeocodingService:
    return container.geocoding_service


def get_proximity_service(container: Container = Depends(get_container)) -> ProximityService:
    return container.proximity_service


def get_disaster_service(container: Container = Depends(get_container)) -> DisasterService:
    return container.disaster_service


def get_resource_service(container: Container = Depends(get_container)) -> ResourceService:
    return container.resource_service


def get_verification_service(container: Container = Depends(get_container)) -> VerificationService:
    return container.verification_service


def get_social_service(container: Container = Depends(get_container)) -> SocialMediaService:
    return container.social_service


def get_updates_service(container: Container = Depends(get_container)) -> OfficialUpdatesService:
    return container.updates_service


def get_rate_limiter(container: Container = Depends(get_container)) -> SlidingWindowRateLimiter:
    return container.rate_limiter


async def enforce_external_rate_limit(
    request: Request,
    response: Response,
    rate_limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
) -> None:
    decision = await rate_limiter.enforce(client_bucket(request))
    response.headers["x-ratelimit-limit"] = str(rate_limiter.limit)
    response.headers["x-ratelimit-remaining"] = str(decision.remaining)
