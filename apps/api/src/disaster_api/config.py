from __future__ import annotations

from devkit.config import ServiceSettings
from devkit.timezone import configure_utc_timezone


class ApiSettings(ServiceSettings):
    SERVICE_NAME: str = "disaster-api"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    MAPBOX_ACCESS_TOKEN: str | None = None
    GOOGLE_MAPS_API_KEY: str | None = None
    NOMINATIM_ENABLED: bool = True
    NOMINATIM_USER_AGENT: str = "DisasterResponsePlatform/1.0"

    GOOGLE_AI_KEY: str | None = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    TWITTER_BEARER_TOKEN: str | None = None
    RELIEFWEB_APP_NAME: str = "disaster-response-platform"

    CACHE_TTL_SECONDS: int = 3600
    SOCIAL_CACHE_TTL_SECONDS: int = 300
    UPDATES_CACHE_TTL_SECONDS: int = 1800
    PROVIDER_TIMEOUT_SECONDS: float = 5.0

    PROXIMITY_MIN_RADIUS_METERS: int = 100
    PROXIMITY_MAX_RADIUS_METERS: int = 50_000
    PROXIMITY_DEFAULT_RADIUS_METERS: int = 10_000

    EXTERNAL_RATE_LIMIT_PER_MINUTE: int = 60


def load_api_settings(**overrides) -> ApiSettings:
    configure_utc_timezone()
    return ApiSettings(**overrides)
