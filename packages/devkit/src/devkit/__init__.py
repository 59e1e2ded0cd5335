"""Common runtime devkit for service infrastructure concerns."""

from devkit.config import ServiceSettings
from devkit.db import (
    AsyncDatabaseManager,
    Base,
    asyncpg_dsn,
    create_all_tables,
    create_async_engine,
    is_transient_db_error,
    normalize_postgres_dsn,
)
from devkit.observability import configure_logging, configure_otel, configure_probe_access_log_filter
from devkit.redis import AsyncRedisManager, create_redis_client
from devkit.timezone import now_utc, now_utc_iso

__all__ = [
    "AsyncDatabaseManager",
    "AsyncRedisManager",
    "Base",
    "ServiceSettings",
    "asyncpg_dsn",
    "configure_logging",
    "configure_otel",
    "configure_probe_access_log_filter",
    "create_all_tables",
    "create_async_engine",
    "create_redis_client",
    "is_transient_db_error",
    "normalize_postgres_dsn",
    "now_utc",
    "now_utc_iso",
]
