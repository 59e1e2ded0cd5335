from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy import MetaData, event, text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.ext.asyncio import create_async_engine as _create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    """Base class for SQLAlchemy declarative models."""


def normalize_postgres_dsn(dsn: str) -> str:
    """SQLAlchemy DSN with the psycopg driver pinned."""
    for prefix in ("postgres://", "postgresql://"):
        if dsn.startswith(prefix):
            return "postgresql+psycopg://" + dsn[len(prefix) :]
    return dsn


def asyncpg_dsn(dsn: str) -> str:
    """asyncpg wants the plain scheme, without a SQLAlchemy driver suffix."""
    scheme, sep, rest = dsn.partition("://")
    if not sep:
        return dsn
    scheme = scheme.split("+", 1)[0]
    return f"{'postgresql' if scheme == 'postgres' else scheme}://{rest}"


def create_async_engine(dsn: str) -> AsyncEngine:
    engine = _create_async_engine(normalize_postgres_dsn(dsn), pool_pre_ping=True, pool_recycle=1800)
    if engine.dialect.name == "postgresql":

        @event.listens_for(engine.sync_engine, "connect")
        def _session_in_utc(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("SET TIME ZONE 'UTC'")
            finally:
                cursor.close()

    return engine


def is_transient_db_error(exc: BaseException) -> bool:
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


async def create_all_tables(engine: AsyncEngine, metadata: MetaData) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


class AsyncDatabaseManager:
    """Owns one async engine; creates the schema once and retries dropped connections."""

    def __init__(
        self,
        dsn: str,
        *,
        metadata: MetaData | None = None,
        attempts: int = 3,
        base_delay_seconds: float = 0.2,
        engine_factory: Callable[[str], AsyncEngine] = create_async_engine,
    ) -> None:
        self._dsn = dsn
        self._metadata = metadata
        self._attempts = attempts
        self._base_delay_seconds = base_delay_seconds
        self._engine_factory = engine_factory
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None
        self._lock = asyncio.Lock()

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("database manager is not connected")
        return self._engine

    async def connect(self) -> None:
        async with self._lock:
            if self._engine is not None:
                return
            engine = self._engine_factory(self._dsn)
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            if self._metadata is not None:
                await create_all_tables(engine, self._metadata)
            self._engine = engine
            self._sessions = async_sessionmaker(engine, expire_on_commit=False)
            logger.info("database_connected", extra={"component": "devkit", "dialect": engine.dialect.name})

    async def disconnect(self) -> None:
        async with self._lock:
            engine, self._engine, self._sessions = self._engine, None, None
        if engine is not None:
            await engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        await self.connect()
        assert self._sessions is not None
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    async def transaction(self, fn: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``fn`` in a committed session, reconnecting on transient failures."""
        attempt = 0
        while True:
            attempt += 1
            try:
                async with self.session() as session:
                    return await fn(session)
            except Exception as exc:
                if attempt >= self._attempts or not is_transient_db_error(exc):
                    raise
                logger.warning(
                    "database_retry",
                    extra={"component": "devkit", "attempt": attempt, "error": type(exc).__name__},
                )
                await self.disconnect()
                await asyncio.sleep(self._base_delay_seconds * (2 ** (attempt - 1)))
