from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from devkit.db import AsyncDatabaseManager, Base
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from disaster_api.errors import DatastoreError

# Registers the tables on Base.metadata.
from disaster_api.repositories import orm as _orm  # noqa: F401

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Datastore:
    """Shared SQLAlchemy access for every repository.

    Tables are created on first connect. Driver and SQL failures surface as
    :class:`DatastoreError` so routers answer with a 5xx.
    """

    def __init__(self, database_url: str, manager: AsyncDatabaseManager | None = None) -> None:
        self._manager = manager or AsyncDatabaseManager(database_url, metadata=Base.metadata)

    async def run(self, fn: Callable[[AsyncSession], Awaitable[T]], operation: str) -> T:
        try:
            return await self._manager.transaction(fn)
        except (SQLAlchemyError, OSError) as exc:
            logger.error(
                "datastore_operation_failed",
                extra={"component": "datastore", "operation": operation, "error": type(exc).__name__},
            )
            raise DatastoreError(f"Datastore operation '{operation}' failed") from exc

    async def close(self) -> None:
        await self._manager.disconnect()
