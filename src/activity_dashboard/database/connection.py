"""Database engine management."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from ..config import get_settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the process-wide async engine."""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None

    def initialize(self, database_url: Optional[str] = None) -> AsyncEngine:
        """Create the engine if it does not exist yet."""
        if self.engine is not None:
            return self.engine

        url = database_url or get_settings().get_database_url()
        kwargs = {"echo": False}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs["pool_pre_ping"] = True

        self.engine = create_async_engine(url, **kwargs)
        logger.debug("Database engine created for dialect %s", self.engine.dialect.name)
        return self.engine

    async def close(self):
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None


db_manager = DatabaseManager()


@asynccontextmanager
async def get_db_connection() -> AsyncIterator[AsyncConnection]:
    """Open a connection on the shared engine."""
    if db_manager.engine is None:
        db_manager.initialize()
    async with db_manager.engine.connect() as conn:
        yield conn
